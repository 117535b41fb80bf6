"""relay-log-feed: merged historical + live relay logs for the gateway admin console."""

from .client import ApiClient, HistoryFetcher, StreamTokenClient
from .config import load_config, validate_config
from .core.controller import FeedController
from .core.store import LogStore
from .core.subscriber import LiveFeedSubscriber
from .display import format_duration, format_time, safe_parse_json
from .types import (
    ConnectionState,
    FeedState,
    LogFeedConfig,
    LogFeedError,
    LogPage,
    LogRecord,
    LogRecordParseError,
)

__version__ = "0.1.0"

__all__ = [
    "FeedController",
    "LogStore",
    "LiveFeedSubscriber",
    "ApiClient",
    "HistoryFetcher",
    "StreamTokenClient",
    "load_config",
    "validate_config",
    "ConnectionState",
    "FeedState",
    "LogFeedConfig",
    "LogFeedError",
    "LogPage",
    "LogRecord",
    "LogRecordParseError",
    "format_time",
    "format_duration",
    "safe_parse_json",
]
