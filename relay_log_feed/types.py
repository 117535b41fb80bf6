"""All dataclasses, enums, and error types for relay-log-feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Log records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogRecord:
    """One relay transaction as observed by the admin console."""
    id: int
    timestamp: int  # seconds since epoch
    request_model_name: str = ""
    channel_id: int = 0
    channel_name: str = ""
    actual_model_name: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    first_token_latency_ms: int = 0
    total_latency_ms: int = 0
    cost: float = 0.0
    request_body: str = ""
    response_body: str = ""
    error: str | None = None

    def to_wire(self) -> dict:
        """Return the record keyed by the gateway's JSON field names."""
        return {
            "id": self.id,
            "time": self.timestamp,
            "request_model_name": self.request_model_name,
            "channel": self.channel_id,
            "channel_name": self.channel_name,
            "actual_model_name": self.actual_model_name,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "ftut": self.first_token_latency_ms,
            "use_time": self.total_latency_ms,
            "cost": self.cost,
            "request_content": self.request_body,
            "response_content": self.response_body,
            "error": self.error or "",
        }


@dataclass(frozen=True)
class LogPage:
    """One historical page as returned by ``/log/list``."""
    records: list[LogRecord]
    page: int
    page_size: int
    fetched: int  # raw row count, before malformed rows were dropped

    @property
    def is_full(self) -> bool:
        return self.fetched >= self.page_size


# ---------------------------------------------------------------------------
# Feed state
# ---------------------------------------------------------------------------

class ConnectionState(str, Enum):
    """Lifecycle of a live feed subscription."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED, ConnectionState.ERRORED)


@dataclass(frozen=True)
class FeedState:
    """Snapshot of everything the presentation layer renders."""
    records: tuple[LogRecord, ...] = ()
    is_connected: bool = False
    error: Exception | None = None
    has_more: bool = True
    is_loading: bool = False
    is_loading_more: bool = False


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LogFeedError(Exception):
    def __init__(self, message: str, endpoint: str, status_code: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class LogRecordParseError(ValueError):
    """Raised when a payload cannot be decoded into a LogRecord."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LogFeedConfig:
    base_url: str = "http://127.0.0.1:8080"
    api_prefix: str = "/api/v1"
    api_key: str = ""
    page_size: int = 20
    timeout: float = 30.0
    connect_timeout: float = 10.0
    start_time: int | None = None  # optional history window, epoch seconds
    end_time: int | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)
