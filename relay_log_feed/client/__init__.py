"""HTTP collaborators for the gateway admin API."""

from .base import ApiClient
from .history import HistoryFetcher
from .token import StreamTokenClient

__all__ = ["ApiClient", "HistoryFetcher", "StreamTokenClient"]
