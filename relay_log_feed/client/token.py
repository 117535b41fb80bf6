"""StreamTokenClient: short-lived credentials for the live log stream."""

from __future__ import annotations

from ..types import LogFeedError
from .base import ApiClient

TOKEN_ENDPOINT = "log/stream-token"


class StreamTokenClient:
    """Obtains a single-use token for ``/log/stream``.

    The stream is opened as a plain GET with no auth header, so the token
    travels as a query parameter instead.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def issue(self) -> str:
        body = await self._client.get_json(TOKEN_ENDPOINT)
        token = body.get("token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise LogFeedError("Stream token missing from response", endpoint=TOKEN_ENDPOINT)
        return token
