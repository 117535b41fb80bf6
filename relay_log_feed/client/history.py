"""HistoryFetcher: offset-addressed pages of past relay logs."""

from __future__ import annotations

import logging

from ..core.records import record_from_wire
from ..types import LogFeedError, LogPage, LogRecord, LogRecordParseError
from .base import ApiClient

logger = logging.getLogger(__name__)

LIST_ENDPOINT = "log/list"
CLEAR_ENDPOINT = "log/clear"


class HistoryFetcher:
    """Fetches one page of historical logs per call.

    Pages come back newest first and may overlap with earlier pages or with
    live records; overlap is left for the store to resolve. Errors propagate
    so the caller can keep its page cursor where it was.
    """

    def __init__(
        self,
        client: ApiClient,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> None:
        self._client = client
        self.start_time = start_time
        self.end_time = end_time

    async def fetch_page(self, page: int, page_size: int) -> LogPage:
        params: dict[str, int] = {"page": page, "page_size": page_size}
        if self.start_time is not None:
            params["start_time"] = self.start_time
        if self.end_time is not None:
            params["end_time"] = self.end_time

        body = await self._client.get_json(LIST_ENDPOINT, params=params)
        if body is None:
            body = []
        if not isinstance(body, list):
            raise LogFeedError(
                f"Expected a list of logs, got {type(body).__name__}",
                endpoint=LIST_ENDPOINT,
            )

        records: list[LogRecord] = []
        for row in body:
            try:
                records.append(record_from_wire(row))
            except LogRecordParseError as e:
                logger.warning("Dropping malformed log row on page %d: %s", page, e)

        logger.debug(
            "Fetched log page %d (%d rows, %d usable, page_size=%d)",
            page, len(body), len(records), page_size,
        )
        return LogPage(records=records, page=page, page_size=page_size, fetched=len(body))

    async def purge(self) -> None:
        """Delete every stored log on the server."""
        await self._client.delete_json(CLEAR_ENDPOINT)
        logger.info("Server-side relay logs cleared")
