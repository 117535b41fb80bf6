"""FeedController: owns the store and merges history with the live feed.

The controller is the only writer to its LogStore. Historical pages are
applied by the coroutine that fetched them; live records arrive on an
``asyncio.Queue`` filled by the subscriber and are drained by a single
consumer task. Both paths run on one event loop, so store mutations never
overlap and duplicates are settled purely by record id.

Nothing here raises into the presentation layer: fetch and stream failures
are logged and exposed on ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx

from ..client.base import ApiClient
from ..client.history import HistoryFetcher
from ..types import (
    ConnectionState,
    FeedState,
    LogFeedConfig,
    LogFeedError,
    LogRecord,
)
from .store import LogStore
from .subscriber import LiveFeedSubscriber

logger = logging.getLogger(__name__)

Listener = Callable[[FeedState], None]


class FeedController:
    """Startup, ``load_more``, ``clear`` and observable state for one feed."""

    def __init__(
        self,
        config: LogFeedConfig,
        *,
        client: ApiClient | None = None,
        store: LogStore | None = None,
        fetcher: HistoryFetcher | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.page_size = config.page_size
        self._owns_client = client is None
        self._client = client or ApiClient(config, transport=transport)
        self.store = store if store is not None else LogStore()
        self._fetcher = fetcher or HistoryFetcher(
            self._client, start_time=config.start_time, end_time=config.end_time,
        )

        self.error: Exception | None = None
        self._fetch_error: Exception | None = None
        self.is_loading: bool = False
        self.is_loading_more: bool = False

        self._active = False
        self._generation = 0
        self._queue: asyncio.Queue[LogRecord] | None = None
        self._consumer: asyncio.Task | None = None
        self._initial: asyncio.Task | None = None
        self._subscriber: LiveFeedSubscriber | None = None
        self._listeners: list[Listener] = []

    # -- observable state --

    @property
    def records(self) -> tuple[LogRecord, ...]:
        return self.store.records

    @property
    def has_more(self) -> bool:
        return self.store.has_more

    @property
    def is_connected(self) -> bool:
        return self._subscriber is not None and self._subscriber.is_connected

    @property
    def connection_state(self) -> ConnectionState:
        if self._subscriber is None:
            return ConnectionState.IDLE
        return self._subscriber.state

    @property
    def active(self) -> bool:
        return self._active

    def snapshot(self) -> FeedState:
        return FeedState(
            records=self.store.records,
            is_connected=self.is_connected,
            error=self.error,
            has_more=self.store.has_more,
            is_loading=self.is_loading,
            is_loading_more=self.is_loading_more,
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with a fresh snapshot after every state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -- lifecycle --

    async def start(self) -> None:
        """Fetch page one and open the live feed, concurrently."""
        if self._active:
            return
        self._active = True
        self.error = None
        self.is_loading = True

        self._queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume(self._queue), name="relay-log-consumer")
        self._subscriber = LiveFeedSubscriber(
            self._client, self._queue, on_state_change=self._on_connection_state,
        )
        self._subscriber.start()
        self._initial = asyncio.create_task(self._load_initial(), name="relay-log-initial")
        logger.info("Log feed started (page_size=%d)", self.page_size)
        self._notify()

    async def settle(self) -> None:
        """Wait for the startup fetch and every queued live record to be applied."""
        if self._initial is not None:
            await asyncio.gather(self._initial, return_exceptions=True)
        if self._queue is not None and self._consumer is not None and not self._consumer.done():
            await self._queue.join()

    async def close(self) -> None:
        """Stop the feed. Pending results are discarded, the store is kept."""
        if not self._active:
            return
        self._active = False
        self._generation += 1

        if self._subscriber is not None:
            await self._subscriber.close()
        pending = [t for t in (self._initial, self._consumer) if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._initial = None
        self._consumer = None
        self._queue = None
        self.is_loading = False
        self.is_loading_more = False
        logger.info("Log feed closed")
        self._notify()

    async def aclose(self) -> None:
        """Close the feed and the HTTP client if this controller created it."""
        await self.close()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FeedController":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # -- operations --

    async def load_more(self) -> None:
        """Fetch the next older page; a no-op when exhausted or already loading.

        If page one never loaded (startup failed or after ``clear``) this
        retries page one instead.
        """
        if not self.store.has_more or self.is_loading or self.is_loading_more:
            return

        generation = self._generation
        first = not self.store.initialized
        page = self.store.next_page

        self.is_loading_more = True
        self._notify()
        try:
            await self._fetch_and_apply(page, first, generation)
        finally:
            if generation == self._generation:
                self.is_loading_more = False
                self._notify()

    def clear(self) -> None:
        """Drop every record and reset pagination; in-flight pages are discarded."""
        self._generation += 1
        self.store.clear()
        self.is_loading = False
        self.is_loading_more = False
        if self.error is self._fetch_error:
            self.error = None
        logger.debug("Log feed cleared")
        self._notify()

    async def purge(self) -> bool:
        """Delete logs on the server, clear locally, and reload page one."""
        try:
            await self._fetcher.purge()
        except LogFeedError as e:
            logger.error("Failed to clear server logs: %s", e)
            self.error = e
            self._notify()
            return False
        self.clear()
        if self._active:
            await self.load_more()
        return True

    # -- internals --

    async def _load_initial(self) -> None:
        generation = self._generation
        try:
            await self._fetch_and_apply(1, True, generation)
        finally:
            if generation == self._generation:
                self.is_loading = False
                self._notify()

    async def _fetch_and_apply(self, page: int, first: bool, generation: int) -> None:
        try:
            result = await self._fetcher.fetch_page(page, self.page_size)
        except LogFeedError as e:
            if generation != self._generation:
                return
            logger.error("Failed to load log page %d: %s", page, e)
            self.error = e
            self._fetch_error = e
            return

        if generation != self._generation:
            logger.debug("Discarding log page %d fetched before reset", page)
            return
        if self.error is not None and self.error is self._fetch_error:
            self.error = None

        if first:
            added = self.store.initialize(result.records, self.page_size, result.fetched)
        else:
            added = self.store.append_page(result.records, self.page_size, result.fetched)
        logger.info(
            "Loaded log page %d: %d new, %d total, has_more=%s",
            page, added, len(self.store), self.store.has_more,
        )

    async def _consume(self, queue: asyncio.Queue[LogRecord]) -> None:
        while True:
            record = await queue.get()
            try:
                if self.store.insert_live(record):
                    self._notify()
            finally:
                queue.task_done()

    def _on_connection_state(self, state: ConnectionState, error: Exception | None) -> None:
        if state.is_terminal and error is not None and self._active:
            self.error = error
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("Log feed listener failed: %s", e, exc_info=True)
