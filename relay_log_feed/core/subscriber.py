"""LiveFeedSubscriber: one authenticated SSE connection to ``/log/stream``.

The subscriber never writes to the store itself. Parsed records are put on
a sink queue owned by the FeedController, which is the only writer.

State moves ``idle -> connecting -> open -> closed|errored``. Terminal
states are final; there is no automatic reconnection. The owner recovers
by closing and starting again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx

from ..client.base import ApiClient
from ..client.token import StreamTokenClient
from ..types import ConnectionState, LogFeedError, LogRecord, LogRecordParseError
from .records import parse_record
from .sse import iter_sse_events

logger = logging.getLogger(__name__)

STREAM_ENDPOINT = "log/stream"

StateCallback = Callable[[ConnectionState, "Exception | None"], None]


class LiveFeedSubscriber:
    """Streams newly created log records into *sink*."""

    def __init__(
        self,
        client: ApiClient,
        sink: asyncio.Queue[LogRecord],
        token_client: StreamTokenClient | None = None,
        on_state_change: StateCallback | None = None,
    ) -> None:
        self._client = client
        self._sink = sink
        self._tokens = token_client or StreamTokenClient(client)
        self._on_state_change = on_state_change

        self.state: ConnectionState = ConnectionState.IDLE
        self.last_error: Exception | None = None
        self.dropped_frames: int = 0

        self._cancelled = False
        self._task: asyncio.Task | None = None
        self._response: httpx.Response | None = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the connection. Only one connection per subscriber."""
        if self._task is not None:
            raise RuntimeError("LiveFeedSubscriber can only be started once")
        self._task = asyncio.create_task(self._run(), name="relay-log-stream")
        return self._task

    async def wait_closed(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def close(self) -> None:
        """Tear down: no stream may open or deliver after this returns."""
        self._cancelled = True
        response, self._response = self._response, None
        if response is not None:
            await response.aclose()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if not self.state.is_terminal:
            self._set_state(ConnectionState.CLOSED)

    # -- internals --

    def _set_state(self, state: ConnectionState, error: Exception | None = None) -> None:
        self.state = state
        if error is not None:
            self.last_error = error
        elif state is ConnectionState.OPEN:
            self.last_error = None
        if self._on_state_change is not None:
            try:
                self._on_state_change(state, self.last_error)
            except Exception as e:
                logger.error("Stream state callback failed: %s", e, exc_info=True)

    async def _run(self) -> None:
        self._set_state(ConnectionState.CONNECTING)
        try:
            token = await self._tokens.issue()
        except LogFeedError as e:
            if self._cancelled:
                return
            logger.error("Failed to obtain stream token: %s", e)
            self._set_state(ConnectionState.ERRORED, e)
            return
        except Exception as e:
            if self._cancelled:
                return
            logger.error("Stream token request failed: %s", e, exc_info=True)
            self._set_state(
                ConnectionState.ERRORED,
                LogFeedError(f"Stream token request failed: {e!r}", endpoint="log/stream-token"),
            )
            return
        if self._cancelled:
            logger.debug("Subscriber closed before stream open; discarding token")
            return

        url = self._client.path(STREAM_ENDPOINT)
        try:
            async with self._client.http.stream(
                "GET",
                url,
                params={"token": token},
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(None, connect=self._client.config.connect_timeout),
            ) as response:
                if self._cancelled:
                    return
                if response.status_code != 200:
                    await response.aread()
                    raise LogFeedError(
                        f"HTTP {response.status_code}: {response.text}",
                        endpoint=STREAM_ENDPOINT,
                        status_code=response.status_code,
                    )
                self._response = response
                self._set_state(ConnectionState.OPEN)
                logger.info("Live log stream connected")

                async for event in iter_sse_events(response.aiter_lines()):
                    self._deliver(event.data)

            if not self._cancelled:
                logger.warning("Live log stream closed by server")
                self._set_state(
                    ConnectionState.CLOSED,
                    LogFeedError("Live log stream closed", endpoint=STREAM_ENDPOINT),
                )
        except asyncio.CancelledError:
            raise
        except (httpx.HTTPError, httpx.StreamError, LogFeedError) as e:
            if self._cancelled:
                return
            error = e if isinstance(e, LogFeedError) else LogFeedError(
                f"Live log stream lost: {e}", endpoint=STREAM_ENDPOINT,
            )
            logger.warning("Live log stream disconnected: %s", error)
            self._set_state(ConnectionState.ERRORED, error)
        except Exception as e:
            if self._cancelled:
                return
            logger.error("Live log stream failed: %s", e, exc_info=True)
            self._set_state(
                ConnectionState.ERRORED,
                LogFeedError(f"Live log stream failed: {e!r}", endpoint=STREAM_ENDPOINT),
            )
        finally:
            self._response = None

    def _deliver(self, payload: str) -> None:
        if self._cancelled:
            return
        try:
            record = parse_record(payload)
        except LogRecordParseError as e:
            self.dropped_frames += 1
            logger.warning("Dropping malformed live log frame: %s", e)
            return
        self._sink.put_nowait(record)
