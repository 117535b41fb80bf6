"""Shared fixtures for relay-log-feed tests."""

from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest

from relay_log_feed.client.base import ApiClient
from relay_log_feed.types import LogFeedConfig, LogRecord

BASE_URL = "http://gateway.test"


def make_record(id: int, time: int, **overrides) -> LogRecord:
    fields = {
        "request_model_name": "gpt-4o",
        "channel_id": 1,
        "channel_name": "openai-main",
        "actual_model_name": "gpt-4o-2024-08-06",
        "input_tokens": 120,
        "output_tokens": 48,
        "first_token_latency_ms": 310,
        "total_latency_ms": 1420,
        "cost": 0.0021,
        "request_body": '{"model": "gpt-4o"}',
        "response_body": '{"id": "chatcmpl-1"}',
    }
    fields.update(overrides)
    return LogRecord(id=id, timestamp=time, **fields)


def make_records(count: int, start_id: int = 1, start_time: int = 10_000) -> list[LogRecord]:
    """*count* records, newest first, one second apart."""
    return [make_record(start_id + i, start_time - i) for i in range(count)]


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until true, yielding to the event loop in between."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class FakeGateway:
    """In-process stand-in for the gateway admin API, served via MockTransport."""

    def __init__(self, history: list[LogRecord] | None = None):
        self.history: list[LogRecord] = sorted(
            history or [], key=lambda r: r.timestamp, reverse=True,
        )
        self.requests: list[httpx.Request] = []
        self.list_pages: list[int] = []
        self.stream_tokens: list[str] = []
        self.list_failures = 0
        self.list_gate: asyncio.Event | None = None
        self.token_gate: asyncio.Event | None = None
        self.token_status = 200
        self.stream_status = 200
        self.envelope = True
        self.extra_rows: list[dict] = []
        self._frames: asyncio.Queue[str | None] = asyncio.Queue()
        self._token_seq = 0

    # -- test controls --

    def push(self, record: LogRecord) -> None:
        self.push_raw(json.dumps(record.to_wire()))

    def push_raw(self, data: str) -> None:
        self._frames.put_nowait(f"data: {data}\n\n")

    def end_stream(self) -> None:
        self._frames.put_nowait(None)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # -- routing --

    def _json(self, payload, status: int = 200) -> httpx.Response:
        if self.envelope:
            payload = {"code": status, "message": "success", "data": payload}
        return httpx.Response(status, json=payload)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/v1/log/list":
            page = int(request.url.params["page"])
            size = int(request.url.params["page_size"])
            self.list_pages.append(page)
            if self.list_gate is not None:
                await self.list_gate.wait()
            if self.list_failures:
                self.list_failures -= 1
                return httpx.Response(500, json={"code": 500, "message": "database is locked"})
            rows = [r.to_wire() for r in self.history[(page - 1) * size: page * size]]
            if page == 1:
                rows += self.extra_rows
            return self._json(rows or None)

        if path == "/api/v1/log/stream-token":
            if self.token_gate is not None:
                await self.token_gate.wait()
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"code": self.token_status, "message": "unauthorized"})
            self._token_seq += 1
            return self._json({"token": f"tok-{self._token_seq}"})

        if path == "/api/v1/log/stream":
            self.stream_tokens.append(request.url.params["token"])
            if self.stream_status != 200:
                return httpx.Response(self.stream_status, text="invalid token")
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=self._stream(),
            )

        if path == "/api/v1/log/clear" and request.method == "DELETE":
            self.history = []
            return self._json(None)

        return httpx.Response(404, json={"code": 404, "message": "not found"})

    async def _stream(self):
        yield b": connected\n\n"
        while True:
            frame = await self._frames.get()
            if frame is None:
                return
            yield frame.encode()


@pytest.fixture
def config() -> LogFeedConfig:
    return LogFeedConfig(base_url=BASE_URL, api_key="admin-key", page_size=20)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(history=make_records(45))


@pytest.fixture
def api_client(config, gateway) -> ApiClient:
    return ApiClient(config, transport=gateway.transport())
