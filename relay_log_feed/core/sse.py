"""Minimal server-sent events decoder over an async line iterator."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass


@dataclass
class SSEEvent:
    data: str
    event: str = "message"
    id: str | None = None


async def iter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[SSEEvent]:
    """Yield one SSEEvent per blank-line-terminated frame.

    ``data:`` lines are joined with newlines, comment lines (``:``) and
    unknown fields are ignored. A frame with no data lines is not dispatched.
    A trailing frame without a terminating blank line is dropped, matching
    browser EventSource behaviour.
    """
    data_lines: list[str] = []
    event_type = ""
    event_id: str | None = None

    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data_lines:
                yield SSEEvent(
                    data="\n".join(data_lines),
                    event=event_type or "message",
                    id=event_id,
                )
            data_lines = []
            event_type = ""
            continue
        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            data_lines.append(value)
        elif name == "event":
            event_type = value
        elif name == "id":
            event_id = value
