"""Formatting helpers for rendering log records."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any


def format_time(timestamp: int) -> str:
    """Epoch seconds as local ``MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(timestamp).strftime("%m-%d %H:%M:%S")


def format_duration(ms: int | float) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.2f}s"


def safe_parse_json(content: str | None) -> tuple[bool, Any]:
    """Parse request/response bodies, falling back to the raw text."""
    if not content:
        return False, None
    try:
        return True, json.loads(content)
    except json.JSONDecodeError:
        return False, content
