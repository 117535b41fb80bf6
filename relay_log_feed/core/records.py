"""Decoding of gateway log payloads into LogRecord values."""

from __future__ import annotations

import json
from typing import Any

from ..types import LogRecord, LogRecordParseError

# wire name -> (attribute, type)
_OPTIONAL_FIELDS: dict[str, tuple[str, type]] = {
    "request_model_name": ("request_model_name", str),
    "channel": ("channel_id", int),
    "channel_name": ("channel_name", str),
    "actual_model_name": ("actual_model_name", str),
    "input_tokens": ("input_tokens", int),
    "output_tokens": ("output_tokens", int),
    "ftut": ("first_token_latency_ms", int),
    "use_time": ("total_latency_ms", int),
    "cost": ("cost", float),
    "request_content": ("request_body", str),
    "response_content": ("response_body", str),
}


def _require_int(data: dict, key: str) -> int:
    if key not in data:
        raise LogRecordParseError(f"missing required field '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise LogRecordParseError(f"field '{key}' must be an integer, got {value!r}")
    return value


def _coerce(key: str, value: Any, kind: type) -> Any:
    if value is None:
        return kind()
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise LogRecordParseError(f"field '{key}' must be a number, got {value!r}")
        return float(value)
    if kind is int:
        # JSON encoders may emit whole numbers as 12.0
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise LogRecordParseError(f"field '{key}' must be an integer, got {value!r}")
        return value
    if not isinstance(value, str):
        raise LogRecordParseError(f"field '{key}' must be a string, got {value!r}")
    return value


def record_from_wire(data: Any) -> LogRecord:
    """Build a LogRecord from a decoded JSON object using wire field names."""
    if not isinstance(data, dict):
        raise LogRecordParseError(f"log payload must be an object, got {type(data).__name__}")

    kwargs: dict[str, Any] = {
        "id": _require_int(data, "id"),
        "timestamp": _require_int(data, "time"),
    }
    for wire_name, (attr, kind) in _OPTIONAL_FIELDS.items():
        if wire_name in data:
            kwargs[attr] = _coerce(wire_name, data[wire_name], kind)

    error = data.get("error")
    if error is not None and not isinstance(error, str):
        raise LogRecordParseError(f"field 'error' must be a string, got {error!r}")
    kwargs["error"] = error or None

    return LogRecord(**kwargs)


def parse_record(payload: str | bytes) -> LogRecord:
    """Decode one JSON-encoded record, as carried by a stream event."""
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise LogRecordParseError(f"invalid JSON: {e}") from e
    return record_from_wire(data)
