"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml

from .types import LogFeedConfig

CONFIG_FILENAMES = [
    "relay-log-feed.yaml",
    "relay-log-feed.yml",
    "relay-log-feed.json",
]

ENV_BASE_URL = "RELAY_LOG_FEED_BASE_URL"
ENV_API_KEY = "RELAY_LOG_FEED_API_KEY"


def _discover_config() -> Path | None:
    """Search CWD then parent dirs up to home for a config file."""
    cwd = Path.cwd()
    home = Path.home()
    search = cwd
    while True:
        for name in CONFIG_FILENAMES:
            candidate = search / name
            if candidate.is_file():
                return candidate
        if search == home or search == search.parent:
            break
        search = search.parent
    return None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _build_config(raw: dict[str, Any]) -> LogFeedConfig:
    """Build a LogFeedConfig from a raw dict, applying env overrides."""
    api_raw = raw.get("api", {})
    history_raw = raw.get("history", {})

    base_url = os.environ.get(ENV_BASE_URL) or api_raw.get(
        "base_url", "http://127.0.0.1:8080"
    )
    api_key = os.environ.get(ENV_API_KEY) or api_raw.get("api_key", "")

    return LogFeedConfig(
        base_url=base_url.rstrip("/"),
        api_prefix=api_raw.get("prefix", "/api/v1"),
        api_key=api_key,
        page_size=history_raw.get("page_size", 20),
        timeout=api_raw.get("timeout", 30.0),
        connect_timeout=api_raw.get("connect_timeout", 10.0),
        start_time=_optional_int(history_raw.get("start_time")),
        end_time=_optional_int(history_raw.get("end_time")),
        extra_headers=dict(api_raw.get("headers", {}) or {}),
    )


def validate_config(config: LogFeedConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    if not config.base_url.startswith(("http://", "https://")):
        errors.append(f"base_url must be an http(s) URL, got '{config.base_url}'")

    if config.api_prefix and not config.api_prefix.startswith("/"):
        errors.append(f"api prefix must start with '/', got '{config.api_prefix}'")

    if config.page_size < 1:
        errors.append("page_size must be >= 1")

    if config.timeout <= 0 or config.connect_timeout <= 0:
        errors.append("timeout and connect_timeout must be > 0")

    if (
        config.start_time is not None
        and config.end_time is not None
        and config.start_time > config.end_time
    ):
        errors.append(
            f"start_time ({config.start_time}) must be <= "
            f"end_time ({config.end_time})"
        )

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
) -> LogFeedConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if config_dict is not None:
        return _build_config(config_dict)

    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_config()

    if path is None:
        return _build_config({})

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    if path.suffix == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text) or {}

    return _build_config(raw)
