"""Shared async HTTP client for the gateway admin API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..types import LogFeedConfig, LogFeedError

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` that speaks the admin API.

    Authenticated calls carry ``Authorization: Bearer <api_key>``. Responses
    in the gateway envelope ``{"code", "message", "data"}`` are unwrapped to
    ``data``; bare JSON bodies are returned as is. Every transport, status,
    or decode failure surfaces as ``LogFeedError``.
    """

    def __init__(
        self,
        config: LogFeedConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        headers = dict(config.extra_headers)
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            transport=transport,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    def path(self, endpoint: str) -> str:
        return f"{self.config.api_prefix.rstrip('/')}/{endpoint.lstrip('/')}"

    async def get_json(self, endpoint: str, params: dict | None = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def delete_json(self, endpoint: str) -> Any:
        return await self._request("DELETE", endpoint)

    async def _request(self, method: str, endpoint: str, params: dict | None = None) -> Any:
        url = self.path(endpoint)
        try:
            response = await self._client.request(method, url, params=params)
        except httpx.HTTPError as e:
            raise LogFeedError(f"HTTP error: {e}", endpoint=endpoint) from e

        if response.status_code >= 400:
            raise LogFeedError(
                f"HTTP {response.status_code}: {_error_message(response)}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            body = response.json()
        except (ValueError, RecursionError) as e:
            raise LogFeedError(
                f"Invalid JSON from {endpoint}: {e}",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from e
        return unwrap_envelope(body, endpoint)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


def unwrap_envelope(body: Any, endpoint: str = "") -> Any:
    """Return ``data`` from a gateway envelope, or *body* unchanged."""
    if isinstance(body, dict) and "data" in body and "code" in body:
        code = body.get("code")
        if isinstance(code, int) and code >= 400:
            raise LogFeedError(
                str(body.get("message") or f"request failed with code {code}"),
                endpoint=endpoint,
                status_code=code,
            )
        return body["data"]
    return body


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
