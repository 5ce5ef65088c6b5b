"""
Host environment access behind a small interface.

The catalog loader never touches env vars or sockets directly: it asks a `Platform`
for the current origin/port and for JSON documents, so it can be driven by a fake
in tests.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class PlatformError(RuntimeError):
    """Base error for platform access."""


class HttpGetError(PlatformError):
    """A GET failed: network error, non-2xx status or a body that is not JSON."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"GET {url} failed: {message}")
        self.url = url


class Platform(Protocol):
    def current_origin(self) -> str | None: ...

    def current_port(self) -> str | None: ...

    async def http_get(self, url: str) -> Any: ...


class HttpxPlatform:
    """
    `Platform` backed by an httpx `AsyncClient`.

    Relative URLs (`/config.json`) are resolved against the origin. The client is owned
    by the caller unless it was created here; `aclose()` only closes an owned client.
    """

    def __init__(
        self,
        *,
        origin: str | None = None,
        port: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._origin = origin.rstrip("/") if origin else None
        self._port = port
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    def current_origin(self) -> str | None:
        return self._origin

    def current_port(self) -> str | None:
        return self._port

    def absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        if self._origin is None:
            raise HttpGetError(url, "relative URL without a known origin")
        return f"{self._origin}/{url.lstrip('/')}"

    async def http_get(self, url: str) -> Any:
        target = self.absolute_url(url)
        try:
            resp = await self._client.get(target)
        except httpx.HTTPError as e:
            raise HttpGetError(target, f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise HttpGetError(target, f"HTTP {resp.status_code} {resp.reason_phrase}")
        try:
            return resp.json()
        except ValueError as e:
            raise HttpGetError(target, "response is not JSON") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
