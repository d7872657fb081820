"""HTTP transport shared by all provider adapters.

Wraps a single httpx.AsyncClient and maps httpx failures onto the
TransportError / VendorError taxonomy. No provider logic lives here.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ollamachat.errors import TransportError, VendorError

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

_TRANSIENT_ERRORS = (
    httpx.TimeoutException,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


def _wrap(exc: httpx.HTTPError, url: str) -> TransportError:
    transient = isinstance(exc, _TRANSIENT_ERRORS)
    return TransportError(f"{type(exc).__name__} for {url}: {exc}", transient=transient)


class HttpTransport:
    """Issues JSON requests with a per-call timeout."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float,
    ) -> Any:
        try:
            resp = await self._client.get(url, headers={**JSON_HEADERS, **(headers or {})}, params=params, timeout=timeout)
        except httpx.HTTPError as exc:
            raise _wrap(exc, url) from exc
        return self._decode(resp)

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float,
    ) -> Any:
        try:
            resp = await self._client.post(
                url, json=body, headers={**JSON_HEADERS, **(headers or {})}, params=params, timeout=timeout
            )
        except httpx.HTTPError as exc:
            raise _wrap(exc, url) from exc
        return self._decode(resp)

    async def stream_lines(
        self,
        url: str,
        body: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        timeout: float,
    ) -> AsyncIterator[str]:
        """POST and yield response lines as they arrive."""
        try:
            async with self._client.stream(
                "POST", url, json=body, headers={**JSON_HEADERS, **(headers or {})}, timeout=timeout
            ) as resp:
                if not (200 <= resp.status_code < 300):
                    await resp.aread()
                    raise VendorError(resp.status_code, resp.text)
                async for line in resp.aiter_lines():
                    yield line
        except httpx.HTTPError as exc:
            raise _wrap(exc, url) from exc

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not (200 <= resp.status_code < 300):
            raise VendorError(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {resp.request.url}") from exc
