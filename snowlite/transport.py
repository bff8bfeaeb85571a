"""
HTTP transport used by the client.

The client only needs ``request(method, url, headers, json) -> status, body``.
Connection pooling, TLS and socket-level retries are left to httpx.

Usage:
    transport = HttpxTransport(timeout=30.0)
    response = await transport.request("GET", url, headers={...})
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> TransportResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        """
        Args:
            client: Client to send requests with; created lazily when omitted
            timeout: Request timeout in seconds for a lazily created client
        """
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        response = await self._get_client().request(
            method, url, headers=dict(headers), json=json, params=params
        )
        return TransportResponse(
            status_code=response.status_code,
            text=response.text,
            headers=response.headers,
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
