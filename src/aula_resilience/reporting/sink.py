"""
External report sinks.

A sink receives the JSON payload of high and critical reports. Sending is
best-effort: the reporting service logs and drops sink failures.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)


@runtime_checkable
class ReportSink(Protocol):
    """Destination for forwarded error reports."""

    async def send(self, payload: dict[str, Any]) -> None:
        ...


class HttpReportSink:
    """POSTs report payloads to an HTTP endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 5.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._http_client = client
        self._owns_client = client is None
        self._transport = transport
        self._client_loop: asyncio.AbstractEventLoop | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        loop = asyncio.get_running_loop()
        # An owned client cannot be reused once the loop that created it is gone.
        stale = self._owns_client and self._client_loop is not loop
        if self._http_client is None or self._http_client.is_closed or stale:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
            self._owns_client = True
            self._client_loop = loop
        return self._http_client

    async def send(self, payload: dict[str, Any]) -> None:
        client = await self._ensure_client()
        response = await client.post(self.endpoint, json=payload)
        response.raise_for_status()

    async def aclose(self) -> None:
        client = self._http_client
        if self._owns_client and client is not None and not client.is_closed:
            if self._client_loop is asyncio.get_running_loop():
                await client.aclose()
        self._http_client = None
        self._client_loop = None


class LoggingReportSink:
    """Writes forwarded reports to the log (useful in development)."""

    def __init__(self, level: int = logging.ERROR) -> None:
        self._level = level

    async def send(self, payload: dict[str, Any]) -> None:
        logger.log(
            self._level,
            f"Error report {payload.get('id')}: {payload.get('error', {}).get('code')}",
            extra={"event": "report.forwarded", "data": payload},
        )
