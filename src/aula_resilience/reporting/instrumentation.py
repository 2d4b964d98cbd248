"""
Instrumentation port.

The host (web app, worker, CLI) tells the reporting layer what happened;
the reporting layer never patches globals to find out. ``BreadcrumbRecorder``
turns those events into breadcrumbs, and ``BreadcrumbTransport`` does it
automatically for every request made through an httpx client.
"""

from __future__ import annotations

import time
from typing import Any, Protocol

import httpx

from aula_resilience.reporting.models import BreadcrumbType
from aula_resilience.reporting.service import ErrorReportingService

_TEXT_LIMIT = 50


class InstrumentationPort(Protocol):
    """Events the host environment reports."""

    def on_navigate(self, url: str) -> None:
        ...

    def on_user_action(
        self,
        element: str,
        *,
        text: str | None = None,
        element_id: str | None = None,
        class_name: str | None = None,
    ) -> None:
        ...

    def on_form_submit(
        self,
        action: str | None = None,
        method: str | None = None,
        form_id: str | None = None,
    ) -> None:
        ...

    def on_api_call(
        self,
        url: str,
        method: str = "GET",
        *,
        status: int | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        ...

    def on_resource_error(self, tag_name: str, source: str | None = None) -> None:
        ...


class BreadcrumbRecorder:
    """InstrumentationPort that records breadcrumbs on a reporting service."""

    def __init__(self, reporting: ErrorReportingService) -> None:
        self._reporting = reporting

    def on_navigate(self, url: str) -> None:
        self._reporting.add_breadcrumb(
            BreadcrumbType.NAVIGATION,
            f"Navigation to {url}",
            {"url": url},
        )

    def on_user_action(
        self,
        element: str,
        *,
        text: str | None = None,
        element_id: str | None = None,
        class_name: str | None = None,
    ) -> None:
        self._reporting.add_breadcrumb(
            BreadcrumbType.USER,
            f"Clicked {element.lower()}",
            {
                "text": text[:_TEXT_LIMIT] if text else text,
                "id": element_id,
                "className": class_name,
            },
        )

    def on_form_submit(
        self,
        action: str | None = None,
        method: str | None = None,
        form_id: str | None = None,
    ) -> None:
        self._reporting.add_breadcrumb(
            BreadcrumbType.USER,
            "Form submitted",
            {"action": action, "method": method, "id": form_id},
        )

    def on_api_call(
        self,
        url: str,
        method: str = "GET",
        *,
        status: int | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        data: dict[str, Any] = {"url": url, "method": method, "duration": duration_ms}
        if error is not None:
            data["error"] = error
            message = f"API Error {url}"
        else:
            data["status"] = status
            message = f"API {status} {url}"
        self._reporting.add_breadcrumb(BreadcrumbType.API, message, data)

    def on_resource_error(self, tag_name: str, source: str | None = None) -> None:
        self._reporting.add_breadcrumb(
            BreadcrumbType.ERROR,
            f"Resource failed to load: {source or 'unknown'}",
            {"type": "resource_error", "tagName": tag_name, "src": source},
        )


class BreadcrumbTransport(httpx.AsyncBaseTransport):
    """
    httpx transport wrapper that reports every request to an
    InstrumentationPort, including requests that fail before a response.

    Usage:
    ```python
    client = httpx.AsyncClient(transport=BreadcrumbTransport(recorder))
    ```
    """

    def __init__(
        self,
        port: InstrumentationPort,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._port = port
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        started = time.monotonic()
        try:
            response = await self._transport.handle_async_request(request)
        except Exception as e:
            self._port.on_api_call(
                url,
                request.method,
                duration_ms=(time.monotonic() - started) * 1000,
                error=str(e) or type(e).__name__,
            )
            raise
        self._port.on_api_call(
            url,
            request.method,
            status=response.status_code,
            duration_ms=(time.monotonic() - started) * 1000,
        )
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()
