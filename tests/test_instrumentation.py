"""
Instrumentation port tests.

Module under test: aula_resilience.reporting.instrumentation
"""

from __future__ import annotations

import httpx
import pytest

from aula_resilience.reporting import (
    BreadcrumbRecorder,
    BreadcrumbTransport,
    BreadcrumbType,
    ErrorReportingService,
)


@pytest.fixture
def reporting():
    return ErrorReportingService()


@pytest.fixture
def recorder(reporting):
    return BreadcrumbRecorder(reporting)


def test_navigation(recorder, reporting) -> None:
    recorder.on_navigate("/apoderado/asistencia")

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.type == BreadcrumbType.NAVIGATION
    assert crumb.message == "Navigation to /apoderado/asistencia"
    assert crumb.data == {"url": "/apoderado/asistencia"}


def test_user_action_truncates_text(recorder, reporting) -> None:
    recorder.on_user_action("BUTTON", text="x" * 80, element_id="save", class_name="btn")

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.type == BreadcrumbType.USER
    assert crumb.message == "Clicked button"
    assert crumb.data["text"] == "x" * 50
    assert crumb.data["id"] == "save"


def test_form_submit(recorder, reporting) -> None:
    recorder.on_form_submit("/api/asistencia", "post", "attendance-form")

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.message == "Form submitted"
    assert crumb.data == {"action": "/api/asistencia", "method": "post", "id": "attendance-form"}


def test_api_call(recorder, reporting) -> None:
    recorder.on_api_call("/api/cursos", "GET", status=200, duration_ms=12.5)
    recorder.on_api_call("/api/cursos", "POST", duration_ms=3, error="connection reset")

    ok, failed = reporting.get_breadcrumbs()
    assert ok.message == "API 200 /api/cursos"
    assert ok.data["status"] == 200
    assert failed.message == "API Error /api/cursos"
    assert failed.data["error"] == "connection reset"


def test_resource_error(recorder, reporting) -> None:
    recorder.on_resource_error("IMG", "/logo.png")

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.type == BreadcrumbType.ERROR
    assert crumb.message == "Resource failed to load: /logo.png"


@pytest.mark.asyncio
async def test_transport_records_responses(recorder, reporting) -> None:
    inner = httpx.MockTransport(lambda request: httpx.Response(404))
    async with httpx.AsyncClient(transport=BreadcrumbTransport(recorder, inner)) as client:
        await client.get("https://api.aula.cl/cursos/99")

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.type == BreadcrumbType.API
    assert crumb.message == "API 404 https://api.aula.cl/cursos/99"
    assert crumb.data["method"] == "GET"
    assert crumb.data["duration"] >= 0


@pytest.mark.asyncio
async def test_transport_records_failures(recorder, reporting) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        transport=BreadcrumbTransport(recorder, httpx.MockTransport(handler))
    ) as client:
        with pytest.raises(httpx.ConnectError):
            await client.post("https://api.aula.cl/asistencia", json={})

    crumb = reporting.get_breadcrumbs()[0]
    assert crumb.message == "API Error https://api.aula.cl/asistencia"
    assert crumb.data["error"] == "connection refused"
