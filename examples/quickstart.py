"""
aula_resilience quickstart

Shows:
1. Loading configuration and logging with resilience_configure
2. Running a flaky call through retry, a circuit breaker and the degradation cache
3. Breadcrumbs recorded by an instrumented httpx client
4. Notifications and error metrics

Run:
    python examples/quickstart.py

Optional configuration:
    export AULA_REPORTING_ENDPOINT="https://errores.aula.cl/api/report"
    export AULA_LOG_LEVEL="DEBUG"
"""

import asyncio

import httpx

from aula_resilience import ResilienceContext, resilience_configure
from aula_resilience.api_client import api_request
from aula_resilience.reporting import BreadcrumbRecorder, BreadcrumbTransport, HostEnvironment

_calls = {"calendar": 0}


def _fake_school_api(request: httpx.Request) -> httpx.Response:
    """Calendar endpoint that works once, then fails twice, then recovers."""
    _calls["calendar"] += 1
    if _calls["calendar"] in (2, 3):
        return httpx.Response(503)
    return httpx.Response(200, json={"events": ["Reunión de apoderados", "Consejo de profesores"]})


async def main() -> None:
    config = resilience_configure(retry={"max_retries": 1, "retry_delay_ms": 200})
    resilience = ResilienceContext.from_config(
        config,
        environment=HostEnvironment(url="https://aula.cl/admin/calendario", user_agent="quickstart"),
    )
    resilience.notifications.subscribe(
        lambda active: print(f"[toast] {[n.error.user_message for n in active]}")
    )

    recorder = BreadcrumbRecorder(resilience.reporting)
    recorder.on_navigate("/admin/calendario")
    transport = BreadcrumbTransport(recorder, httpx.MockTransport(_fake_school_api))

    async with httpx.AsyncClient(transport=transport) as client:

        async def fetch_calendar():
            response = await api_request(
                "https://api.aula.cl/calendario/2026-10",
                user_role="ADMIN",
                client=client,
            )
            return response.data

        for round_number in range(1, 4):
            result = await resilience.execute(
                fetch_calendar,
                service="calendar",
                key="calendar:2026-10",
                user_role="ADMIN",
            )
            banner = " (mostrando datos en caché)" if result.degraded else ""
            print(f"round {round_number}: {result.data}{banner}")
            if result.error is not None:
                resilience.handle_error(result.error, "admin")

    for crumb in resilience.reporting.get_breadcrumbs():
        print(f"breadcrumb: {crumb.type.value} {crumb.message}")

    metrics = resilience.reporting.get_metrics()
    print(f"errors: {metrics.total_errors} by category {metrics.errors_by_category}")

    await resilience.aclose()


if __name__ == "__main__":
    asyncio.run(main())
