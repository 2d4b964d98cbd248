"""
ResilienceContext: the stateful parts of the resilience layer, built once
per application and passed where they are needed.

Usage:
```python
config = resilience_configure()
resilience = ResilienceContext.from_config(config)

result = await resilience.execute(
    fetch_calendar,
    service="calendar",
    key="calendar:2026-10",
    user_role="PROFESOR",
)
if result.degraded:
    show_cached_banner()

await resilience.aclose()
```
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from aula_resilience.config import ResilienceConfig
from aula_resilience.degradation import DegradedResult, GracefulDegradation
from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorContext
from aula_resilience.exception.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from aula_resilience.exception.classifier import (
    ErrorClassifier,
    is_critical,
    is_retryable,
)
from aula_resilience.exception.retry import NO_FALLBACK, RetryHook, RetryOptions, with_retry
from aula_resilience.log import bind_log_context
from aula_resilience.notifications import ErrorNotificationManager, NotificationAction
from aula_resilience.reporting.models import HostEnvironment
from aula_resilience.reporting.service import ErrorReportingService
from aula_resilience.reporting.sink import HttpReportSink, ReportSink

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_ACTION_LABEL = "Reintentar"


def _build_reporting(
    config: ResilienceConfig,
    sink: ReportSink | None = None,
    environment: HostEnvironment | None = None,
) -> ErrorReportingService:
    """Reporting service for ``config``; an HttpReportSink when an endpoint is set."""
    reporting_config = config.reporting
    if sink is None and reporting_config.endpoint:
        sink = HttpReportSink(reporting_config.endpoint, timeout=reporting_config.timeout_seconds)
    return ErrorReportingService(
        sink,
        max_breadcrumbs=reporting_config.max_breadcrumbs,
        max_reports=reporting_config.max_reports,
        forwarded_breadcrumbs=reporting_config.forwarded_breadcrumbs,
        environment=environment,
        enabled=reporting_config.enabled,
    )


class ResilienceContext:
    """Breaker registry, degradation cache, notifications and reporting for one app."""

    def __init__(
        self,
        config: ResilienceConfig | None = None,
        *,
        breakers: CircuitBreakerRegistry | None = None,
        degradation: GracefulDegradation | None = None,
        notifications: ErrorNotificationManager | None = None,
        reporting: ErrorReportingService | None = None,
    ) -> None:
        self.config = config or ResilienceConfig()
        self.breakers = breakers or CircuitBreakerRegistry(self.config.circuit_breaker)
        self.degradation = degradation or GracefulDegradation(self.config.degradation.max_entries)
        self.notifications = notifications or ErrorNotificationManager(
            self.config.notifications.max_notifications,
            self.config.notifications.auto_dismiss_seconds,
        )
        self.reporting = reporting or _build_reporting(self.config)

    @classmethod
    def from_config(
        cls,
        config: ResilienceConfig | None = None,
        *,
        sink: ReportSink | None = None,
        environment: HostEnvironment | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> ResilienceContext:
        """
        Build every component from ``config``.

        The report sink defaults to an HttpReportSink when
        ``reporting.endpoint`` is configured.
        """
        config = config or ResilienceConfig()
        return cls(
            config,
            breakers=CircuitBreakerRegistry(config.circuit_breaker, clock=clock),
            degradation=GracefulDegradation(config.degradation.max_entries),
            notifications=ErrorNotificationManager(
                config.notifications.max_notifications,
                config.notifications.auto_dismiss_seconds,
                clock=clock,
            ),
            reporting=_build_reporting(config, sink, environment),
        )

    def retry_options(self, **overrides: Any) -> RetryOptions:
        """RetryOptions seeded from the configured defaults."""
        return RetryOptions.from_config(self.config.retry, **overrides)

    def get_circuit_breaker(self, service: str) -> CircuitBreaker:
        return self.breakers.get(service)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T] | T],
        *,
        service: str | None = None,
        key: str | None = None,
        fallback: Any = NO_FALLBACK,
        options: RetryOptions | None = None,
        user_id: str | None = None,
        user_role: str | None = None,
    ) -> DegradedResult[T]:
        """
        Run ``operation`` through retry, the ``service`` breaker and, when
        ``key`` is given, the degradation cache.

        Any error left at the end (served from a fallback or not) is
        reported.
        """
        options = options or self.retry_options()
        breaker = self.breakers.get(service) if service else None

        with bind_log_context(service=service, user_id=user_id, user_role=user_role):
            if key is not None:
                result = await self.degradation.get_data(
                    key, operation, fallback, options, breaker=breaker
                )
            else:
                if fallback is not NO_FALLBACK:
                    options = options.with_fallback(fallback)
                recovery = await with_retry(operation, options, breaker=breaker)
                result = DegradedResult(
                    data=recovery.data,
                    error=recovery.error,
                    degraded=recovery.fallback_used or not recovery.success,
                )

            if result.error is not None:
                metadata: dict[str, Any] = {"degraded": result.degraded}
                if service:
                    metadata["service"] = service
                if key is not None:
                    metadata["key"] = key
                self.reporting.report_error(
                    result.error,
                    options.context,
                    user_id=user_id,
                    user_role=user_role,
                    metadata=metadata,
                )
        return result

    def handle_error(
        self,
        error: Any,
        context: ErrorContext | str = ErrorContext.PUBLIC,
        on_retry: RetryHook | None = None,
    ) -> AppError:
        """
        Classify ``error`` and show it to the user.

        Retryable errors get a "Reintentar" action when ``on_retry`` is given.
        """
        app_error = ErrorClassifier.classify(error)
        actions: list[NotificationAction] = []
        if is_retryable(app_error) and on_retry is not None:
            actions.append(
                NotificationAction(
                    label=RETRY_ACTION_LABEL,
                    action=lambda: on_retry(1, app_error),
                )
            )
        self.notifications.notify(app_error, context, actions or None)
        return app_error

    async def recover_with(
        self,
        operation: Callable[[], Awaitable[T] | T],
        fallback: T,
        options: RetryOptions | None = None,
    ) -> T:
        """Value of ``operation``, or ``fallback`` with a notification when it fails."""
        base = options or self.retry_options()
        result = await with_retry(operation, base.with_fallback(fallback))
        if result.error is not None:
            self.notifications.notify(result.error, base.context)
        if not result.success:
            return fallback
        return result.data

    async def aclose(self) -> None:
        """Wait for pending report forwarding and close owned HTTP clients."""
        await self.reporting.flush()
        sink = self.reporting.sink
        if isinstance(sink, HttpReportSink):
            await sink.aclose()


ExceptionHandler = Callable[[asyncio.AbstractEventLoop, dict[str, Any]], object]


def install_global_handlers(
    context: ResilienceContext,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """
    Report exceptions nobody awaited on ``loop``.

    Critical ones are also shown to the user. The previous handler (or the
    loop's default) still runs afterwards. Returns a function that restores
    the previous handler.
    """
    loop = loop or asyncio.get_running_loop()
    previous: ExceptionHandler | None = loop.get_exception_handler()

    def handler(loop: asyncio.AbstractEventLoop, ctx: dict[str, Any]) -> None:
        raw = ctx.get("exception") or ctx.get("message", "Unhandled error")
        try:
            app_error = ErrorClassifier.classify(raw)
            context.reporting.report_error(
                raw,
                metadata={"source": "event_loop", "message": ctx.get("message")},
            )
            if is_critical(app_error):
                context.notifications.notify(app_error, ErrorContext.PUBLIC)
        except Exception as e:
            logger.error(f"[GlobalHandler] failed to report unhandled error: {e}")

        if previous is not None:
            previous(loop, ctx)
        else:
            loop.default_exception_handler(ctx)

    loop.set_exception_handler(handler)

    def uninstall() -> None:
        loop.set_exception_handler(previous)

    return uninstall
