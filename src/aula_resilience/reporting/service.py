"""
Error reporting service.

Keeps a ring buffer of breadcrumbs (what the user did last) and one of
error reports. High and critical reports are forwarded to an external
sink; failures to forward are logged and otherwise ignored.

Usage:
```python
reporting = ErrorReportingService(sink=HttpReportSink("https://errors.example.cl/report"))
reporting.add_breadcrumb(BreadcrumbType.NAVIGATION, "Navigation to /admin/calendario")
report_id = reporting.report_error(exc, ErrorContext.ADMIN, user_id="u-1", user_role="ADMIN")
```
"""

from __future__ import annotations

import asyncio
import logging
import traceback
import uuid
from collections import deque
from typing import Any
from urllib.parse import urlparse

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorContext, Severity
from aula_resilience.exception.classifier import ErrorClassifier, should_log_error
from aula_resilience.reporting.models import (
    Breadcrumb,
    BreadcrumbType,
    ErrorMetrics,
    ErrorReport,
    HostEnvironment,
    TopError,
)
from aula_resilience.reporting.sink import ReportSink

logger = logging.getLogger(__name__)

_FORWARDED_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})
_TOP_ERRORS_LIMIT = 10


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _format_stack(raw: Any) -> str | None:
    # Classified errors that were never raised carry the trace on their cause.
    if isinstance(raw, AppError) and raw.__traceback__ is None and raw.cause is not None:
        raw = raw.cause
    if not isinstance(raw, BaseException) or raw.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(raw), raw, raw.__traceback__))


def _page_of(url: str) -> str:
    path = urlparse(url).path
    return path or url


class ErrorReportingService:
    """Breadcrumbs, error reports and their aggregates for one session."""

    def __init__(
        self,
        sink: ReportSink | None = None,
        *,
        max_breadcrumbs: int = 50,
        max_reports: int = 100,
        forwarded_breadcrumbs: int = 10,
        environment: HostEnvironment | None = None,
        enabled: bool = True,
    ) -> None:
        self._sink = sink
        self._breadcrumbs: deque[Breadcrumb] = deque(maxlen=max_breadcrumbs)
        self._reports: deque[ErrorReport] = deque(maxlen=max_reports)
        self._forwarded_breadcrumbs = forwarded_breadcrumbs
        self._environment = environment or HostEnvironment()
        self._enabled = enabled
        self._session_id = _new_id("session")
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def sink(self) -> ReportSink | None:
        return self._sink

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def set_environment(self, environment: HostEnvironment) -> None:
        self._environment = environment

    # === Breadcrumbs ===

    def add_breadcrumb(
        self,
        type: BreadcrumbType | str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not self._enabled:
            return
        self._breadcrumbs.append(Breadcrumb(type=BreadcrumbType(type), message=message, data=data))

    def get_breadcrumbs(self) -> list[Breadcrumb]:
        """Breadcrumbs, oldest first."""
        return list(self._breadcrumbs)

    # === Reports ===

    def _build_report(
        self,
        error: Any,
        context: ErrorContext | str,
        user_id: str | None,
        user_role: str | None,
        metadata: dict[str, Any] | None,
        url: str | None,
    ) -> ErrorReport:
        app_error = ErrorClassifier.classify(error)
        env = self._environment
        report = ErrorReport(
            id=_new_id("error"),
            error=app_error,
            session_id=self._session_id,
            context=ErrorContext(context),
            url=url or env.url,
            user_agent=env.user_agent,
            user_id=user_id,
            user_role=user_role,
            stack_trace=_format_stack(error),
            breadcrumbs=list(self._breadcrumbs),
            metadata={
                **(metadata or {}),
                "viewport": env.viewport,
                "timezone": env.timezone,
            },
        )
        self._reports.append(report)

        log_level = logging.ERROR if should_log_error(app_error) else logging.DEBUG
        logger.log(
            log_level,
            f"Error report {report.id}: {app_error.code} - {app_error.technical_message}",
            extra={"event": "error.reported", "data": app_error.to_dict()},
        )

        self.add_breadcrumb(
            BreadcrumbType.ERROR,
            f"Error: {app_error.user_message}",
            {
                "code": app_error.code,
                "severity": app_error.severity.value,
                "reportId": report.id,
            },
        )
        return report

    def _should_forward(self, report: ErrorReport) -> bool:
        return self._sink is not None and report.error.severity in _FORWARDED_SEVERITIES

    def report_error(
        self,
        error: Any,
        context: ErrorContext | str = ErrorContext.PUBLIC,
        user_id: str | None = None,
        user_role: str | None = None,
        metadata: dict[str, Any] | None = None,
        *,
        url: str | None = None,
    ) -> str:
        """
        Record an error and return the report id ("" when disabled).

        Forwarding runs in the background on the current event loop; see
        ``flush``.
        """
        if not self._enabled:
            return ""

        report = self._build_report(error, context, user_id, user_role, metadata, url)
        if self._should_forward(report):
            self._schedule_forward(report)
        return report.id

    async def areport_error(
        self,
        error: Any,
        context: ErrorContext | str = ErrorContext.PUBLIC,
        user_id: str | None = None,
        user_role: str | None = None,
        metadata: dict[str, Any] | None = None,
        *,
        url: str | None = None,
    ) -> str:
        """Like report_error, but waits for forwarding to finish."""
        if not self._enabled:
            return ""

        report = self._build_report(error, context, user_id, user_role, metadata, url)
        if self._should_forward(report):
            await self._forward(report)
        return report.id

    def _schedule_forward(self, report: ErrorReport) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._forward(report))
            return
        task = loop.create_task(self._forward(report))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _forward(self, report: ErrorReport) -> None:
        if self._sink is None:
            return
        try:
            await self._sink.send(report.to_payload(self._forwarded_breadcrumbs))
        except Exception as e:
            logger.warning(
                f"Failed to forward error report {report.id}: {e}",
                extra={"event": "report.forward_failed"},
            )
            return
        report.reported = True

    async def flush(self) -> None:
        """Wait for background forwarding started by report_error."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_reports(self, limit: int | None = None) -> list[ErrorReport]:
        """Reports, most recent first."""
        reports = list(reversed(self._reports))
        return reports[:limit] if limit else reports

    def get_metrics(self) -> ErrorMetrics:
        metrics = ErrorMetrics(total_errors=len(self._reports))
        groups: dict[str, TopError] = {}

        for report in self._reports:
            error = report.error
            category = error.category.value
            metrics.errors_by_category[category] = metrics.errors_by_category.get(category, 0) + 1
            severity = error.severity.value
            metrics.errors_by_severity[severity] = metrics.errors_by_severity.get(severity, 0) + 1
            context = report.context.value
            metrics.errors_by_context[context] = metrics.errors_by_context.get(context, 0) + 1
            page = _page_of(report.url)
            metrics.errors_by_page[page] = metrics.errors_by_page.get(page, 0) + 1

            key = f"{error.code}:{error.technical_message}"
            existing = groups.get(key)
            if existing is None:
                groups[key] = TopError(message=key, count=1, last_seen=report.timestamp)
            else:
                groups[key] = TopError(
                    message=key,
                    count=existing.count + 1,
                    last_seen=max(existing.last_seen, report.timestamp),
                )

        metrics.top_errors = sorted(groups.values(), key=lambda e: e.count, reverse=True)[
            :_TOP_ERRORS_LIMIT
        ]
        return metrics

    def clear(self) -> None:
        self._reports.clear()
        self._breadcrumbs.clear()
