# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
from aula_resilience.reporting.config import ReportingConfig
from aula_resilience.reporting.instrumentation import (
    BreadcrumbRecorder,
    BreadcrumbTransport,
    InstrumentationPort,
)
from aula_resilience.reporting.models import (
    Breadcrumb,
    BreadcrumbType,
    ErrorMetrics,
    ErrorReport,
    HostEnvironment,
    TopError,
)
from aula_resilience.reporting.service import ErrorReportingService
from aula_resilience.reporting.sink import HttpReportSink, LoggingReportSink, ReportSink

__all__ = [
    "ReportingConfig",
    "Breadcrumb",
    "BreadcrumbType",
    "ErrorMetrics",
    "ErrorReport",
    "HostEnvironment",
    "TopError",
    "ErrorReportingService",
    "ReportSink",
    "HttpReportSink",
    "LoggingReportSink",
    "InstrumentationPort",
    "BreadcrumbRecorder",
    "BreadcrumbTransport",
]
