# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
aula_resilience - error classification, retry, circuit breaking, graceful
degradation and error reporting for the Aula school platform.

Quick start:
```python
from aula_resilience import ResilienceContext, resilience_configure

config = resilience_configure(reporting={"endpoint": "https://errores.aula.cl/api/report"})
resilience = ResilienceContext.from_config(config)

result = await resilience.execute(fetch_students, service="api", key="students:5A")
students = result.data
```

Lower-level building blocks live in submodules:
- Errors, retry, breakers: `from aula_resilience.exception import ErrorClassifier, with_retry, CircuitBreaker`
- Reporting: `from aula_resilience.reporting import ErrorReportingService, BreadcrumbRecorder`
"""

from aula_resilience.api_client import (
    ApiError,
    ApiRequestOptions,
    ApiResponse,
    api_request,
    api_with_recovery,
)
from aula_resilience.config import (
    ConfigurationError,
    DegradationConfig,
    NotificationConfig,
    ResilienceConfig,
    resilience_configure,
)
from aula_resilience.context import ResilienceContext, install_global_handlers
from aula_resilience.degradation import DegradationCacheEntry, DegradedResult, GracefulDegradation
from aula_resilience.exception import (
    NO_FALLBACK,
    AppError,
    CircuitBreaker,
    CircuitOpenError,
    ErrorCategory,
    ErrorClassifier,
    ErrorContext,
    RecoveryResult,
    RetryOptions,
    Severity,
    with_retry,
)
from aula_resilience.notifications import (
    ErrorNotification,
    ErrorNotificationManager,
    NotificationAction,
)
from aula_resilience.reporting import ErrorReportingService, HttpReportSink

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ResilienceConfig",
    "DegradationConfig",
    "NotificationConfig",
    "ConfigurationError",
    "resilience_configure",
    # Context
    "ResilienceContext",
    "install_global_handlers",
    # Errors
    "AppError",
    "ErrorCategory",
    "ErrorContext",
    "Severity",
    "ErrorClassifier",
    "CircuitOpenError",
    # Recovery
    "NO_FALLBACK",
    "RetryOptions",
    "RecoveryResult",
    "with_retry",
    "CircuitBreaker",
    "GracefulDegradation",
    "DegradationCacheEntry",
    "DegradedResult",
    # Notifications and reporting
    "ErrorNotification",
    "ErrorNotificationManager",
    "NotificationAction",
    "ErrorReportingService",
    "HttpReportSink",
    # API client
    "ApiError",
    "ApiRequestOptions",
    "ApiResponse",
    "api_request",
    "api_with_recovery",
]
