# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Unified exports for exception and resilience modules."""

from aula_resilience.exception.authentication import AuthenticationError
from aula_resilience.exception.authorization import AuthorizationError
from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, ErrorContext, Severity
from aula_resilience.exception.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerState,
    CircuitOpenError,
    CircuitState,
    with_circuit_breaker,
)
from aula_resilience.exception.classifier import (
    ErrorClassifier,
    FormattedError,
    create_error,
    format_error_for_context,
    is_critical,
    is_retryable,
    should_log_error,
    should_notify_user,
)
from aula_resilience.exception.config import (
    CircuitBreakerConfig,
    CircuitBreakerSettings,
    RetryConfig,
)
from aula_resilience.exception.database import DatabaseError
from aula_resilience.exception.file_system import FileSystemError
from aula_resilience.exception.network import NetworkError
from aula_resilience.exception.retry import (
    NO_FALLBACK,
    RecoveryResult,
    RetryAttempt,
    RetryOptions,
    calculate_retry_delay,
    recoverable,
    with_retry,
)
from aula_resilience.exception.service import ServiceError
from aula_resilience.exception.ui import UIError
from aula_resilience.exception.unknown import UnknownError
from aula_resilience.exception.validation import ValidationError

__all__ = [
    "AppError",
    "ErrorCategory",
    "ErrorContext",
    "Severity",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "NetworkError",
    "ServiceError",
    "DatabaseError",
    "FileSystemError",
    "UIError",
    "UnknownError",
    "ErrorClassifier",
    "FormattedError",
    "create_error",
    "format_error_for_context",
    "is_critical",
    "is_retryable",
    "should_log_error",
    "should_notify_user",
    "RetryConfig",
    "CircuitBreakerConfig",
    "CircuitBreakerSettings",
    "NO_FALLBACK",
    "RecoveryResult",
    "RetryAttempt",
    "RetryOptions",
    "calculate_retry_delay",
    "recoverable",
    "with_retry",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerState",
    "CircuitOpenError",
    "CircuitState",
    "with_circuit_breaker",
]
