# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
Error classifier.

Maps anything raised by an operation onto the platform taxonomy. This is
the single place that decides whether a failure is worth retrying and how
loud it should be.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from aula_resilience.exception.authentication import AuthenticationError
from aula_resilience.exception.authorization import AuthorizationError
from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, ErrorContext, Severity
from aula_resilience.exception.database import DatabaseError
from aula_resilience.exception.file_system import FileSystemError
from aula_resilience.exception.network import NetworkError
from aula_resilience.exception.service import ServiceError
from aula_resilience.exception.ui import UIError
from aula_resilience.exception.unknown import UnknownError
from aula_resilience.exception.validation import ValidationError

# Programming errors surface to users as interface failures.
_RUNTIME_ERROR_TYPES: tuple[type[BaseException], ...] = (
    TypeError,
    AttributeError,
    NameError,
    KeyError,
    IndexError,
)

_NETWORK_HINTS = ("fetch", "network")
_VALIDATION_HINTS = ("validation", "invalid")


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _extract_status_code(raw: Any) -> int | None:
    if isinstance(raw, Mapping):
        for key in ("status_code", "statusCode", "status"):
            status = _to_int(raw.get(key))
            if status is not None:
                return status
        return None

    status = _to_int(getattr(raw, "status_code", None))
    if status is not None:
        return status
    status = _to_int(getattr(raw, "status", None))
    if status is not None:
        return status
    response = getattr(raw, "response", None)
    if response is None:
        return None
    return _to_int(getattr(response, "status_code", None))


def _extract_message(raw: Any) -> str:
    if raw is None:
        return "Unknown error"
    if isinstance(raw, str):
        return raw or "Unknown error"
    if isinstance(raw, Mapping):
        message = raw.get("message")
        return str(message) if message else "Unknown error"
    message = str(raw)
    if message:
        return message
    return raw.__class__.__name__


class ErrorClassifier:
    """
    Error classifier.

    Checks, in order:
    1. already classified -> returned untouched
    2. Python runtime-type errors -> UI
    3. message hints ("fetch"/"network" -> Network, "validation"/"invalid" -> Validation)
    4. HTTP-like status code (401, 403, other 4xx, 5xx)
    5. transport failures -> Network
    6. other OS errors -> FileSystem
    7. anything else -> Unknown (medium, retryable)
    """

    @classmethod
    def classify(cls, raw: Any) -> AppError:
        if isinstance(raw, AppError):
            return raw

        cause = raw if isinstance(raw, BaseException) else None
        message = _extract_message(raw)

        if isinstance(raw, _RUNTIME_ERROR_TYPES):
            return UIError(message, "RUNTIME_ERROR", cause=cause)

        if any(hint in message for hint in _NETWORK_HINTS):
            return NetworkError(message, "FETCH_FAILED", _extract_status_code(raw), cause=cause)

        if any(hint in message for hint in _VALIDATION_HINTS):
            return ValidationError(message, cause=cause)

        status_code = _extract_status_code(raw)
        if status_code is not None:
            if status_code == 401:
                return AuthenticationError(message, cause=cause)
            if status_code == 403:
                return AuthorizationError(message, cause=cause)
            if 400 <= status_code < 500:
                return ValidationError(message, status_code=status_code, cause=cause)
            if status_code >= 500:
                return ServiceError(message, status_code=status_code, cause=cause)

        if isinstance(raw, (httpx.TimeoutException, TimeoutError)):
            return NetworkError(message, "TIMEOUT", cause=cause)

        if isinstance(raw, (httpx.TransportError, ConnectionError)):
            return NetworkError(message, cause=cause)

        if isinstance(raw, OSError):
            return FileSystemError(message, cause=cause)

        return UnknownError(message, "UNCLASSIFIED", cause=cause)

    @classmethod
    def is_retryable(cls, raw: Any) -> bool:
        return cls.classify(raw).retryable


def create_error(
    category: ErrorCategory,
    message: str,
    code: str | None = None,
    context: ErrorContext | str | None = None,
    user_role: str | None = None,
) -> AppError:
    """Build the error class that owns ``category``."""
    if category == ErrorCategory.AUTHENTICATION:
        return AuthenticationError(message, code, context=context, user_role=user_role)
    if category == ErrorCategory.AUTHORIZATION:
        return AuthorizationError(message, code, context=context, user_role=user_role)
    if category == ErrorCategory.VALIDATION:
        return ValidationError(message, code, context=context)
    if category == ErrorCategory.NETWORK:
        return NetworkError(message, code, context=context)
    if category == ErrorCategory.SERVICE:
        return ServiceError(message, code, context=context)
    if category == ErrorCategory.DATABASE:
        return DatabaseError(message, code, context=context)
    if category == ErrorCategory.FILE_SYSTEM:
        return FileSystemError(message, code, context=context)
    if category == ErrorCategory.UI:
        return UIError(message, code, context=context)
    return UnknownError(message, code, context=context, user_role=user_role)


def is_critical(error: AppError) -> bool:
    return error.severity == Severity.CRITICAL


def is_retryable(error: AppError) -> bool:
    return error.retryable


def should_notify_user(error: AppError) -> bool:
    return error.severity != Severity.LOW


def should_log_error(error: AppError) -> bool:
    return error.severity != Severity.LOW


@dataclass(frozen=True)
class FormattedError:
    """User-facing rendering of an error."""

    title: str
    message: str
    show_technical: bool


# severity -> (public title, staff title)
_TITLES: dict[Severity, tuple[str, str]] = {
    Severity.CRITICAL: ("¡Ups! Problema técnico", "Error Crítico"),
    Severity.HIGH: ("Problema temporal", "Error Importante"),
    Severity.MEDIUM: ("Pequeño inconveniente", "Error"),
    Severity.LOW: ("Información", "Advertencia"),
}


def format_error_for_context(
    error: AppError,
    context: ErrorContext | str = ErrorContext.PUBLIC,
) -> FormattedError:
    """Pick title and visibility for the given context.

    Technical details are only shown in the auth and admin areas.
    """
    context = ErrorContext(context)
    public_title, staff_title = _TITLES.get(error.severity, ("Error", "Error"))
    return FormattedError(
        title=public_title if context == ErrorContext.PUBLIC else staff_title,
        message=error.user_message,
        show_technical=context in (ErrorContext.ADMIN, ErrorContext.AUTH),
    )
