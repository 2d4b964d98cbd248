# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Service exception."""

from __future__ import annotations

from typing import Any

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity

_RETRYABLE_MESSAGE = "Servicio temporalmente no disponible. Intenta nuevamente en unos minutos."
_FATAL_MESSAGE = "Error en el servicio. Por favor, contacta al administrador."


class ServiceError(AppError):
    """Backend dependency failure; retryable unless marked fatal."""

    category = ErrorCategory.SERVICE
    default_code = "SERVICE_UNAVAILABLE"
    default_severity = Severity.MEDIUM
    default_retryable = True
    default_status_code = 500
    default_user_message = _RETRYABLE_MESSAGE

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        retryable: bool = True,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("user_message", _RETRYABLE_MESSAGE if retryable else _FATAL_MESSAGE)
        super().__init__(message, code, retryable=retryable, **kwargs)
