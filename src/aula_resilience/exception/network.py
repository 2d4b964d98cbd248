# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
Network exception.

Severity, retryability and user message depend on the HTTP status:
- no status / 0: connection never established (high)
- 5xx: server trouble (high)
- 429: throttled, not retried
"""

from __future__ import annotations

from typing import Any

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity

_NO_CONNECTION_MESSAGE = "No se pudo conectar con el servidor. Verifica tu conexión a internet."
_SERVER_MESSAGE = "El servidor está experimentando problemas. Intenta nuevamente en unos minutos."
_RATE_LIMIT_MESSAGE = "Demasiadas solicitudes. Espera un momento antes de intentar nuevamente."
_GENERIC_MESSAGE = "Error de conexión. Por favor, intenta nuevamente."


class NetworkError(AppError):
    """Transport-level failure."""

    category = ErrorCategory.NETWORK
    default_code = "CONNECTION_FAILED"
    default_severity = Severity.MEDIUM
    default_retryable = True
    default_user_message = _GENERIC_MESSAGE

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        severity = Severity.MEDIUM
        retryable = True
        if not status_code:
            user_message = _NO_CONNECTION_MESSAGE
            severity = Severity.HIGH
        elif status_code >= 500:
            user_message = _SERVER_MESSAGE
            severity = Severity.HIGH
        elif status_code == 429:
            user_message = _RATE_LIMIT_MESSAGE
            retryable = False
        else:
            user_message = _GENERIC_MESSAGE

        kwargs.setdefault("severity", severity)
        kwargs.setdefault("retryable", retryable)
        kwargs.setdefault("user_message", user_message)
        super().__init__(message, code, status_code=status_code, **kwargs)
