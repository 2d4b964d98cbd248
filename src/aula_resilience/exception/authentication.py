# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Authentication exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class AuthenticationError(AppError):
    """Session missing or expired."""

    category = ErrorCategory.AUTHENTICATION
    default_code = "AUTH_FAILED"
    default_severity = Severity.HIGH
    default_retryable = False
    default_status_code = 401
    default_user_message = "Tu sesión ha expirado. Por favor, inicia sesión nuevamente."
