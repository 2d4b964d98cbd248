# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Database exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class DatabaseError(AppError):
    """Database exception."""

    category = ErrorCategory.DATABASE
    default_code = "DB_CONNECTION_FAILED"
    default_severity = Severity.CRITICAL
    default_retryable = False
    default_status_code = 500
    default_user_message = "Error en la base de datos. Los administradores han sido notificados."
