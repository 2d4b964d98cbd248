# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Authorization exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class AuthorizationError(AppError):
    """Role lacks permission for the action."""

    category = ErrorCategory.AUTHORIZATION
    default_code = "ACCESS_DENIED"
    default_severity = Severity.MEDIUM
    default_retryable = False
    default_status_code = 403
    default_user_message = "No tienes permisos para realizar esta acción."
