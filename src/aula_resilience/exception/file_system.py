# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""File system exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class FileSystemError(AppError):
    """Upload or file processing failure."""

    category = ErrorCategory.FILE_SYSTEM
    default_code = "FILE_OPERATION_FAILED"
    default_severity = Severity.MEDIUM
    default_retryable = True
    default_status_code = 500
    default_user_message = "Error al procesar el archivo. Intenta nuevamente o contacta soporte."
