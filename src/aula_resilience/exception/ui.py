# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""UI exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class UIError(AppError):
    """Rendering or internal programming error."""

    category = ErrorCategory.UI
    default_code = "RENDER_FAILED"
    default_severity = Severity.LOW
    default_retryable = True
    default_user_message = "Error en la interfaz. Intenta recargar la página."
