# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Unknown exception."""

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory


class UnknownError(AppError):
    """Fallback for anything the classifier cannot place."""

    category = ErrorCategory.UNKNOWN
