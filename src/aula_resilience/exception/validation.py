# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""Validation exception."""

from __future__ import annotations

from typing import Any

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorCategory, Severity


class ValidationError(AppError):
    """Invalid user input, optionally with per-field messages."""

    category = ErrorCategory.VALIDATION
    default_code = "INVALID_INPUT"
    default_severity = Severity.LOW
    default_retryable = True
    default_status_code = 400
    default_user_message = "Por favor, revisa la información ingresada."

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        field_errors: dict[str, list[str]] | None = None,
        **kwargs: Any,
    ) -> None:
        self.field_errors = dict(field_errors or {})
        super().__init__(message, code, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field_errors"] = self.field_errors
        return data
