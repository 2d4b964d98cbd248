# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
Exception base types.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from aula_resilience.exception.categories import ErrorCategory, ErrorContext, Severity


class AppError(Exception):
    """
    Classified platform error.

    Every failure that crosses the recovery boundary is one of these.
    Fields are fixed at construction; assigning to them afterwards raises
    ``AttributeError``.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    default_code: str = "GENERIC"
    default_severity: Severity = Severity.MEDIUM
    default_retryable: bool = True
    default_status_code: int | None = None
    default_user_message: str = "Ha ocurrido un error inesperado."

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        severity: Severity | None = None,
        retryable: bool | None = None,
        user_message: str | None = None,
        status_code: int | None = None,
        context: ErrorContext | str | None = None,
        user_role: str | None = None,
        cause: BaseException | None = None,
        timestamp: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.code = f"{self.category.value}_{code or self.default_code}"
        self.severity = Severity(severity) if severity is not None else self.default_severity
        self.retryable = self.default_retryable if retryable is None else retryable
        self.user_message = user_message or self.default_user_message
        self.technical_message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.context = ErrorContext(context) if context is not None else None
        self.user_role = user_role
        self.cause = cause
        self.timestamp = timestamp or datetime.now(timezone.utc)
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        # Interpreter-managed dunders (__traceback__, __notes__, ...) stay writable.
        if getattr(self, "_frozen", False) and not name.startswith("__"):
            raise AttributeError(f"{type(self).__name__} is immutable; cannot set {name!r}")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, severity={self.severity.value!r}, "
            f"retryable={self.retryable!r}, message={self.technical_message!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured, JSON-safe representation (for logs and reports)."""
        return {
            "code": self.code,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "user_message": self.user_message,
            "technical_message": self.technical_message,
            "timestamp": self.timestamp.isoformat(),
            "status_code": self.status_code,
            "context": self.context.value if self.context else None,
            "user_role": self.user_role,
        }
