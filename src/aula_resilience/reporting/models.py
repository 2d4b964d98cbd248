"""
Reporting data models.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorContext


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _json_safe(value: Any) -> Any:
    # Metadata is caller supplied; anything json can't encode is stringified.
    return json.loads(json.dumps(value, default=str))


class BreadcrumbType(str, Enum):
    """Breadcrumb type."""

    NAVIGATION = "navigation"
    USER = "user"
    API = "api"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Breadcrumb:
    """Something that happened shortly before an error."""

    type: BreadcrumbType
    message: str
    data: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "message": self.message,
            "data": _json_safe(self.data) if self.data is not None else None,
        }


@dataclass(frozen=True)
class HostEnvironment:
    """What the host knows about where the error happened."""

    url: str = "unknown"
    user_agent: str = "unknown"
    viewport: dict[str, int] | None = None
    timezone: str | None = None


@dataclass
class ErrorReport:
    """An error plus everything needed to debug it."""

    id: str
    error: AppError
    session_id: str
    context: ErrorContext
    url: str = "unknown"
    user_agent: str = "unknown"
    user_id: str | None = None
    user_role: str | None = None
    stack_trace: str | None = None
    breadcrumbs: list[Breadcrumb] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    reported: bool = False

    def to_payload(self, breadcrumb_limit: int = 10) -> dict[str, Any]:
        """JSON body sent to the external reporting endpoint."""
        recent = self.breadcrumbs[-breadcrumb_limit:] if breadcrumb_limit > 0 else []
        return {
            "id": self.id,
            "error": {
                "code": self.error.code,
                "message": self.error.technical_message,
                "severity": self.error.severity.value,
                "context": self.error.context.value if self.error.context else None,
            },
            "timestamp": self.timestamp.isoformat(),
            "url": self.url,
            "userId": self.user_id,
            "userRole": self.user_role,
            "sessionId": self.session_id,
            "context": self.context.value,
            "breadcrumbs": [crumb.to_dict() for crumb in recent],
            "metadata": _json_safe(self.metadata),
        }


@dataclass(frozen=True)
class TopError:
    """A group of identical errors."""

    message: str
    count: int
    last_seen: datetime


@dataclass
class ErrorMetrics:
    """Aggregates over the reports currently held in memory."""

    total_errors: int = 0
    errors_by_category: dict[str, int] = field(default_factory=dict)
    errors_by_severity: dict[str, int] = field(default_factory=dict)
    errors_by_context: dict[str, int] = field(default_factory=dict)
    errors_by_page: dict[str, int] = field(default_factory=dict)
    top_errors: list[TopError] = field(default_factory=list)
