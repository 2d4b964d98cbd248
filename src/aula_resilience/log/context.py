"""
Per-task log context.

Request handlers bind who is acting (session, user, role) once; every log
record emitted inside that scope carries those fields.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar, Token
from typing import Any

LOG_CONTEXT_FIELDS: tuple[str, ...] = (
    "session_id",
    "user_id",
    "user_role",
    "request_id",
    "service",
    "context",
)

# Filled from an error's to_dict() payload when one is attached as ``data``.
_ERROR_FIELDS: tuple[str, ...] = ("code", "severity")

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("aula_log_context", default=None)


def _known_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if key in LOG_CONTEXT_FIELDS}


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get() or {})


def set_log_context(**fields: Any) -> None:
    _log_context.set(_known_fields(fields))


def clear_log_context() -> None:
    _log_context.set({})


class LogContextScope:
    """Restores the previous log context on exit."""

    def __init__(self, token: Token) -> None:
        self._token = token

    def __enter__(self) -> LogContextScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        _log_context.reset(self._token)


def bind_log_context(**fields: Any) -> LogContextScope:
    """Merge ``fields`` into the current context until the scope exits."""
    merged = {**get_log_context(), **_known_fields(fields)}
    return LogContextScope(_log_context.set(merged))


class ContextFilter(logging.Filter):
    """Adds context fields, ``event`` and error fields to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_log_context()
        for key in LOG_CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, ctx.get(key))

        if not hasattr(record, "event"):
            record.event = "log"

        data = getattr(record, "data", None)
        if data is not None and not isinstance(data, dict):
            data = {"value": data}
        record.data = data

        for key in _ERROR_FIELDS:
            attr = f"error_{key}"
            if not hasattr(record, attr):
                setattr(record, attr, data.get(key) if data else None)

        return True
