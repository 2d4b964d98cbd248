"""
Logging setup for the aula_resilience logger tree.
"""

from __future__ import annotations

import json
import logging

from aula_resilience.log.context import LOG_CONTEXT_FIELDS, ContextFilter

_LOGGER_NAME = "aula_resilience"
_HANDLER_FLAG = "_aula_log_handler"

_LOG_FORMAT = (
    "%(asctime)s.%(msecs)03d %(levelname)-5s %(name)s - "
    "[event=%(event)s session_id=%(session_id)s user_id=%(user_id)s "
    "user_role=%(user_role)s service=%(service)s error_code=%(error_code)s] %(message)s"
)
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", "log"),
            "message": record.getMessage(),
        }
        for key in LOG_CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        data = getattr(record, "data", None)
        if data:
            payload["data"] = data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonFormatter()
    return logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)


def _ensure_handler(logger: logging.Logger, level: int, json_format: bool) -> None:
    for handler in logger.handlers:
        if getattr(handler, _HANDLER_FLAG, False):
            handler.setLevel(level)
            handler.setFormatter(_build_formatter(json_format))
            return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(json_format))
    handler.addFilter(ContextFilter())
    setattr(handler, _HANDLER_FLAG, True)
    logger.addHandler(handler)


def setup_logging(level: str | int = "INFO", *, json_format: bool = False) -> logging.Logger:
    """Configure the package logger; safe to call repeatedly."""
    logger = logging.getLogger(_LOGGER_NAME)
    parsed_level = _parse_level(level)
    logger.setLevel(parsed_level)
    logger.propagate = False
    _ensure_handler(logger, parsed_level, json_format)
    return logger
