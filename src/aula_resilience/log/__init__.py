# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
from aula_resilience.log.config import JsonFormatter, setup_logging
from aula_resilience.log.context import (
    bind_log_context,
    clear_log_context,
    get_log_context,
    set_log_context,
    LogContextScope,
)

__all__ = [
    "setup_logging",
    "bind_log_context",
    "clear_log_context",
    "get_log_context",
    "set_log_context",
    "LogContextScope",
    "JsonFormatter",
]
