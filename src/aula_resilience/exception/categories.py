# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
Error taxonomy enums.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Error category (value is the error code prefix)."""

    AUTHENTICATION = "AUTH"
    AUTHORIZATION = "AUTHZ"
    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    SERVICE = "SERVICE"
    DATABASE = "DATABASE"
    FILE_SYSTEM = "FILE_SYSTEM"
    UI = "UI"
    UNKNOWN = "UNKNOWN"


class Severity(str, Enum):
    """How loud an error should be."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorContext(str, Enum):
    """Area of the platform an error surfaced in."""

    PUBLIC = "public"
    AUTH = "auth"
    ADMIN = "admin"
