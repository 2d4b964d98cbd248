"""
Error reporting configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ReportingConfig(BaseModel):
    """
    Error reporting configuration

    High and critical reports are POSTed to ``endpoint`` when it is set;
    everything is kept in memory either way.
    """

    enabled: bool = Field(default=True, description="Record breadcrumbs and reports")
    endpoint: str | None = Field(default=None, description="External reporting endpoint")
    timeout_seconds: float = Field(default=5.0, gt=0, description="Timeout for forwarding a report")
    max_breadcrumbs: int = Field(default=50, ge=1, description="Breadcrumb ring buffer capacity")
    max_reports: int = Field(default=100, ge=1, description="Report ring buffer capacity")
    forwarded_breadcrumbs: int = Field(
        default=10,
        ge=0,
        description="Most recent breadcrumbs included in a forwarded report",
    )
