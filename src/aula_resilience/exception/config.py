"""
Retry and circuit breaker configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Retry defaults applied when a caller passes no explicit options."""

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    retry_delay_ms: int = Field(default=1000, ge=0, description="Base delay before the second attempt")
    backoff_multiplier: float = Field(default=2.0, gt=0, description="Geometric growth factor")


class CircuitBreakerConfig(BaseModel):
    """Circuit breaker parameters for one service."""

    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Failures that open the circuit",
    )
    recovery_timeout_ms: int = Field(
        default=60000,
        ge=0,
        description="Time an open circuit waits before letting a trial call through",
    )
    success_threshold: int = Field(
        default=1,
        ge=1,
        description="Half-open successes required to close the circuit",
    )


def _default_service_breakers() -> dict[str, CircuitBreakerConfig]:
    return {
        "api": CircuitBreakerConfig(failure_threshold=5, recovery_timeout_ms=60000),
        "calendar": CircuitBreakerConfig(failure_threshold=3, recovery_timeout_ms=30000),
        "upload": CircuitBreakerConfig(failure_threshold=3, recovery_timeout_ms=120000),
        # Login flows are noisy; tolerate more before cutting them off.
        "auth": CircuitBreakerConfig(failure_threshold=10, recovery_timeout_ms=300000),
    }


class CircuitBreakerSettings(BaseModel):
    """
    Circuit breaker settings

    - default: used for any service without an override
    - services: per-service overrides (api, calendar, upload, auth by default)
    """

    default: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    services: dict[str, CircuitBreakerConfig] = Field(default_factory=_default_service_breakers)

    def for_service(self, name: str) -> CircuitBreakerConfig:
        return self.services.get(name.lower(), self.default)
