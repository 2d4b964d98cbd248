# -*- coding: utf-8 -*-
# @author Sunny
# @date 2026-10-18
"""
Circuit breaker.

Stops calling a dependency that keeps failing and lets a trial call through
once the recovery timeout has passed.

CLOSED --failures >= threshold--> OPEN --timeout elapsed--> HALF_OPEN
HALF_OPEN --success_threshold successes--> CLOSED
HALF_OPEN --any failure--> OPEN
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from aula_resilience.exception.config import CircuitBreakerConfig, CircuitBreakerSettings
from aula_resilience.exception.service import ServiceError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(ServiceError):
    """Raised instead of calling a service whose circuit is open."""

    def __init__(self, name: str, message: str | None = None):
        self.service = name
        super().__init__(
            message or f"Circuit breaker for {name} is open - service temporarily unavailable",
            "CIRCUIT_OPEN",
            retryable=False,
            status_code=503,
            user_message="Servicio temporalmente no disponible. Intenta nuevamente en unos minutos.",
        )


@dataclass(frozen=True)
class CircuitBreakerState:
    """Point-in-time view of a breaker."""

    name: str
    state: CircuitState
    failure_count: int
    last_failure_time: float | None


class CircuitBreaker:
    """Circuit breaker for one logical service."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or CircuitBreakerConfig()
        self.name = name
        self.failure_threshold = config.failure_threshold
        self.recovery_timeout_ms = config.recovery_timeout_ms
        self.success_threshold = config.success_threshold

        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_successes = 0
        self._last_failure_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> float | None:
        return self._last_failure_time

    def snapshot(self) -> CircuitBreakerState:
        return CircuitBreakerState(
            name=self.name,
            state=self._state,
            failure_count=self._failure_count,
            last_failure_time=self._last_failure_time,
        )

    def _check_state_transition(self) -> None:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            elapsed_ms = (self._clock() - self._last_failure_time) * 1000
            if elapsed_ms >= self.recovery_timeout_ms:
                self._state = CircuitState.HALF_OPEN
                self._half_open_successes = 0
                logger.info(f"[CircuitBreaker:{self.name}] OPEN -> HALF_OPEN")

    async def allow_request(self) -> bool:
        async with self._lock:
            self._check_state_transition()
            return self._state != CircuitState.OPEN

    async def record_success(self) -> None:
        async with self._lock:
            if self._state != CircuitState.HALF_OPEN:
                return
            self._half_open_successes += 1
            if self._half_open_successes >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                self._half_open_successes = 0
                logger.info(f"[CircuitBreaker:{self.name}] HALF_OPEN -> CLOSED (recovered)")

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._half_open_successes = 0
                logger.warning(f"[CircuitBreaker:{self.name}] HALF_OPEN -> OPEN (trial call failed)")
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    f"[CircuitBreaker:{self.name}] CLOSED -> OPEN "
                    f"(failures: {self._failure_count})"
                )

    async def execute(self, operation: Callable[[], Awaitable[T] | T]) -> T:
        """Run ``operation`` through the breaker.

        Raises CircuitOpenError without calling the operation while open.
        """
        if not await self.allow_request():
            raise CircuitOpenError(self.name)

        try:
            result: Any = operation()
            if inspect.isawaitable(result):
                result = await result
        except CircuitOpenError:
            raise
        except Exception:
            await self.record_failure()
            raise

        await self.record_success()
        return result

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_successes = 0
        self._last_failure_time = None


class CircuitBreakerRegistry:
    """One breaker per service name, created on first use."""

    def __init__(
        self,
        settings: CircuitBreakerSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or CircuitBreakerSettings()
        self._clock = clock
        self._circuit_breakers: dict[str, CircuitBreaker] = {}

    def get(self, name: str) -> CircuitBreaker:
        if name in self._circuit_breakers:
            return self._circuit_breakers[name]
        breaker = CircuitBreaker(name, self._settings.for_service(name), clock=self._clock)
        self._circuit_breakers[name] = breaker
        return breaker

    def names(self) -> list[str]:
        return list(self._circuit_breakers)

    def states(self) -> dict[str, CircuitBreakerState]:
        return {name: cb.snapshot() for name, cb in self._circuit_breakers.items()}

    def reset(self) -> None:
        for breaker in self._circuit_breakers.values():
            breaker.reset()


def with_circuit_breaker(name: str, registry: CircuitBreakerRegistry):
    """Circuit breaker decorator."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            cb = registry.get(name)
            return await cb.execute(lambda: func(*args, **kwargs))

        return wrapper

    return decorator
