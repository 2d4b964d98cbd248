"""
Retry with exponential backoff.

Attempts run strictly one after another. Every failure goes through the
classifier; non-retryable errors end the sequence immediately. Callers get
a RecoveryResult instead of an exception.

Delay before attempt k (k >= 2) is ``retry_delay_ms * backoff_multiplier ** (k - 2)``.
There is no jitter and no upper bound on the delay.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from functools import wraps
from typing import TYPE_CHECKING, Any, Generic, ParamSpec, TypeVar

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorContext
from aula_resilience.exception.classifier import ErrorClassifier
from aula_resilience.exception.config import RetryConfig

if TYPE_CHECKING:
    from aula_resilience.exception.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class _NoFallback:
    def __repr__(self) -> str:
        return "NO_FALLBACK"

    def __bool__(self) -> bool:
        return False


NO_FALLBACK: Any = _NoFallback()
"""Marks "no fallback supplied" so that ``None`` stays a usable fallback value."""

RetryHook = Callable[[int, AppError], Any]
FailureHook = Callable[[AppError], Any]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryOptions:
    """Per-call retry options."""

    max_retries: int = 3
    retry_delay_ms: float = 1000
    backoff_multiplier: float = 2
    fallback_data: Any = NO_FALLBACK
    on_retry: RetryHook | None = None
    on_failure: FailureHook | None = None
    context: ErrorContext = ErrorContext.PUBLIC

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be > 0")
        self.context = ErrorContext(self.context)

    @classmethod
    def from_config(cls, config: RetryConfig, **overrides: Any) -> RetryOptions:
        values: dict[str, Any] = {
            "max_retries": config.max_retries,
            "retry_delay_ms": config.retry_delay_ms,
            "backoff_multiplier": config.backoff_multiplier,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def has_fallback(self) -> bool:
        return self.fallback_data is not NO_FALLBACK

    def with_fallback(self, fallback_data: Any) -> RetryOptions:
        """Copy of these options serving ``fallback_data`` on exhaustion."""
        return replace(self, fallback_data=fallback_data)


@dataclass(frozen=True)
class RetryAttempt:
    """One attempt of a retry sequence."""

    attempt: int
    error: AppError | None
    delay_before_ms: float


@dataclass
class RecoveryResult(Generic[T]):
    """Outcome of a recovered operation."""

    success: bool
    data: T | None = None
    error: AppError | None = None
    recovered: bool = False
    attempts: int = 0
    fallback_used: bool = False
    history: list[RetryAttempt] = field(default_factory=list)


def calculate_retry_delay(retry_delay_ms: float, backoff_multiplier: float, attempt: int) -> float:
    """
    Delay in seconds after ``attempt`` (1-based) failed.

    Pure geometric growth: attempt 1 -> base, attempt 2 -> base * m, ...
    """
    delay_ms = retry_delay_ms * (backoff_multiplier ** (attempt - 1))
    return max(delay_ms / 1000.0, 0.0)


async def _call_hook(hook: Callable[..., Any] | None, *args: Any) -> None:
    if hook is None:
        return
    try:
        result = hook(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"[Retry] callback failed: {getattr(hook, '__name__', hook)}, error: {e}")


async def _run_once(
    operation: Callable[[], Awaitable[T] | T],
    breaker: CircuitBreaker | None,
) -> T:
    if breaker is not None:
        return await breaker.execute(operation)
    result: Any = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


async def with_retry(
    operation: Callable[[], Awaitable[T] | T],
    options: RetryOptions | None = None,
    *,
    breaker: CircuitBreaker | None = None,
    sleep: Sleep = asyncio.sleep,
) -> RecoveryResult[T]:
    """
    Run ``operation`` with bounded exponential-backoff retry.

    Args:
        operation: zero-argument callable, sync or async
        options: retry options (defaults when None)
        breaker: optional circuit breaker every attempt goes through
        sleep: awaitable sleep, replaceable in tests

    Returns:
        RecoveryResult; the operation runs at most ``max_retries + 1`` times
    """
    options = options or RetryOptions()
    max_attempts = options.max_retries + 1
    history: list[RetryAttempt] = []
    last_error: AppError | None = None
    delay_ms = 0.0
    attempts = 0

    for attempt in range(1, max_attempts + 1):
        attempts = attempt
        try:
            data = await _run_once(operation, breaker)
        except Exception as e:
            last_error = ErrorClassifier.classify(e)
            history.append(RetryAttempt(attempt, last_error, delay_ms))

            if not last_error.retryable:
                logger.warning(
                    f"[Retry] non-retryable error, giving up | code={last_error.code} | "
                    f"attempt={attempt}"
                )
                break

            if attempt >= max_attempts:
                logger.error(
                    f"[Retry] retries exhausted | code={last_error.code} | attempts={attempt}"
                )
                break

            delay = calculate_retry_delay(options.retry_delay_ms, options.backoff_multiplier, attempt)
            logger.warning(
                f"[Retry] attempt {attempt}/{max_attempts} failed, retrying in {delay:.2f}s | "
                f"code={last_error.code}"
            )
            await _call_hook(options.on_retry, attempt + 1, last_error)
            delay_ms = delay * 1000
            await sleep(delay)
            continue

        history.append(RetryAttempt(attempt, None, delay_ms))
        if attempt > 1:
            logger.info(f"[Retry] recovered after {attempt} attempts")
        return RecoveryResult(
            success=True,
            data=data,
            recovered=attempt > 1,
            attempts=attempt,
            fallback_used=False,
            history=history,
        )

    if options.has_fallback:
        logger.info(
            f"[Retry] serving fallback data | code={last_error.code if last_error else None}"
        )
        return RecoveryResult(
            success=True,
            data=options.fallback_data,
            error=last_error,
            recovered=True,
            attempts=attempts,
            fallback_used=True,
            history=history,
        )

    if last_error is not None:
        await _call_hook(options.on_failure, last_error)

    return RecoveryResult(
        success=False,
        error=last_error,
        recovered=False,
        attempts=attempts,
        fallback_used=False,
        history=history,
    )


def recoverable(options: RetryOptions | None = None, *, breaker: CircuitBreaker | None = None):
    """
    Decorator form of with_retry.

    The wrapped coroutine function returns a RecoveryResult instead of
    raising.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[RecoveryResult[T]]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> RecoveryResult[T]:
            return await with_retry(lambda: func(*args, **kwargs), options, breaker=breaker)

        return wrapper

    return decorator
