"""
Retry engine tests.

Module under test: aula_resilience.exception.retry
"""

from __future__ import annotations

import pytest

from aula_resilience.exception import (
    NO_FALLBACK,
    AuthenticationError,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    RetryConfig,
    RetryOptions,
    ServiceError,
    calculate_retry_delay,
    recoverable,
    with_retry,
)


class _Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value=42, error: Exception | None = None) -> None:
        self.failures = failures
        self.value = value
        self.error = error or ConnectionError("connection reset")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


class TestCalculateRetryDelay:
    def test_defaults_grow_geometrically(self):
        delays = [calculate_retry_delay(1000, 2, attempt) for attempt in (1, 2, 3)]

        assert delays == [1.0, 2.0, 4.0]

    @pytest.mark.parametrize(("base", "multiplier"), [(100, 1.5), (250, 3), (1000, 2)])
    def test_strictly_increasing_for_multiplier_above_one(self, base, multiplier):
        delays = [calculate_retry_delay(base, multiplier, attempt) for attempt in range(1, 8)]

        assert all(earlier < later for earlier, later in zip(delays, delays[1:]))
        for attempt, delay in enumerate(delays, start=1):
            assert delay == pytest.approx(base * multiplier ** (attempt - 1) / 1000)

    def test_no_upper_bound(self):
        assert calculate_retry_delay(1000, 2, 20) == pytest.approx(524288.0)


@pytest.mark.asyncio
async def test_backoff_delay_before_attempt_k(sleep) -> None:
    """Delay before attempt k (k >= 2) is d * m ** (k - 2)."""
    operation = _Flaky(failures=10)

    await with_retry(operation, RetryOptions(max_retries=4, retry_delay_ms=100, backoff_multiplier=3), sleep=sleep)

    assert sleep.delays == pytest.approx([0.1, 0.3, 0.9, 2.7])


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 3])
async def test_attempt_bound(sleep, max_retries) -> None:
    operation = _Flaky(failures=100)

    result = await with_retry(operation, RetryOptions(max_retries=max_retries), sleep=sleep)

    assert operation.calls == max_retries + 1
    assert result.attempts == max_retries + 1
    assert result.success is False
    assert len(sleep.delays) == max_retries


@pytest.mark.asyncio
async def test_non_retryable_error_short_circuits(sleep) -> None:
    operation = _Flaky(failures=100, error=AuthenticationError("session expired"))

    result = await with_retry(operation, RetryOptions(max_retries=5), sleep=sleep)

    assert operation.calls == 1
    assert result.success is False
    assert result.error.code == "AUTH_AUTH_FAILED"
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_status_401_short_circuits(sleep) -> None:
    operation = _Flaky(failures=100, error=Exception("unauthorized"))
    operation.error.status_code = 401

    await with_retry(operation, RetryOptions(max_retries=5), sleep=sleep)

    assert operation.calls == 1


@pytest.mark.asyncio
async def test_fallback_after_exhaustion(sleep) -> None:
    operation = _Flaky(failures=100)

    result = await with_retry(
        operation,
        RetryOptions(max_retries=2, fallback_data=["cached"]),
        sleep=sleep,
    )

    assert result.success is True
    assert result.data == ["cached"]
    assert result.fallback_used is True
    assert result.recovered is True
    assert result.error is not None
    assert result.error.code == "NETWORK_CONNECTION_FAILED"


@pytest.mark.asyncio
async def test_none_is_a_valid_fallback(sleep) -> None:
    result = await with_retry(
        _Flaky(failures=100),
        RetryOptions(max_retries=0, fallback_data=None),
        sleep=sleep,
    )

    assert result.success is True
    assert result.data is None
    assert result.fallback_used is True


@pytest.mark.asyncio
async def test_fallback_after_non_retryable(sleep) -> None:
    operation = _Flaky(failures=100, error=AuthenticationError("expired"))

    result = await with_retry(operation, RetryOptions(max_retries=3, fallback_data={}), sleep=sleep)

    assert operation.calls == 1
    assert result.fallback_used is True
    assert result.data == {}


@pytest.mark.asyncio
async def test_recovers_after_two_failures(sleep) -> None:
    operation = _Flaky(failures=2, value=42)

    result = await with_retry(operation, RetryOptions(max_retries=3, retry_delay_ms=100), sleep=sleep)

    assert result.success is True
    assert result.data == 42
    assert result.attempts == 3
    assert result.recovered is True
    assert result.fallback_used is False
    assert result.error is None
    assert sleep.delays == pytest.approx([0.1, 0.2])
    assert [a.attempt for a in result.history] == [1, 2, 3]
    assert result.history[-1].error is None


@pytest.mark.asyncio
async def test_first_try_success_is_not_recovered(sleep) -> None:
    result = await with_retry(_Flaky(failures=0, value="ok"), sleep=sleep)

    assert result.success is True
    assert result.attempts == 1
    assert result.recovered is False


@pytest.mark.asyncio
async def test_sync_operation(sleep) -> None:
    result = await with_retry(lambda: 7, sleep=sleep)

    assert result.data == 7


@pytest.mark.asyncio
async def test_callbacks(sleep) -> None:
    retries: list[tuple[int, str]] = []
    failures: list[str] = []

    async def on_failure(error):
        failures.append(error.code)

    await with_retry(
        _Flaky(failures=100),
        RetryOptions(
            max_retries=2,
            on_retry=lambda attempt, error: retries.append((attempt, error.code)),
            on_failure=on_failure,
        ),
        sleep=sleep,
    )

    assert retries == [(2, "NETWORK_CONNECTION_FAILED"), (3, "NETWORK_CONNECTION_FAILED")]
    assert failures == ["NETWORK_CONNECTION_FAILED"]


@pytest.mark.asyncio
async def test_on_failure_not_called_when_fallback_served(sleep) -> None:
    failures: list[str] = []

    await with_retry(
        _Flaky(failures=100),
        RetryOptions(max_retries=0, fallback_data=1, on_failure=lambda e: failures.append(e.code)),
        sleep=sleep,
    )

    assert failures == []


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_retry(sleep) -> None:
    def on_retry(attempt, error):
        raise RuntimeError("toast renderer crashed")

    result = await with_retry(
        _Flaky(failures=1),
        RetryOptions(max_retries=1, on_retry=on_retry),
        sleep=sleep,
    )

    assert result.success is True


@pytest.mark.asyncio
async def test_breaker_rejection_stops_retries(sleep, clock) -> None:
    breaker = CircuitBreaker(
        "api",
        CircuitBreakerConfig(failure_threshold=2, recovery_timeout_ms=60000),
        clock=clock,
    )
    operation = _Flaky(failures=100, error=ServiceError("upstream down"))

    result = await with_retry(operation, RetryOptions(max_retries=5), breaker=breaker, sleep=sleep)

    # Two real failures open the circuit; the third attempt is rejected without a call.
    assert operation.calls == 2
    assert result.attempts == 3
    assert result.error.code == "SERVICE_CIRCUIT_OPEN"
    assert breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
async def test_recoverable_decorator(sleep) -> None:
    calls = 0

    @recoverable(RetryOptions(max_retries=1, retry_delay_ms=0))
    async def load_courses(school_id: str) -> list[str]:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise ConnectionError("reset")
        return [f"{school_id}:5A"]

    result = await load_courses("colegio-1")

    assert result.success is True
    assert result.data == ["colegio-1:5A"]
    assert calls == 2


class TestRetryOptions:
    def test_defaults(self):
        options = RetryOptions()

        assert options.max_retries == 3
        assert options.retry_delay_ms == 1000
        assert options.backoff_multiplier == 2
        assert options.fallback_data is NO_FALLBACK
        assert options.has_fallback is False

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_retries": -1}, {"retry_delay_ms": -5}, {"backoff_multiplier": 0}],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryOptions(**kwargs)

    def test_from_config(self):
        options = RetryOptions.from_config(RetryConfig(max_retries=1, retry_delay_ms=50), fallback_data=0)

        assert options.max_retries == 1
        assert options.retry_delay_ms == 50
        assert options.has_fallback is True

    def test_with_fallback_copies(self):
        options = RetryOptions(max_retries=2)

        copy = options.with_fallback("x")

        assert copy.fallback_data == "x"
        assert copy.max_retries == 2
        assert options.has_fallback is False
