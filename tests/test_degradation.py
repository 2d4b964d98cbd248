"""
Graceful degradation cache tests.

Module under test: aula_resilience.degradation
"""

from __future__ import annotations

import pytest

from aula_resilience.degradation import GracefulDegradation
from aula_resilience.exception import (
    AuthenticationError,
    CircuitBreaker,
    CircuitBreakerConfig,
    RetryOptions,
)

_NO_RETRY = RetryOptions(max_retries=0, retry_delay_ms=0)


async def _fails():
    raise ConnectionError("calendar service unreachable")


@pytest.mark.asyncio
async def test_serves_last_good_value_after_failure() -> None:
    degradation = GracefulDegradation()

    async def fetch_ok():
        return {"events": ["Consejo de profesores"]}

    first = await degradation.get_data("k", fetch_ok, options=_NO_RETRY)
    second = await degradation.get_data("k", _fails, options=_NO_RETRY)

    assert first.degraded is False
    assert second.degraded is True
    assert second.data == first.data
    assert second.error.code == "NETWORK_CONNECTION_FAILED"
    assert degradation.is_degraded("k")
    assert degradation.get_failure_count("k") == 1


@pytest.mark.asyncio
async def test_success_overwrites_cache_and_clears_failures() -> None:
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: 1, options=_NO_RETRY)
    await degradation.get_data("k", _fails, options=_NO_RETRY)
    await degradation.get_data("k", _fails, options=_NO_RETRY)
    assert degradation.get_failure_count("k") == 2

    result = await degradation.get_data("k", lambda: 2, options=_NO_RETRY)

    assert result.data == 2
    assert degradation.get_failure_count("k") == 0
    assert degradation.get_fallback_data("k") == 2


@pytest.mark.asyncio
async def test_explicit_fallback_wins_over_cache() -> None:
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: "cached", options=_NO_RETRY)

    result = await degradation.get_data("k", _fails, "explicit", _NO_RETRY)

    assert result.data == "explicit"
    assert result.degraded is True


@pytest.mark.asyncio
async def test_failure_without_any_fallback() -> None:
    degradation = GracefulDegradation()

    result = await degradation.get_data("missing", _fails, options=_NO_RETRY)

    assert result.data is None
    assert result.degraded is True
    assert result.error is not None
    assert degradation.get_failure_count("missing") == 0
    assert "missing" not in degradation.keys()


@pytest.mark.asyncio
async def test_explicit_fallback_is_not_cached() -> None:
    degradation = GracefulDegradation()

    served = await degradation.get_data("k", _fails, "explicit", _NO_RETRY)
    later = await degradation.get_data("k", _fails, options=_NO_RETRY)

    assert served.data == "explicit"
    assert degradation.get_entry("k").has_value is False
    assert degradation.get_fallback_data("k", "default") == "default"
    assert later.data is None
    assert later.error is not None

    await degradation.get_data("k", lambda: "fresh", options=_NO_RETRY)

    assert degradation.get_entry("k").has_value is True


@pytest.mark.asyncio
async def test_cached_none_is_served() -> None:
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: None, options=_NO_RETRY)

    result = await degradation.get_data("k", _fails, options=_NO_RETRY)

    assert result.data is None
    assert result.error is not None
    assert degradation.get_failure_count("k") == 1


@pytest.mark.asyncio
async def test_non_retryable_failure_still_degrades() -> None:
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: "cached", options=_NO_RETRY)
    calls = 0

    async def expired():
        nonlocal calls
        calls += 1
        raise AuthenticationError("session expired")

    result = await degradation.get_data("k", expired, options=RetryOptions(max_retries=3))

    assert calls == 1
    assert result.data == "cached"
    assert result.degraded is True


@pytest.mark.asyncio
async def test_goes_through_breaker(clock) -> None:
    breaker = CircuitBreaker("calendar", CircuitBreakerConfig(failure_threshold=1), clock=clock)
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: "cached", options=_NO_RETRY, breaker=breaker)
    await degradation.get_data("k", _fails, options=_NO_RETRY, breaker=breaker)

    result = await degradation.get_data("k", lambda: "fresh", options=_NO_RETRY, breaker=breaker)

    assert result.data == "cached"
    assert result.error.code == "SERVICE_CIRCUIT_OPEN"


@pytest.mark.asyncio
async def test_lru_eviction() -> None:
    degradation = GracefulDegradation(max_entries=2)
    await degradation.get_data("a", lambda: 1, options=_NO_RETRY)
    await degradation.get_data("b", lambda: 2, options=_NO_RETRY)
    await degradation.get_data("a", _fails, options=_NO_RETRY)

    await degradation.get_data("c", lambda: 3, options=_NO_RETRY)

    assert degradation.keys() == ["a", "c"]
    assert degradation.get_fallback_data("b", "gone") == "gone"


@pytest.mark.asyncio
async def test_unbounded_when_max_entries_is_none() -> None:
    degradation = GracefulDegradation(max_entries=None)

    for i in range(50):
        await degradation.get_data(f"curso:{i}", lambda: i, options=_NO_RETRY)

    assert len(degradation) == 50


def test_rejects_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        GracefulDegradation(max_entries=0)


@pytest.mark.asyncio
async def test_clear_failures_and_clear() -> None:
    degradation = GracefulDegradation()
    await degradation.get_data("k", lambda: 1, options=_NO_RETRY)
    await degradation.get_data("k", _fails, options=_NO_RETRY)

    degradation.clear_failures("k")
    assert degradation.is_degraded("k") is False
    assert degradation.get_entry("k").value == 1

    degradation.clear("k")
    assert degradation.get_entry("k") is None

    await degradation.get_data("x", lambda: 1, options=_NO_RETRY)
    degradation.clear()
    assert len(degradation) == 0
