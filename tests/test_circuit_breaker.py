"""
Circuit breaker state machine tests.

Core transitions:
1. CLOSED -> OPEN (failures reach threshold)
2. OPEN -> HALF_OPEN (recovery timeout elapsed)
3. HALF_OPEN -> CLOSED (trial call succeeds)
4. HALF_OPEN -> OPEN (trial call fails)
"""

from __future__ import annotations

import pytest

from aula_resilience.exception import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitBreakerSettings,
    CircuitOpenError,
    CircuitState,
    with_circuit_breaker,
)


@pytest.fixture
def circuit_breaker(clock):
    return CircuitBreaker(
        "test",
        CircuitBreakerConfig(failure_threshold=3, recovery_timeout_ms=100),
        clock=clock,
    )


async def _trip(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.failure_threshold):
        await breaker.record_failure()


@pytest.mark.asyncio
async def test_circuit_breaker_should_start_in_closed_state(circuit_breaker) -> None:
    assert circuit_breaker.state == CircuitState.CLOSED
    assert circuit_breaker.failure_count == 0
    assert await circuit_breaker.allow_request() is True


@pytest.mark.asyncio
async def test_circuit_breaker_should_open_after_threshold_failures(circuit_breaker, clock) -> None:
    await circuit_breaker.record_failure()
    await circuit_breaker.record_failure()
    assert circuit_breaker.state == CircuitState.CLOSED

    await circuit_breaker.record_failure()

    assert circuit_breaker.state == CircuitState.OPEN
    assert circuit_breaker.last_failure_time == clock.now


@pytest.mark.asyncio
async def test_open_circuit_rejects_without_calling_operation(circuit_breaker) -> None:
    await _trip(circuit_breaker)
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1

    with pytest.raises(CircuitOpenError):
        await circuit_breaker.execute(operation)

    assert calls == 0


@pytest.mark.asyncio
async def test_full_recovery_cycle(circuit_breaker, clock) -> None:
    """threshold failures -> open -> timeout -> half-open -> success -> closed."""

    async def failing():
        raise ConnectionError("calendar unreachable")

    for _ in range(3):
        with pytest.raises(ConnectionError):
            await circuit_breaker.execute(failing)
    assert circuit_breaker.state == CircuitState.OPEN

    clock.advance(0.05)
    assert await circuit_breaker.allow_request() is False

    clock.advance(0.1)
    assert await circuit_breaker.allow_request() is True
    assert circuit_breaker.state == CircuitState.HALF_OPEN

    assert await circuit_breaker.execute(lambda: "ok") == "ok"
    assert circuit_breaker.state == CircuitState.CLOSED
    assert circuit_breaker.failure_count == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens(circuit_breaker, clock) -> None:
    await _trip(circuit_breaker)
    clock.advance(0.2)
    await circuit_breaker.allow_request()
    assert circuit_breaker.state == CircuitState.HALF_OPEN

    await circuit_breaker.record_failure()

    assert circuit_breaker.state == CircuitState.OPEN
    assert circuit_breaker.last_failure_time == clock.now
    assert await circuit_breaker.allow_request() is False


@pytest.mark.asyncio
async def test_closed_successes_do_not_reset_failures(circuit_breaker) -> None:
    await circuit_breaker.record_failure()
    await circuit_breaker.record_failure()
    await circuit_breaker.record_success()
    await circuit_breaker.record_failure()

    assert circuit_breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
async def test_success_threshold_is_honored(clock) -> None:
    breaker = CircuitBreaker(
        "upload",
        CircuitBreakerConfig(failure_threshold=1, recovery_timeout_ms=0, success_threshold=2),
        clock=clock,
    )
    await breaker.record_failure()
    await breaker.allow_request()
    assert breaker.state == CircuitState.HALF_OPEN

    await breaker.record_success()
    assert breaker.state == CircuitState.HALF_OPEN

    await breaker.record_success()
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_reset(circuit_breaker) -> None:
    await _trip(circuit_breaker)

    circuit_breaker.reset()

    snapshot = circuit_breaker.snapshot()
    assert snapshot.state == CircuitState.CLOSED
    assert snapshot.failure_count == 0
    assert snapshot.last_failure_time is None


class TestCircuitBreakerRegistry:
    def test_presets(self):
        registry = CircuitBreakerRegistry()

        assert registry.get("api").failure_threshold == 5
        assert registry.get("calendar").failure_threshold == 3
        assert registry.get("calendar").recovery_timeout_ms == 30000
        assert registry.get("upload").recovery_timeout_ms == 120000
        assert registry.get("auth").failure_threshold == 10
        assert registry.get("auth").recovery_timeout_ms == 300000

    def test_unknown_service_uses_default(self):
        settings = CircuitBreakerSettings(default=CircuitBreakerConfig(failure_threshold=7))
        registry = CircuitBreakerRegistry(settings)

        assert registry.get("reports").failure_threshold == 7

    def test_same_instance_per_name(self):
        registry = CircuitBreakerRegistry()

        assert registry.get("api") is registry.get("api")
        assert registry.names() == ["api"]

    @pytest.mark.asyncio
    async def test_breakers_are_independent(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        calendar = registry.get("calendar")

        for _ in range(3):
            await calendar.record_failure()

        assert calendar.state == CircuitState.OPEN
        assert registry.get("api").state == CircuitState.CLOSED
        assert registry.states()["api"].failure_count == 0

    @pytest.mark.asyncio
    async def test_reset_all(self, clock):
        registry = CircuitBreakerRegistry(clock=clock)
        for _ in range(3):
            await registry.get("upload").record_failure()

        registry.reset()

        assert registry.get("upload").state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_with_circuit_breaker_decorator(clock) -> None:
    registry = CircuitBreakerRegistry(
        CircuitBreakerSettings(services={"calendar": CircuitBreakerConfig(failure_threshold=1)}),
        clock=clock,
    )

    @with_circuit_breaker("calendar", registry)
    async def load_events():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await load_events()
    with pytest.raises(CircuitOpenError):
        await load_events()
