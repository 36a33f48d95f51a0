from __future__ import annotations

import pytest

from discovery.services.search.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    CircuitState,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def _ok() -> str:
    return "ok"


async def _boom() -> str:
    raise RuntimeError("store down")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker(
        name="test_store",
        config=CircuitBreakerConfig(failure_threshold=2, timeout_seconds=30),
        clock=clock,
    )


class TestCircuitBreaker:
    @pytest.mark.asyncio
    async def test_opens_after_consecutive_failures(self, breaker: CircuitBreaker) -> None:
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(_boom)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.call(_ok)

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker: CircuitBreaker) -> None:
        with pytest.raises(RuntimeError):
            await breaker.call(_boom)
        assert await breaker.call(_ok) == "ok"
        with pytest.raises(RuntimeError):
            await breaker.call(_boom)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_trial_closes_on_success(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(_boom)

        clock.now += 30
        assert await breaker.call(_ok) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_trial_failure_reopens(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(_boom)

        clock.now += 31
        with pytest.raises(RuntimeError):
            await breaker.call(_boom)

        assert breaker.state == CircuitState.OPEN
        clock.now += 10
        with pytest.raises(CircuitOpenError):
            await breaker.call(_ok)

    @pytest.mark.asyncio
    async def test_reset_closes_circuit(self, breaker: CircuitBreaker) -> None:
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(_boom)

        breaker.reset()

        assert not breaker.is_open
        assert await breaker.call(_ok) == "ok"
