import asyncio

import pytest

from safety_engine.errors import ProviderTimeout, ProviderUnavailable

from safewalk_api.circuit_breaker import CircuitBreaker, CircuitOpenError, ProviderGuard


@pytest.mark.asyncio
async def test_circuit_breaker_opens_after_threshold() -> None:
    breaker = CircuitBreaker("tomtom-routing", failure_threshold=2, recovery_timeout_seconds=30)
    now = 100.0

    async def fail_call() -> str:
        raise RuntimeError("external failure")

    with pytest.raises(RuntimeError):
        await breaker.call(fail_call, now_seconds=now)
    with pytest.raises(RuntimeError):
        await breaker.call(fail_call, now_seconds=now + 1)
    with pytest.raises(CircuitOpenError, match="tomtom-routing"):
        await breaker.call(fail_call, now_seconds=now + 2)


@pytest.mark.asyncio
async def test_open_circuit_is_a_provider_failure() -> None:
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_seconds=10)

    async def fail_call() -> str:
        raise RuntimeError("external failure")

    with pytest.raises(RuntimeError):
        await breaker.call(fail_call, now_seconds=0)
    with pytest.raises(ProviderUnavailable):
        await breaker.call(fail_call, now_seconds=1)


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout() -> None:
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_seconds=10)
    now = 100.0

    async def fail_call() -> str:
        raise RuntimeError("external failure")

    async def success_call() -> str:
        return "ok"

    with pytest.raises(RuntimeError):
        await breaker.call(fail_call, now_seconds=now)
    with pytest.raises(CircuitOpenError):
        await breaker.call(success_call, now_seconds=now + 1)

    result = await breaker.call(success_call, now_seconds=now + 11)
    assert result == "ok"


@pytest.mark.asyncio
async def test_guard_bounds_slow_calls_and_counts_them_as_failures() -> None:
    clock = iter([0.0, 1.0])
    breaker = CircuitBreaker("openweather", failure_threshold=1, recovery_timeout_seconds=30)
    guard = ProviderGuard(breaker, timeout_seconds=0.01, clock=lambda: next(clock))

    async def never_answers() -> str:
        await asyncio.sleep(10)
        return "late"

    with pytest.raises(ProviderTimeout, match="openweather"):
        await guard.run(never_answers)
    with pytest.raises(CircuitOpenError):
        await guard.run(never_answers)


@pytest.mark.asyncio
async def test_guard_returns_result() -> None:
    guard = ProviderGuard(CircuitBreaker(), timeout_seconds=1.0)

    async def answer() -> int:
        return 42

    assert await guard.run(answer) == 42
