from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from safety_engine.errors import ProviderTimeout, ProviderUnavailable

T = TypeVar("T")
logger = logging.getLogger(__name__)


class CircuitOpenError(ProviderUnavailable):
    """Raised when calls are blocked by an open circuit."""


@dataclass
class CircuitBreakerState:
    failure_count: int = 0
    opened_at_seconds: float | None = None


class CircuitBreaker:
    def __init__(
        self,
        name: str = "provider",
        failure_threshold: int = 3,
        recovery_timeout_seconds: float = 30,
    ) -> None:
        self._name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout_seconds = recovery_timeout_seconds
        self._state = CircuitBreakerState()

    @property
    def name(self) -> str:
        return self._name

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        now_seconds: float,
    ) -> T:
        if self._is_open(now_seconds):
            logger.warning("circuit_open", extra={"component": self._name, "now_seconds": now_seconds})
            raise CircuitOpenError(f"{self._name} is temporarily unavailable, please retry later")

        try:
            result = await operation()
        except Exception:
            self._record_failure(now_seconds)
            raise
        self._record_success()
        return result

    def _is_open(self, now_seconds: float) -> bool:
        opened_at = self._state.opened_at_seconds
        if opened_at is None:
            return False
        if now_seconds - opened_at >= self._recovery_timeout_seconds:
            self._state.opened_at_seconds = None
            self._state.failure_count = 0
            logger.info("circuit_half_open", extra={"component": self._name})
            return False
        return True

    def _record_failure(self, now_seconds: float) -> None:
        self._state.failure_count += 1
        if self._state.failure_count >= self._failure_threshold:
            self._state.opened_at_seconds = now_seconds
            logger.error(
                "circuit_opened",
                extra={
                    "component": self._name,
                    "failure_count": self._state.failure_count,
                    "opened_at_seconds": now_seconds,
                },
            )

    def _record_success(self) -> None:
        self._state.failure_count = 0
        self._state.opened_at_seconds = None


class ProviderGuard:
    """Runs provider calls through a circuit breaker with a bounded timeout."""

    def __init__(
        self,
        breaker: CircuitBreaker,
        timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._breaker = breaker
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        async def bounded() -> T:
            return await asyncio.wait_for(operation(), timeout=self._timeout_seconds)

        try:
            return await self._breaker.call(bounded, now_seconds=self._clock())
        except TimeoutError as exc:
            raise ProviderTimeout(f"{self._breaker.name} did not respond in time") from exc
