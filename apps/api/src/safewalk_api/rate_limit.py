from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from dataclasses import dataclass

from starlette.requests import Request


class RateLimitStore(ABC):
    @abstractmethod
    async def record(self, key: str, now_seconds: float) -> None:
        raise NotImplementedError

    @abstractmethod
    async def window(self, key: str, cutoff_seconds: float) -> list[float]:
        """Timestamps for ``key`` at or after ``cutoff_seconds``, oldest first."""
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._timestamps: dict[str, deque[float]] = defaultdict(deque)

    def __len__(self) -> int:
        return len(self._timestamps)

    async def record(self, key: str, now_seconds: float) -> None:
        self._timestamps[key].append(now_seconds)

    async def window(self, key: str, cutoff_seconds: float) -> list[float]:
        timestamps = self._timestamps.get(key)
        if timestamps is None:
            return []
        while timestamps and timestamps[0] < cutoff_seconds:
            timestamps.popleft()
        if not timestamps:
            del self._timestamps[key]
            return []
        return list(timestamps)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class SlidingWindowRateLimiter:
    """Caps how many incident reports one client may file per window."""

    def __init__(
        self,
        store: RateLimitStore,
        limit_per_minute: int = 10,
        window_seconds: int = 60,
    ) -> None:
        if limit_per_minute <= 0:
            raise ValueError("limit_per_minute must be > 0")
        self._store = store
        self._limit = limit_per_minute
        self._window_seconds = window_seconds

    async def check(self, key: str, now_seconds: float) -> RateLimitDecision:
        recent = await self._store.window(key, now_seconds - self._window_seconds)
        if len(recent) >= self._limit:
            # A slot frees once the oldest report in the window ages out.
            wait = recent[0] + self._window_seconds - now_seconds
            return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=max(1, math.ceil(wait)))
        await self._store.record(key, now_seconds)
        return RateLimitDecision(allowed=True, remaining=self._limit - len(recent) - 1)


def resolve_client_key(request: Request) -> str:
    # Devices identify themselves; fall back to the peer address.
    device_id = request.headers.get("x-client-id")
    if device_id:
        return device_id
    if request.client:
        return request.client.host
    return "anonymous"
