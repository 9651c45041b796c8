"""Resilience – ConcurrencyLimiter with an in-flight registry."""
from __future__ import annotations

import asyncio
import contextlib
from collections import Counter
from typing import AsyncIterator


class ConcurrencyLimiter:
    """Limits the number of concurrent executions.

    Waiters suspend on an :class:`asyncio.Semaphore` until a slot frees up;
    nothing polls.  The registry counts in-flight operation ids so callers
    can see what currently holds a slot.
    """

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight: Counter[str] = Counter()
        self.max_concurrent = max_concurrent
        self.peak = 0

    @property
    def running_count(self) -> int:
        return sum(self._in_flight.values())

    @property
    def available(self) -> int:
        return self.max_concurrent - self.running_count

    def in_flight(self) -> list[str]:
        return sorted(self._in_flight.elements())

    def is_running(self, operation_id: str) -> bool:
        return self._in_flight[operation_id] > 0

    @contextlib.asynccontextmanager
    async def slot(self, operation_id: str) -> AsyncIterator[None]:
        await self._semaphore.acquire()
        self._in_flight[operation_id] += 1
        self.peak = max(self.peak, self.running_count)
        try:
            yield
        finally:
            self._in_flight[operation_id] -= 1
            if self._in_flight[operation_id] <= 0:
                del self._in_flight[operation_id]
            self._semaphore.release()


__all__ = ["ConcurrencyLimiter"]
