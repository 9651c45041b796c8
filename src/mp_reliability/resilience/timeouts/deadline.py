"""Resilience – Deadline."""
from __future__ import annotations

import dataclasses

from mp_reliability.kernel.errors import OperationTimeoutError
from mp_reliability.kernel.time import Clock, SystemClock, now_ms


@dataclasses.dataclass(frozen=True)
class Deadline:
    """An absolute deadline (epoch milliseconds) derived from a budget."""

    expires_at_ms: float
    budget_ms: float = 0.0
    clock: Clock = dataclasses.field(default_factory=SystemClock, compare=False, repr=False)

    @classmethod
    def after(cls, budget_ms: float, clock: Clock | None = None) -> "Deadline":
        clock = clock or SystemClock()
        return cls(expires_at_ms=now_ms(clock) + budget_ms, budget_ms=budget_ms, clock=clock)

    @property
    def remaining_ms(self) -> float:
        return max(0.0, self.expires_at_ms - now_ms(self.clock))

    @property
    def is_expired(self) -> bool:
        return now_ms(self.clock) >= self.expires_at_ms

    def raise_if_expired(self, operation_type: str = "batch") -> None:
        if self.is_expired:
            overdue = now_ms(self.clock) - self.expires_at_ms
            raise OperationTimeoutError(operation_type, self.budget_ms, self.budget_ms + overdue)


__all__ = ["Deadline"]
