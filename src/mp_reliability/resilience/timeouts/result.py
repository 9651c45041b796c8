"""Resilience – TimeoutResult."""
from __future__ import annotations

import dataclasses
from typing import Any

from mp_reliability.execution.records import ExecutionRecord


@dataclasses.dataclass(frozen=True)
class TimeoutResult:
    """Outcome of one :meth:`TimeoutManager.run` call.  Never raised, always returned."""

    success: bool
    operation_type: str
    timeout_ms: float
    actual_duration_ms: float
    timed_out: bool = False
    result: Any = None
    error: BaseException | None = None
    record: ExecutionRecord | None = None

    def completed_within_timeout(self) -> bool:
        return self.success and not self.timed_out

    @property
    def efficiency(self) -> float:
        """Share of the budget used, in ``[0, 1]``; 0 for a zero budget."""
        if self.timeout_ms <= 0:
            return 0.0
        return min(1.0, self.actual_duration_ms / self.timeout_ms)


__all__ = ["TimeoutResult"]
