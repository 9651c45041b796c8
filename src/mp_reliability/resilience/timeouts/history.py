"""Resilience – per-operation-type duration history for adaptive timeouts."""
from __future__ import annotations

import dataclasses
from enum import Enum

from mp_reliability.execution.records import ExecutionHistory, ExecutionRecord
from mp_reliability.resilience.timeouts.policy import TimeoutPolicy


class TimeoutTrend(str, Enum):
    IMPROVING = "improving"
    DEGRADING = "degrading"
    FASTER = "faster"
    SLOWER = "slower"
    STABLE = "stable"


@dataclasses.dataclass(frozen=True)
class TimeoutStats:
    operation_type: str
    total: int
    success_rate: float
    avg_duration_ms: float
    min_duration_ms: float
    max_duration_ms: float
    trend: TimeoutTrend


def _success_rate(records: list[ExecutionRecord]) -> float:
    return sum(1 for r in records if r.success) / len(records)


def _mean_duration(records: list[ExecutionRecord]) -> float:
    return sum(r.duration_ms for r in records) / len(records)


class TimeoutHistory:
    """Adaptive timeout source backed by an :class:`ExecutionHistory`.

    Keys are operation *types*; many operation ids of the same type share
    one duration profile.
    """

    def __init__(self, policy: TimeoutPolicy | None = None, history: ExecutionHistory | None = None) -> None:
        self._policy = policy or TimeoutPolicy()
        self._history = history if history is not None else ExecutionHistory()

    @property
    def history(self) -> ExecutionHistory:
        return self._history

    def record(self, operation_type: str, record: ExecutionRecord) -> None:
        self._history.append(operation_type, record)

    def get(self, operation_type: str) -> list[ExecutionRecord]:
        return self._history.get(operation_type)

    def adaptive_timeout(self, operation_type: str, base_ms: float) -> float:
        """Scale *base_ms* by the observed success rate of *operation_type*.

        Below the success threshold the timeout grows (capped at the max
        multiplier); comfortably above it the timeout shrinks (floored at the
        min multiplier).  The result never drops below the mean successful
        duration plus margin.  With fewer than ``adaptive_min_samples``
        records *base_ms* is returned unchanged.
        """
        p = self._policy
        records = self._history.get(operation_type)
        if len(records) < p.adaptive_min_samples:
            return base_ms

        rate = _success_rate(records)
        multiplier = 1.0
        if rate < p.adaptive_success_threshold:
            multiplier = min(
                p.adaptive_max_multiplier,
                1 + (p.adaptive_success_threshold - rate) * p.adaptive_adjustment_factor,
            )
        elif rate > p.adaptive_success_threshold + 0.1:
            multiplier = max(
                p.adaptive_min_multiplier,
                1 - (rate - p.adaptive_success_threshold) * p.adaptive_adjustment_factor * 0.5,
            )

        timeout = base_ms * multiplier
        successes = [r for r in records if r.success]
        if successes:
            timeout = max(timeout, _mean_duration(successes) * p.adaptive_duration_margin)
        return float(round(timeout))

    def stats(self, operation_type: str) -> TimeoutStats | None:
        records = self._history.get(operation_type)
        if not records:
            return None
        durations = [r.duration_ms for r in records]
        return TimeoutStats(
            operation_type=operation_type,
            total=len(records),
            success_rate=_success_rate(records),
            avg_duration_ms=sum(durations) / len(durations),
            min_duration_ms=min(durations),
            max_duration_ms=max(durations),
            trend=self._trend(records),
        )

    @staticmethod
    def _trend(records: list[ExecutionRecord]) -> TimeoutTrend:
        recent = records[-5:]
        earlier = records[-10:-5]
        if len(records) < 5 or not earlier:
            return TimeoutTrend.STABLE

        recent_rate, earlier_rate = _success_rate(recent), _success_rate(earlier)
        recent_avg, earlier_avg = _mean_duration(recent), _mean_duration(earlier)
        if recent_rate > earlier_rate + 0.1:
            return TimeoutTrend.IMPROVING
        if recent_rate < earlier_rate - 0.1:
            return TimeoutTrend.DEGRADING
        if recent_avg < earlier_avg * 0.8:
            return TimeoutTrend.FASTER
        if recent_avg > earlier_avg * 1.2:
            return TimeoutTrend.SLOWER
        return TimeoutTrend.STABLE


__all__ = ["TimeoutHistory", "TimeoutStats", "TimeoutTrend"]
