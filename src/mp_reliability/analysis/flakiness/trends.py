"""Analysis – flakiness trend over successive analyses of one operation."""
from __future__ import annotations

import dataclasses
from collections import deque
from enum import Enum
from typing import Sequence

from mp_reliability.analysis.flakiness.analyzer import FlakinessAnalyzer, FlakinessReport
from mp_reliability.execution.records import ExecutionRecord
from mp_reliability.kernel.time import Clock, SystemClock, now_ms


class FlakinessTrendDirection(str, Enum):
    IMPROVING = "improving"
    DEGRADING = "degrading"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclasses.dataclass(frozen=True)
class FlakinessTrend:
    direction: FlakinessTrendDirection
    current_rate: float | None = None
    previous_rate: float | None = None
    improvement: float | None = None


@dataclasses.dataclass(frozen=True)
class _TrendPoint:
    timestamp_ms: float
    report: FlakinessReport


class FlakinessTrendTracker:
    """Stores each analysis and compares the last *period* points with the *period* before."""

    def __init__(
        self,
        analyzer: FlakinessAnalyzer | None = None,
        clock: Clock | None = None,
        *,
        period: int = 7,
        tolerance: float = 0.05,
    ) -> None:
        self._analyzer = analyzer or FlakinessAnalyzer()
        self._clock = clock or SystemClock()
        self._period = period
        self._tolerance = tolerance
        self._points: dict[str, deque[_TrendPoint]] = {}

    def track(self, operation_id: str, history: Sequence[ExecutionRecord]) -> FlakinessTrend:
        report = self._analyzer.analyze(history, operation_id)
        points = self._points.setdefault(operation_id, deque(maxlen=self._period * 2))
        points.append(_TrendPoint(now_ms(self._clock), report))
        return self.trend(operation_id)

    def trend(self, operation_id: str) -> FlakinessTrend:
        points = list(self._points.get(operation_id, ()))
        recent = points[-self._period:]
        older = points[-2 * self._period:-self._period]
        if len(points) < 2 or not older:
            return FlakinessTrend(FlakinessTrendDirection.INSUFFICIENT_DATA)

        recent_avg = sum(p.report.flakiness_score for p in recent) / len(recent)
        older_avg = sum(p.report.flakiness_score for p in older) / len(older)
        improvement = older_avg - recent_avg
        if improvement > self._tolerance:
            direction = FlakinessTrendDirection.IMPROVING
        elif improvement < -self._tolerance:
            direction = FlakinessTrendDirection.DEGRADING
        else:
            direction = FlakinessTrendDirection.STABLE
        return FlakinessTrend(direction, recent_avg, older_avg, improvement)

    def reports(self, operation_id: str) -> list[FlakinessReport]:
        return [p.report for p in self._points.get(operation_id, ())]


__all__ = ["FlakinessTrend", "FlakinessTrendDirection", "FlakinessTrendTracker"]
