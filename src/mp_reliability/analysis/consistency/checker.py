"""Analysis – ConsistencyChecker.

Compares N repeated runs of one operation.  Each tracked metric is judged
by its coefficient of variation (population standard deviation over the
mean); a metric whose CV exceeds ``allowed_variance`` is inconsistent and
every run farther than ``allowed_variance * mean`` from the mean is listed
as an outlier.  Independently, each run's outcome is compared
structurally with the first run's.
"""
from __future__ import annotations

import dataclasses
import math
from enum import Enum
from typing import Any, Sequence

from mp_reliability.execution.records import ExecutionRecord


class ConsistencyMetric(str, Enum):
    DURATION = "duration"
    MEMORY = "memory"
    RESULT = "result"
    OUTCOME = "outcome"


@dataclasses.dataclass(frozen=True)
class Outlier:
    run_id: str
    metric: ConsistencyMetric
    value: Any
    expected: Any
    deviation: float | None = None


@dataclasses.dataclass(frozen=True)
class MetricConsistency:
    metric: ConsistencyMetric
    coefficient_of_variation: float
    consistent: bool
    outliers: tuple[Outlier, ...] = ()


@dataclasses.dataclass(frozen=True)
class ConsistencyReport:
    is_consistent: bool
    score: int
    run_count: int
    metrics: dict[ConsistencyMetric, MetricConsistency] = dataclasses.field(default_factory=dict)
    outliers: tuple[Outlier, ...] = ()
    outcomes_consistent: bool = True
    reason: str | None = None

    def coefficient_of_variation(self, metric: ConsistencyMetric) -> float | None:
        entry = self.metrics.get(metric)
        return entry.coefficient_of_variation if entry is not None else None


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population CV; 0.0 for an empty sequence or a zero mean."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    if mean == 0:
        return 0.0
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / abs(mean)


_METRIC_PENALTY = 25
_OUTCOME_PENALTY = 30


class ConsistencyChecker:
    def __init__(
        self,
        required_runs: int = 5,
        allowed_variance: float = 0.1,
        metrics: Sequence[ConsistencyMetric] = (
            ConsistencyMetric.DURATION,
            ConsistencyMetric.MEMORY,
            ConsistencyMetric.RESULT,
        ),
    ) -> None:
        self.required_runs = required_runs
        self.allowed_variance = allowed_variance
        self.metrics = tuple(ConsistencyMetric(m) for m in metrics if m is not ConsistencyMetric.OUTCOME)

    def check(self, runs: Sequence[ExecutionRecord]) -> ConsistencyReport:
        if len(runs) < self.required_runs:
            return ConsistencyReport(
                is_consistent=False,
                score=0,
                run_count=len(runs),
                reason=f"Insufficient runs: {len(runs)} < {self.required_runs}",
            )

        score = 100
        consistent = True
        metrics: dict[ConsistencyMetric, MetricConsistency] = {}
        outliers: list[Outlier] = []

        for metric in self.metrics:
            values = self._values(runs, metric)
            if values is None:
                continue
            entry = self._check_metric(runs, metric, values)
            metrics[metric] = entry
            if not entry.consistent:
                consistent = False
                score -= _METRIC_PENALTY
                outliers.extend(entry.outliers)

        outcome_outliers = self._outcome_outliers(runs)
        if outcome_outliers:
            consistent = False
            score -= _OUTCOME_PENALTY
            outliers.extend(outcome_outliers)

        return ConsistencyReport(
            is_consistent=consistent,
            score=max(0, score),
            run_count=len(runs),
            metrics=metrics,
            outliers=tuple(outliers),
            outcomes_consistent=not outcome_outliers,
        )

    @staticmethod
    def _values(runs: Sequence[ExecutionRecord], metric: ConsistencyMetric) -> list[float] | None:
        if metric is ConsistencyMetric.DURATION:
            return [r.duration_ms for r in runs]
        if metric is ConsistencyMetric.RESULT:
            return [1.0 if r.success else 0.0 for r in runs]
        # memory is tracked only when every run reports it
        memory = [r.memory_mb for r in runs]
        if any(m is None for m in memory):
            return None
        return [float(m) for m in memory]  # type: ignore[arg-type]

    def _check_metric(
        self, runs: Sequence[ExecutionRecord], metric: ConsistencyMetric, values: list[float]
    ) -> MetricConsistency:
        cv = coefficient_of_variation(values)
        if cv <= self.allowed_variance:
            return MetricConsistency(metric, cv, True)
        mean = sum(values) / len(values)
        threshold = abs(mean) * self.allowed_variance
        outliers = tuple(
            Outlier(run.run_id, metric, value, mean, abs(value - mean))
            for run, value in zip(runs, values)
            if abs(value - mean) > threshold
        )
        return MetricConsistency(metric, cv, False, outliers)

    @staticmethod
    def _outcome_outliers(runs: Sequence[ExecutionRecord]) -> list[Outlier]:
        expected = runs[0].outcome
        return [
            Outlier(run.run_id, ConsistencyMetric.OUTCOME, run.outcome, expected)
            for run in runs[1:]
            if run.outcome != expected
        ]


__all__ = [
    "ConsistencyChecker",
    "ConsistencyMetric",
    "ConsistencyReport",
    "MetricConsistency",
    "Outlier",
    "coefficient_of_variation",
]
