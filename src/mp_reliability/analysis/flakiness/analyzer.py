"""Analysis – FlakinessAnalyzer.

Scores an operation's recent attempts:

* ``flakiness_score = failures / total`` and ``is_flaky`` when the score
  exceeds the threshold (default 0.2);
* ``confidence``: two-sided significance of the observed success rate
  against the expected baseline (default 0.95) under a normal
  approximation of the binomial, capped at 0.99;
* advisory actions, never applied automatically.
"""
from __future__ import annotations

import dataclasses
import math
from enum import Enum
from typing import Sequence

from mp_reliability.execution.records import ExecutionRecord


class RecommendedAction(str, Enum):
    INSUFFICIENT_DATA = "insufficientData"
    INCREASE_RETRY_ATTEMPTS = "increaseRetryAttempts"
    ADD_WAIT_CONDITIONS = "addWaitConditions"
    REVIEW_DEPENDENCIES = "reviewTestDependencies"
    ADJUST_TIMEOUTS = "adjustTimeouts"
    STABILIZE_ENVIRONMENT = "stabilizeTestEnvironment"


@dataclasses.dataclass(frozen=True)
class FlakinessReport:
    operation_id: str | None
    is_flaky: bool
    flakiness_score: float
    confidence: float
    recommended_actions: tuple[RecommendedAction, ...]
    execution_count: int
    success_count: int = 0
    failure_count: int = 0
    intermittent_timeouts: bool = False
    environment_dependent: bool = False
    reason: str | None = None

    @property
    def insufficient_data(self) -> bool:
        return RecommendedAction.INSUFFICIENT_DATA in self.recommended_actions


def binomial_confidence(successes: int, trials: int, expected_rate: float, cap: float = 0.99) -> float:
    """Confidence that the observed success rate differs from *expected_rate*.

    ``z = |p - p0| / sqrt(p0 (1 - p0) / n)`` mapped through the two-sided
    normal CDF (``erf(z / sqrt 2)``) and capped at *cap*.
    """
    if trials <= 0:
        return 0.0
    observed = successes / trials
    standard_error = math.sqrt(expected_rate * (1 - expected_rate) / trials)
    if standard_error == 0:
        return cap if observed != expected_rate else 0.0
    z = abs(observed - expected_rate) / standard_error
    return min(cap, math.erf(z / math.sqrt(2)))


class FlakinessAnalyzer:
    """Stateless scorer; keep history in an :class:`ExecutionHistory`."""

    def __init__(
        self,
        min_executions: int = 5,
        flakiness_threshold: float = 0.2,
        expected_success_rate: float = 0.95,
        *,
        timeout_ratio: float = 0.1,
        environment_failure_ratio: float = 0.5,
        cpu_limit_pct: float = 80.0,
        mem_limit_pct: float = 85.0,
    ) -> None:
        self.min_executions = min_executions
        self.flakiness_threshold = flakiness_threshold
        self.expected_success_rate = expected_success_rate
        self.timeout_ratio = timeout_ratio
        self.environment_failure_ratio = environment_failure_ratio
        self.cpu_limit_pct = cpu_limit_pct
        self.mem_limit_pct = mem_limit_pct

    def analyze(self, history: Sequence[ExecutionRecord], operation_id: str | None = None) -> FlakinessReport:
        if operation_id is None and history:
            operation_id = history[0].operation_id
        total = len(history)
        if total < self.min_executions:
            return FlakinessReport(
                operation_id=operation_id,
                is_flaky=False,
                flakiness_score=0.0,
                confidence=0.0,
                recommended_actions=(RecommendedAction.INSUFFICIENT_DATA,),
                execution_count=total,
                reason=f"Need at least {self.min_executions} executions, only have {total}",
            )

        successes = sum(1 for r in history if r.success)
        failures = total - successes
        score = failures / total
        is_flaky = score > self.flakiness_threshold
        intermittent = self.has_intermittent_timeouts(history)
        env_dependent = self.is_environment_dependent(history)

        actions: list[RecommendedAction] = []
        if is_flaky:
            actions += [
                RecommendedAction.INCREASE_RETRY_ATTEMPTS,
                RecommendedAction.ADD_WAIT_CONDITIONS,
                RecommendedAction.REVIEW_DEPENDENCIES,
            ]
        if intermittent:
            actions.append(RecommendedAction.ADJUST_TIMEOUTS)
        if env_dependent:
            actions.append(RecommendedAction.STABILIZE_ENVIRONMENT)

        return FlakinessReport(
            operation_id=operation_id,
            is_flaky=is_flaky,
            flakiness_score=score,
            confidence=binomial_confidence(successes, total, self.expected_success_rate),
            recommended_actions=tuple(actions),
            execution_count=total,
            success_count=successes,
            failure_count=failures,
            intermittent_timeouts=intermittent,
            environment_dependent=env_dependent,
        )

    def has_intermittent_timeouts(self, history: Sequence[ExecutionRecord]) -> bool:
        if not history:
            return False
        timeouts = sum(1 for r in history if r.timed_out)
        return timeouts / len(history) > self.timeout_ratio

    def is_environment_dependent(self, history: Sequence[ExecutionRecord]) -> bool:
        """True when most failed runs happened under high CPU or memory load."""
        failed = [r for r in history if not r.success]
        if not failed or all(r.environment is None for r in failed):
            return False
        limits = (self.cpu_limit_pct, self.mem_limit_pct)
        loaded = sum(1 for r in failed if r.environment is not None and r.environment.is_high_load(*limits))
        return loaded / len(failed) > self.environment_failure_ratio


__all__ = ["FlakinessAnalyzer", "FlakinessReport", "RecommendedAction", "binomial_confidence"]
