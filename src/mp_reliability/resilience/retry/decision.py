"""Resilience – RetryDecisionEngine.

Turns one failed attempt into a :class:`RetryDecision`:

1. ``attempt >= max_retries`` (or the backoff ceiling) -> refuse.
2. Error kind not retryable -> refuse.  Unknown errors are UNCLASSIFIED and
   therefore refused as well.
3. Circuit open for the operation -> refuse.
4. Collect supporting conditions; the retryable error is one of them and at
   least ``min_conditions`` must hold.
5. Delay from the backoff schedule, halved when history is favourable and
   stretched when many conditions were needed.

Approval consumes one circuit-breaker admission for the upcoming attempt.
"""
from __future__ import annotations

import dataclasses
from collections import deque
from enum import Enum

from mp_reliability.execution.context import OperationContext
from mp_reliability.kernel.errors import classify
from mp_reliability.kernel.time import Clock, SystemClock, now_ms
from mp_reliability.observability.environment import EnvironmentSnapshot
from mp_reliability.observability.logging import get_logger
from mp_reliability.resilience.circuit_breaker import CircuitBreaker
from mp_reliability.resilience.retry.backoff import ExponentialBackoff

logger = get_logger(__name__)


class RetryReason(str, Enum):
    MAX_RETRIES_REACHED = "maxRetriesReached"
    CIRCUIT_BREAKER_OPEN = "circuitBreakerOpen"
    NON_RETRYABLE_ERROR = "nonRetryableError"
    INSUFFICIENT_CONDITIONS = "insufficientConditions"
    RETRYABLE_ERROR = "retryableError"
    TEST_CRITICALITY = "testCriticality"
    EXECUTION_TIME = "executionTime"
    ENVIRONMENT_CONDITIONS = "environmentConditions"
    HISTORICAL_SUCCESS = "historicalSuccess"


# Refusal reasons, most specific first.
_TERMINAL_PRIORITY: tuple[RetryReason, ...] = (
    RetryReason.MAX_RETRIES_REACHED,
    RetryReason.CIRCUIT_BREAKER_OPEN,
    RetryReason.NON_RETRYABLE_ERROR,
    RetryReason.INSUFFICIENT_CONDITIONS,
)
TERMINAL_REASONS: frozenset[RetryReason] = frozenset(_TERMINAL_PRIORITY)

_SUPPORTING_REASONS = 5


@dataclasses.dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay_ms: float
    reason_codes: frozenset[RetryReason]
    confidence: float
    attempt: int = 0

    @property
    def max_retries_reached(self) -> bool:
        return RetryReason.MAX_RETRIES_REACHED in self.reason_codes

    @property
    def circuit_breaker_open(self) -> bool:
        return RetryReason.CIRCUIT_BREAKER_OPEN in self.reason_codes

    @property
    def terminal_reason(self) -> RetryReason | None:
        """The refusal reason, or ``None`` for an approved retry."""
        for reason in _TERMINAL_PRIORITY:
            if reason in self.reason_codes:
                return reason
        return None


@dataclasses.dataclass
class RetryPolicy:
    """Tunables of the decision engine."""

    learning_enabled: bool = True
    max_execution_time_ms: float = 10_000.0
    cpu_limit_pct: float = 90.0
    mem_limit_pct: float = 95.0
    min_conditions: int = 2
    historical_success_threshold: float = 0.3
    outcome_log_size: int = 50
    outcome_window: int = 10
    default_historical_success: float = 0.5
    favourable_delay_factor: float = 0.5
    risky_delay_factor: float = 1.5


@dataclasses.dataclass(frozen=True)
class RetryOutcome:
    timestamp_ms: float
    success: bool
    delay_ms: float
    attempt: int


class RetryDecisionEngine:
    """Single retry / no-retry authority for failed attempts."""

    def __init__(
        self,
        backoff: ExponentialBackoff,
        circuit_breaker: CircuitBreaker,
        policy: RetryPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._backoff = backoff
        self._breaker = circuit_breaker
        self._policy = policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._outcomes: dict[str, deque[RetryOutcome]] = {}

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def backoff(self) -> ExponentialBackoff:
        return self._backoff

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._breaker

    def decide(
        self,
        *,
        error: BaseException | None,
        attempt: int,
        context: OperationContext,
        max_retries: int | None = None,
        execution_time_ms: float = 0.0,
        environment: EnvironmentSnapshot | None = None,
    ) -> RetryDecision:
        operation_id = context.operation_id
        ceiling = self._backoff.config.max_retries
        if max_retries is not None:
            ceiling = min(ceiling, max_retries)

        if attempt >= ceiling:
            return self._refuse(operation_id, attempt, RetryReason.MAX_RETRIES_REACHED)

        kind = classify(error)
        if not kind.retryable:
            return self._refuse(operation_id, attempt, RetryReason.NON_RETRYABLE_ERROR)

        if self._breaker.is_open(operation_id):
            return self._refuse(operation_id, attempt, RetryReason.CIRCUIT_BREAKER_OPEN)

        reasons: set[RetryReason] = {RetryReason.RETRYABLE_ERROR}
        confidence: float | None = None

        if context.is_critical:
            reasons.add(RetryReason.TEST_CRITICALITY)
        if execution_time_ms < self._policy.max_execution_time_ms:
            reasons.add(RetryReason.EXECUTION_TIME)
        if environment is not None and environment.is_stable(
            self._policy.cpu_limit_pct, self._policy.mem_limit_pct
        ):
            reasons.add(RetryReason.ENVIRONMENT_CONDITIONS)
        if self._policy.learning_enabled:
            historical = self.historical_success_rate(operation_id)
            if historical > self._policy.historical_success_threshold:
                reasons.add(RetryReason.HISTORICAL_SUCCESS)
                confidence = historical

        if confidence is None:
            confidence = len(reasons) / _SUPPORTING_REASONS

        if len(reasons) < self._policy.min_conditions:
            reasons.add(RetryReason.INSUFFICIENT_CONDITIONS)
            return self._log(
                operation_id,
                RetryDecision(False, 0.0, frozenset(reasons), confidence, attempt),
            )

        if not self._breaker.should_allow_execution(operation_id):
            return self._refuse(operation_id, attempt, RetryReason.CIRCUIT_BREAKER_OPEN)

        delay = self._delay_for(attempt, reasons)
        return self._log(
            operation_id,
            RetryDecision(True, delay, frozenset(reasons), confidence, attempt),
        )

    def _delay_for(self, attempt: int, reasons: set[RetryReason]) -> float:
        cfg = self._backoff.config
        base = self._backoff.schedule(attempt).delay_ms
        if RetryReason.HISTORICAL_SUCCESS in reasons:
            delay = max(cfg.initial_delay_ms * 0.5, base * self._policy.favourable_delay_factor)
        elif len(reasons) > 3:
            delay = base * self._policy.risky_delay_factor
        else:
            delay = base
        return min(delay, cfg.max_delay_ms)

    def _refuse(self, operation_id: str, attempt: int, reason: RetryReason) -> RetryDecision:
        return self._log(operation_id, RetryDecision(False, 0.0, frozenset({reason}), 1.0, attempt))

    def _log(self, operation_id: str, decision: RetryDecision) -> RetryDecision:
        logger.debug(
            "retry.decision",
            operation_id=operation_id,
            attempt=decision.attempt,
            should_retry=decision.should_retry,
            delay_ms=decision.delay_ms,
            reasons=sorted(r.value for r in decision.reason_codes),
        )
        return decision

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def record_outcome(self, operation_id: str, success: bool, delay_ms: float, attempt: int) -> None:
        """Append the result of a retried attempt to the rolling outcome log."""
        log = self._outcomes.get(operation_id)
        if log is None:
            log = deque(maxlen=self._policy.outcome_log_size)
            self._outcomes[operation_id] = log
        log.append(RetryOutcome(now_ms(self._clock), success, delay_ms, attempt))

    def historical_success_rate(self, operation_id: str) -> float:
        log = self._outcomes.get(operation_id)
        if not log:
            return self._policy.default_historical_success
        recent = list(log)[-self._policy.outcome_window:]
        return sum(1 for o in recent if o.success) / len(recent)

    def outcomes(self, operation_id: str) -> list[RetryOutcome]:
        return list(self._outcomes.get(operation_id, ()))


__all__ = [
    "TERMINAL_REASONS",
    "RetryDecision",
    "RetryDecisionEngine",
    "RetryOutcome",
    "RetryPolicy",
    "RetryReason",
]
