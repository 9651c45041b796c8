"""Resilience – per-operation CircuitBreaker registry.

One circuit per operation id, created lazily on first use and kept for
the lifetime of the breaker.  Phases::

    CLOSED --(consecutive failures >= threshold)--> OPEN
    OPEN --(now >= recovery deadline)--> HALF_OPEN
    HALF_OPEN --(half_open_attempts successes)--> CLOSED
    HALF_OPEN --(any failure)--> OPEN (fresh deadline)

State is mutated only by the coordinating event loop, so no lock is held.
"""
from __future__ import annotations

import dataclasses
from collections import deque

from mp_reliability.kernel.time import Clock, SystemClock, now_ms
from mp_reliability.observability.logging import get_logger
from mp_reliability.resilience.circuit_breaker.errors import CircuitOpenError
from mp_reliability.resilience.circuit_breaker.policy import CircuitBreakerPolicy
from mp_reliability.resilience.circuit_breaker.state import CircuitPhase, CircuitState

logger = get_logger(__name__)


@dataclasses.dataclass
class _Circuit:
    phase: CircuitPhase = CircuitPhase.CLOSED
    consecutive_failures: int = 0
    total_failures: int = 0
    total_successes: int = 0
    opened_at_ms: float | None = None
    recovery_deadline_ms: float | None = None
    half_open_attempts_used: int = 0
    half_open_successes: int = 0
    last_failure_ms: float | None = None
    last_success_ms: float | None = None
    failure_times: deque[float] = dataclasses.field(default_factory=deque)


class CircuitBreaker:
    """Gates attempts per operation id based on recent failures."""

    def __init__(self, policy: CircuitBreakerPolicy | None = None, clock: Clock | None = None) -> None:
        self._policy = policy or CircuitBreakerPolicy()
        self._clock = clock or SystemClock()
        self._circuits: dict[str, _Circuit] = {}

    @property
    def policy(self) -> CircuitBreakerPolicy:
        return self._policy

    def _circuit(self, operation_id: str) -> _Circuit:
        circuit = self._circuits.get(operation_id)
        if circuit is None:
            circuit = _Circuit()
            self._circuits[operation_id] = circuit
        return circuit

    def _prune(self, circuit: _Circuit, now: float) -> None:
        horizon = now - self._policy.monitoring_window_ms
        while circuit.failure_times and circuit.failure_times[0] <= horizon:
            circuit.failure_times.popleft()

    def _open(self, operation_id: str, circuit: _Circuit, now: float) -> None:
        circuit.phase = CircuitPhase.OPEN
        circuit.opened_at_ms = now
        circuit.recovery_deadline_ms = now + self._policy.recovery_timeout_ms
        circuit.half_open_attempts_used = 0
        circuit.half_open_successes = 0
        logger.warning(
            "circuit_breaker.opened",
            operation_id=operation_id,
            consecutive_failures=circuit.consecutive_failures,
            recovery_deadline_ms=circuit.recovery_deadline_ms,
        )

    def _close(self, operation_id: str, circuit: _Circuit) -> None:
        circuit.phase = CircuitPhase.CLOSED
        circuit.consecutive_failures = 0
        circuit.opened_at_ms = None
        circuit.recovery_deadline_ms = None
        circuit.half_open_attempts_used = 0
        circuit.half_open_successes = 0
        logger.info("circuit_breaker.closed", operation_id=operation_id)

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def is_open(self, operation_id: str) -> bool:
        """True while attempts are refused outright (OPEN and before the deadline).

        Unlike :meth:`should_allow_execution` this never consumes a
        half-open trial slot.
        """
        circuit = self._circuits.get(operation_id)
        if circuit is None or circuit.phase is not CircuitPhase.OPEN:
            return False
        return now_ms(self._clock) < (circuit.recovery_deadline_ms or 0.0)

    def should_allow_execution(self, operation_id: str) -> bool:
        """Return whether one more attempt of *operation_id* may start.

        Past the recovery deadline the circuit moves to HALF_OPEN and hands
        out at most ``half_open_attempts`` trial slots; each ``True`` return
        in HALF_OPEN consumes one.
        """
        circuit = self._circuit(operation_id)
        if circuit.phase is CircuitPhase.CLOSED:
            return True

        if circuit.phase is CircuitPhase.OPEN:
            if now_ms(self._clock) < (circuit.recovery_deadline_ms or 0.0):
                return False
            circuit.phase = CircuitPhase.HALF_OPEN
            circuit.half_open_attempts_used = 0
            circuit.half_open_successes = 0
            logger.info("circuit_breaker.half_open", operation_id=operation_id)

        if circuit.half_open_attempts_used < self._policy.half_open_attempts:
            circuit.half_open_attempts_used += 1
            return True
        return False

    def guard(self, operation_id: str) -> None:
        """Raise :class:`CircuitOpenError` unless an attempt is allowed."""
        if not self.should_allow_execution(operation_id):
            raise CircuitOpenError(operation_id, self.get_state(operation_id).time_to_recovery_ms)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def record_failure(self, operation_id: str, error: BaseException | None = None) -> None:
        circuit = self._circuit(operation_id)
        now = now_ms(self._clock)
        circuit.consecutive_failures += 1
        circuit.total_failures += 1
        circuit.last_failure_ms = now
        circuit.failure_times.append(now)
        self._prune(circuit, now)
        logger.debug(
            "circuit_breaker.failure",
            operation_id=operation_id,
            consecutive_failures=circuit.consecutive_failures,
            threshold=self._policy.failure_threshold,
            error=type(error).__name__ if error is not None else None,
        )

        if circuit.phase is CircuitPhase.HALF_OPEN:
            self._open(operation_id, circuit, now)
        elif (
            circuit.phase is CircuitPhase.CLOSED
            and circuit.consecutive_failures >= self._policy.failure_threshold
        ):
            self._open(operation_id, circuit, now)

    def record_success(self, operation_id: str) -> None:
        circuit = self._circuit(operation_id)
        circuit.consecutive_failures = 0
        circuit.total_successes += 1
        circuit.last_success_ms = now_ms(self._clock)

        if circuit.phase is CircuitPhase.HALF_OPEN:
            circuit.half_open_successes += 1
            if circuit.half_open_successes >= self._policy.half_open_attempts:
                self._close(operation_id, circuit)

    def reset(self, operation_id: str) -> None:
        """Force the circuit of *operation_id* back to CLOSED, keeping totals."""
        circuit = self._circuit(operation_id)
        self._close(operation_id, circuit)
        circuit.failure_times.clear()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_state(self, operation_id: str) -> CircuitState:
        circuit = self._circuit(operation_id)
        now = now_ms(self._clock)
        self._prune(circuit, now)
        total = circuit.total_failures + circuit.total_successes
        time_to_recovery = 0.0
        if circuit.phase is CircuitPhase.OPEN and circuit.recovery_deadline_ms is not None:
            time_to_recovery = max(0.0, circuit.recovery_deadline_ms - now)
        return CircuitState(
            operation_id=operation_id,
            phase=circuit.phase,
            consecutive_failures=circuit.consecutive_failures,
            total_failures=circuit.total_failures,
            total_successes=circuit.total_successes,
            opened_at_ms=circuit.opened_at_ms,
            recovery_deadline_ms=circuit.recovery_deadline_ms,
            half_open_attempts_used=circuit.half_open_attempts_used,
            failure_rate=circuit.total_failures / total if total else 0.0,
            monitoring_window_failures=len(circuit.failure_times),
            time_to_recovery_ms=time_to_recovery,
        )

    def operation_ids(self) -> list[str]:
        return list(self._circuits)


__all__ = ["CircuitBreaker"]
