"""Resilience – circuit phases and the CircuitState snapshot."""
from __future__ import annotations

import dataclasses
from enum import Enum


class CircuitPhase(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclasses.dataclass(frozen=True)
class CircuitState:
    """Point-in-time view of one operation's circuit.

    ``is_open`` stays true through HALF_OPEN: the circuit is only fully
    closed once the half-open success quota has been met.
    """

    operation_id: str
    phase: CircuitPhase
    consecutive_failures: int
    total_failures: int
    total_successes: int
    opened_at_ms: float | None
    recovery_deadline_ms: float | None
    half_open_attempts_used: int
    failure_rate: float
    monitoring_window_failures: int
    time_to_recovery_ms: float

    @property
    def is_open(self) -> bool:
        return self.phase is not CircuitPhase.CLOSED


__all__ = ["CircuitPhase", "CircuitState"]
