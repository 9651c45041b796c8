"""Resilience – circuit-breaker specific errors."""
from __future__ import annotations

from mp_reliability.kernel.errors import ApplicationError


class CircuitOpenError(ApplicationError):
    """Raised by :meth:`CircuitBreaker.guard` when an operation is quarantined.

    Attributes
    ----------
    operation_id:
        Operation whose circuit rejected the attempt.
    time_to_recovery_ms:
        Milliseconds until trial attempts are permitted again.
    """

    default_code = "circuit_open"

    def __init__(self, operation_id: str, time_to_recovery_ms: float = 0.0) -> None:
        super().__init__(f"Circuit breaker for '{operation_id}' is OPEN")
        self.operation_id = operation_id
        self.time_to_recovery_ms = time_to_recovery_ms

    def to_dict(self) -> dict[str, object]:
        base = super().to_dict()
        base["operation_id"] = self.operation_id
        base["time_to_recovery_ms"] = self.time_to_recovery_ms
        return base


__all__ = ["CircuitOpenError"]
