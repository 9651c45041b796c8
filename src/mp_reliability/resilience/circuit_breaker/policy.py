"""Resilience – CircuitBreakerPolicy."""
from __future__ import annotations

import dataclasses


@dataclasses.dataclass
class CircuitBreakerPolicy:
    """Per-operation circuit tunables; durations are milliseconds.

    ``half_open_attempts`` is both the number of trial slots handed out
    after the recovery deadline and the success quota that closes the
    circuit again.  Failures older than ``monitoring_window_ms`` drop out
    of ``CircuitState.monitoring_window_failures``.
    """

    failure_threshold: int = 5
    recovery_timeout_ms: float = 300_000.0
    half_open_attempts: int = 2
    monitoring_window_ms: float = 600_000.0

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.half_open_attempts < 1:
            raise ValueError("half_open_attempts must be >= 1")
        if self.recovery_timeout_ms < 0 or self.monitoring_window_ms < 0:
            raise ValueError("recovery_timeout_ms and monitoring_window_ms must be >= 0")


__all__ = ["CircuitBreakerPolicy"]
