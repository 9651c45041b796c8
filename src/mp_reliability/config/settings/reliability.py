"""Config settings – ReliabilitySettings, the engine's single source of defaults."""
from __future__ import annotations

import dataclasses
from typing import ClassVar

from mp_reliability.config.settings.base import Settings
from mp_reliability.config.validation import InvalidSettingValueError


@dataclasses.dataclass
class ReliabilitySettings(Settings):
    """Every tunable of the reliability engine.

    Loaded from ``RELIABILITY_*`` environment variables by
    :class:`~mp_reliability.config.settings.loaders.EnvSettingsLoader`.
    Durations are milliseconds.
    """

    _prefix: ClassVar[str] = "RELIABILITY"

    # execution history
    history_window: int = 50

    # flakiness analysis
    min_executions: int = 5
    flakiness_threshold: float = 0.2
    expected_success_rate: float = 0.95

    # circuit breaker
    failure_threshold: int = 5
    recovery_timeout_ms: float = 300_000.0
    half_open_attempts: int = 2
    monitoring_window_ms: float = 600_000.0

    # backoff / retry
    initial_delay_ms: float = 1000.0
    max_delay_ms: float = 30_000.0
    backoff_multiplier: float = 2.0
    jitter_enabled: bool = True
    max_retries: int = 3
    learning_enabled: bool = True
    max_execution_time_ms: float = 10_000.0

    # consistency
    required_runs: int = 5
    allowed_variance: float = 0.1

    # concurrency
    max_concurrency: int = 4

    # timeouts
    default_timeout_ms: float = 5000.0
    hierarchical_enabled: bool = True
    parent_child_ratio: float = 0.7
    max_timeout_depth: int = 5
    adaptive_success_threshold: float = 0.8
    adaptive_adjustment_factor: float = 0.2
    adaptive_min_multiplier: float = 0.5
    adaptive_max_multiplier: float = 3.0
    progressive_increment_factor: float = 1.5

    def _validate(self) -> None:
        for name in (
            "history_window",
            "min_executions",
            "failure_threshold",
            "half_open_attempts",
            "required_runs",
            "max_concurrency",
            "max_timeout_depth",
        ):
            if getattr(self, name) < 1:
                raise InvalidSettingValueError(name, getattr(self, name), "must be >= 1")
        if self.max_retries < 0:
            raise InvalidSettingValueError("max_retries", self.max_retries, "must be >= 0")
        for name in (
            "flakiness_threshold",
            "expected_success_rate",
            "parent_child_ratio",
            "adaptive_success_threshold",
        ):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise InvalidSettingValueError(name, value, "must be in (0, 1]")
        for name in (
            "recovery_timeout_ms",
            "monitoring_window_ms",
            "initial_delay_ms",
            "max_delay_ms",
            "max_execution_time_ms",
            "default_timeout_ms",
            "allowed_variance",
        ):
            if getattr(self, name) < 0:
                raise InvalidSettingValueError(name, getattr(self, name), "must be >= 0")
        if self.max_delay_ms < self.initial_delay_ms:
            raise InvalidSettingValueError(
                "max_delay_ms", self.max_delay_ms, "must be >= initial_delay_ms"
            )
        if self.backoff_multiplier < 1.0:
            raise InvalidSettingValueError(
                "backoff_multiplier", self.backoff_multiplier, "must be >= 1"
            )
        if not 0.0 < self.adaptive_min_multiplier <= 1.0 <= self.adaptive_max_multiplier:
            raise InvalidSettingValueError(
                "adaptive_min_multiplier",
                (self.adaptive_min_multiplier, self.adaptive_max_multiplier),
                "expected 0 < min <= 1 <= max",
            )


__all__ = ["ReliabilitySettings"]
