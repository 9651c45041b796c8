"""Resilience – timeout strategies, options and the contextual multipliers."""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Awaitable, Callable

from mp_reliability.execution.context import ExecutionConditions
from mp_reliability.kernel.errors import OperationTimeoutError


class TimeoutStrategy(str, Enum):
    FIXED = "fixed"
    ADAPTIVE = "adaptive"
    PROGRESSIVE = "progressive"
    CONTEXTUAL = "contextual"


DEFAULT_BASE_TIMEOUTS: dict[str, float] = {
    "default": 5000.0,
    "navigation": 10_000.0,
    "element": 5000.0,
    "screenshot": 3000.0,
    "accessibility": 8000.0,
    "interaction": 3000.0,
    "api": 10_000.0,
    "file": 5000.0,
}

TimeoutCallback = Callable[[OperationTimeoutError, dict[str, Any]], Awaitable[None] | None]


@dataclasses.dataclass
class TimeoutPolicy:
    """Engine-wide timeout tunables (milliseconds and plain factors)."""

    base_timeouts: dict[str, float] = dataclasses.field(default_factory=lambda: dict(DEFAULT_BASE_TIMEOUTS))
    default_timeout_ms: float = 5000.0

    # contextual
    ci_multiplier: float = 1.5
    slow_network_multiplier: float = 2.0
    high_load_multiplier: float = 1.3
    debug_multiplier: float = 3.0
    large_viewport_area: int = 2_000_000
    large_viewport_multiplier: float = 1.5
    complex_page_multiplier: float = 1.3

    # adaptive
    adaptive_min_samples: int = 5
    adaptive_success_threshold: float = 0.8
    adaptive_adjustment_factor: float = 0.2
    adaptive_min_multiplier: float = 0.5
    adaptive_max_multiplier: float = 3.0
    adaptive_duration_margin: float = 1.2

    # progressive
    progressive_increment_factor: float = 1.5

    # hierarchical
    hierarchical_enabled: bool = True
    parent_child_ratio: float = 0.7
    max_depth: int = 5

    def base_timeout_for(self, operation_type: str) -> float:
        return self.base_timeouts.get(operation_type, self.default_timeout_ms)

    def contextual_timeout(
        self, operation_type: str, base_ms: float, conditions: ExecutionConditions
    ) -> float:
        timeout = base_ms
        if conditions.ci:
            timeout *= self.ci_multiplier
        if conditions.slow_network:
            timeout *= self.slow_network_multiplier
        if conditions.high_load:
            timeout *= self.high_load_multiplier
        if conditions.debug:
            timeout *= self.debug_multiplier

        if operation_type == "screenshot" and conditions.viewport is not None:
            width, height = conditions.viewport
            if width * height > self.large_viewport_area:
                timeout *= self.large_viewport_multiplier
        if operation_type == "accessibility" and conditions.page_complexity == "high":
            timeout *= self.complex_page_multiplier
        return float(round(timeout))

    def progressive_timeout(self, base_ms: float, retry_count: int) -> float:
        return base_ms * self.progressive_increment_factor ** max(0, retry_count)


@dataclasses.dataclass
class TimeoutOptions:
    """Per-call options for :meth:`TimeoutManager.run`.

    ``timeout_ms`` defaults to the base timeout of the operation type;
    ``hierarchical`` defaults to the policy setting.
    """

    timeout_ms: float | None = None
    strategy: TimeoutStrategy = TimeoutStrategy.ADAPTIVE
    conditions: ExecutionConditions = dataclasses.field(default_factory=ExecutionConditions)
    retry_count: int = 0
    hierarchical: bool | None = None
    operation_id: str | None = None
    on_timeout: TimeoutCallback | None = None


__all__ = [
    "DEFAULT_BASE_TIMEOUTS",
    "TimeoutCallback",
    "TimeoutOptions",
    "TimeoutPolicy",
    "TimeoutStrategy",
]
