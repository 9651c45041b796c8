"""Resilience – timeout strategies, hierarchical budgets and deadlines."""
from mp_reliability.resilience.timeouts.deadline import Deadline
from mp_reliability.resilience.timeouts.hierarchy import TimeoutContext, TimeoutHierarchy
from mp_reliability.resilience.timeouts.history import TimeoutHistory, TimeoutStats, TimeoutTrend
from mp_reliability.resilience.timeouts.manager import Operation, TimeoutManager
from mp_reliability.resilience.timeouts.policy import (
    DEFAULT_BASE_TIMEOUTS,
    TimeoutCallback,
    TimeoutOptions,
    TimeoutPolicy,
    TimeoutStrategy,
)
from mp_reliability.resilience.timeouts.result import TimeoutResult

__all__ = [
    "DEFAULT_BASE_TIMEOUTS",
    "Deadline",
    "Operation",
    "TimeoutCallback",
    "TimeoutContext",
    "TimeoutHierarchy",
    "TimeoutHistory",
    "TimeoutManager",
    "TimeoutOptions",
    "TimeoutPolicy",
    "TimeoutResult",
    "TimeoutStats",
    "TimeoutStrategy",
    "TimeoutTrend",
]
