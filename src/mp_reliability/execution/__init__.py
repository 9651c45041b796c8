"""Execution – operation context, attempt records and history.

The batch scheduler lives in :mod:`mp_reliability.execution.executor`; it is
not re-exported here because it depends on the resilience layer, which in
turn depends on these records.
"""
from mp_reliability.execution.context import CRITICAL_LEVELS, ExecutionConditions, OperationContext
from mp_reliability.execution.records import ExecutionHistory, ExecutionRecord

__all__ = [
    "CRITICAL_LEVELS",
    "ExecutionConditions",
    "ExecutionHistory",
    "ExecutionRecord",
    "OperationContext",
]
