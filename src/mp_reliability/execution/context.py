"""Execution – per-operation context supplied alongside each task."""
from __future__ import annotations

import dataclasses


CRITICAL_LEVELS: frozenset[str] = frozenset({"critical", "high", "important"})


@dataclasses.dataclass(frozen=True)
class ExecutionConditions:
    """Ambient conditions that stretch contextual timeouts."""

    ci: bool = False
    slow_network: bool = False
    high_load: bool = False
    debug: bool = False
    viewport: tuple[int, int] | None = None
    page_complexity: str | None = None


@dataclasses.dataclass(frozen=True)
class OperationContext:
    """Identity and hints for one operation.

    ``operation_id`` keys circuit state and flakiness history;
    ``operation_type`` keys timeout history (many ids share one type).
    """

    operation_id: str
    operation_type: str = "default"
    criticality: str | None = None
    conditions: ExecutionConditions = dataclasses.field(default_factory=ExecutionConditions)

    @property
    def is_critical(self) -> bool:
        return (self.criticality or "").lower() in CRITICAL_LEVELS


__all__ = ["CRITICAL_LEVELS", "ExecutionConditions", "OperationContext"]
