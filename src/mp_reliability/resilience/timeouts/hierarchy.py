"""Resilience – hierarchical timeout contexts.

Nested timed regions form a stack held in a :class:`~contextvars.ContextVar`,
so every asyncio task sees its own chain of enclosing budgets.  A child's
effective timeout is capped at ``parent_child_ratio`` of the parent's
remaining time, and the stack never grows past ``max_depth``: a region
entered at full depth runs inside the innermost context without pushing a
new one.
"""
from __future__ import annotations

import contextlib
import dataclasses
from contextvars import ContextVar
from typing import Iterator

from mp_reliability.kernel.time import Clock, SystemClock, now_ms
from mp_reliability.observability.logging import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass(eq=False)
class TimeoutContext:
    """One timed region.  ``remaining_ms`` is refreshed whenever a child exits."""

    operation_type: str
    requested_timeout_ms: float
    effective_timeout_ms: float
    started_at_ms: float
    parent: TimeoutContext | None = None
    remaining_ms: float = 0.0
    owner: object = dataclasses.field(default=None, repr=False)

    @property
    def depth(self) -> int:
        depth, node = 1, self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def remaining_at(self, now: float) -> float:
        return max(0.0, self.effective_timeout_ms - (now - self.started_at_ms))


_STACK: ContextVar[tuple[TimeoutContext, ...]] = ContextVar("_timeout_stack", default=())


class TimeoutHierarchy:
    """Budget allocator for nested timed regions."""

    def __init__(
        self,
        parent_child_ratio: float = 0.7,
        max_depth: int = 5,
        *,
        enabled: bool = True,
        clock: Clock | None = None,
    ) -> None:
        if not 0 < parent_child_ratio <= 1:
            raise ValueError("parent_child_ratio must be in (0, 1]")
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.parent_child_ratio = parent_child_ratio
        self.max_depth = max_depth
        self.enabled = enabled
        self._clock = clock or SystemClock()

    def _stack(self) -> tuple[TimeoutContext, ...]:
        return tuple(c for c in _STACK.get() if c.owner is self)

    def current(self) -> TimeoutContext | None:
        stack = self._stack()
        return stack[-1] if stack else None

    def depth(self) -> int:
        return len(self._stack())

    def cap(self, requested_ms: float, *, force: bool | None = None) -> float:
        """Largest timeout a new child of the current context may use.

        *force* overrides ``enabled`` for this one call.
        """
        enabled = self.enabled if force is None else force
        parent = self.current()
        if parent is None or not enabled:
            return requested_ms
        return min(requested_ms, parent.remaining_at(now_ms(self._clock)) * self.parent_child_ratio)

    def remaining_ms(self) -> float | None:
        current = self.current()
        if current is None:
            return None
        return current.remaining_at(now_ms(self._clock))

    def is_timed_out(self) -> bool:
        remaining = self.remaining_ms()
        return remaining is not None and remaining <= 0

    def enter(
        self, operation_type: str, requested_ms: float, *, force: bool | None = None
    ) -> TimeoutContext | None:
        """Push a context for *operation_type*; ``None`` when already at max depth."""
        if self.depth() >= self.max_depth:
            logger.warning(
                "timeout.max_depth_reached",
                operation_type=operation_type,
                max_depth=self.max_depth,
            )
            return None
        effective = self.cap(requested_ms, force=force)
        context = TimeoutContext(
            operation_type=operation_type,
            requested_timeout_ms=requested_ms,
            effective_timeout_ms=effective,
            started_at_ms=now_ms(self._clock),
            parent=self.current(),
            remaining_ms=effective,
            owner=self,
        )
        _STACK.set((*_STACK.get(), context))
        return context

    def exit(self, context: TimeoutContext) -> float:
        """Pop *context* and return its actual duration in milliseconds.

        The parent's ``remaining_ms`` is refreshed from the clock, so budget
        the child did not use stays with the parent.
        """
        now = now_ms(self._clock)
        _STACK.set(tuple(c for c in _STACK.get() if c is not context))
        context.remaining_ms = context.remaining_at(now)
        if context.parent is not None:
            context.parent.remaining_ms = context.parent.remaining_at(now)
        return now - context.started_at_ms

    @contextlib.contextmanager
    def scope(self, operation_type: str, requested_ms: float) -> Iterator[TimeoutContext | None]:
        context = self.enter(operation_type, requested_ms)
        try:
            yield context
        finally:
            if context is not None:
                self.exit(context)


__all__ = ["TimeoutContext", "TimeoutHierarchy"]
