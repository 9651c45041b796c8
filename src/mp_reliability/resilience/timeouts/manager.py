"""Resilience – TimeoutManager.

``run`` resolves the effective timeout for an operation in two steps:

1. the strategy (fixed / adaptive / progressive / contextual) adjusts the
   base timeout;
2. when hierarchical mode is on, the result is capped at
   ``parent_child_ratio`` of the enclosing context's remaining budget.

The operation then races a timer.  On timeout only the wait is abandoned:
a coroutine is cancelled, a synchronous function keeps running on its
worker thread and its eventual result is discarded.
"""
from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable

from mp_reliability.execution.records import ExecutionRecord
from mp_reliability.kernel.errors import ErrorKind, OperationTimeoutError, classify
from mp_reliability.kernel.time import Clock, SystemClock, now_ms
from mp_reliability.observability.environment import EnvironmentSampler
from mp_reliability.observability.logging import get_logger
from mp_reliability.resilience.timeouts.hierarchy import TimeoutHierarchy
from mp_reliability.resilience.timeouts.history import TimeoutHistory
from mp_reliability.resilience.timeouts.policy import TimeoutOptions, TimeoutPolicy, TimeoutStrategy
from mp_reliability.resilience.timeouts.result import TimeoutResult

logger = get_logger(__name__)

Operation = Callable[[], Any]


def _is_async(fn: Operation) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None))


async def _call(fn: Operation) -> Any:
    if _is_async(fn):
        return await fn()
    result = await asyncio.to_thread(fn)
    if inspect.isawaitable(result):
        result = await result
    return result


class TimeoutManager:
    """Runs operations under a computed time budget and records their durations."""

    def __init__(
        self,
        policy: TimeoutPolicy | None = None,
        history: TimeoutHistory | None = None,
        hierarchy: TimeoutHierarchy | None = None,
        *,
        clock: Clock | None = None,
        sampler: EnvironmentSampler | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.policy = policy or TimeoutPolicy()
        self._clock = clock or SystemClock()
        self.history = history or TimeoutHistory(self.policy)
        self.hierarchy = hierarchy or TimeoutHierarchy(
            self.policy.parent_child_ratio,
            self.policy.max_depth,
            enabled=self.policy.hierarchical_enabled,
            clock=self._clock,
        )
        self._sampler = sampler
        self._timer = timer

    def strategy_timeout(self, operation_type: str, options: TimeoutOptions) -> float:
        """Timeout after the strategy adjustment, before any hierarchical cap."""
        base = options.timeout_ms
        if base is None:
            base = self.policy.base_timeout_for(operation_type)

        strategy = TimeoutStrategy(options.strategy)
        if strategy is TimeoutStrategy.ADAPTIVE:
            return self.history.adaptive_timeout(operation_type, base)
        if strategy is TimeoutStrategy.PROGRESSIVE:
            return self.policy.progressive_timeout(base, options.retry_count)
        if strategy is TimeoutStrategy.CONTEXTUAL:
            return self.policy.contextual_timeout(operation_type, base, options.conditions)
        return base

    def effective_timeout(self, operation_type: str, options: TimeoutOptions | None = None) -> float:
        """Timeout a call made now would get, without entering a context."""
        options = options or TimeoutOptions()
        timeout = self.strategy_timeout(operation_type, options)
        if self._hierarchical(options):
            timeout = self.hierarchy.cap(timeout, force=True)
        return timeout

    def _hierarchical(self, options: TimeoutOptions) -> bool:
        if options.hierarchical is None:
            return self.policy.hierarchical_enabled
        return options.hierarchical

    async def run(
        self,
        operation_type: str,
        fn: Operation,
        options: TimeoutOptions | None = None,
    ) -> TimeoutResult:
        """Run *fn* under the effective timeout for *operation_type*.

        Errors raised by *fn*, including the timeout itself, are returned in
        the :class:`TimeoutResult`.  Only an ``on_timeout`` callback that
        raises propagates.
        """
        options = options or TimeoutOptions()
        timeout_ms = self.strategy_timeout(operation_type, options)
        context = None
        if self._hierarchical(options):
            context = self.hierarchy.enter(operation_type, timeout_ms, force=True)
            if context is not None:
                timeout_ms = context.effective_timeout_ms
            else:
                timeout_ms = self.hierarchy.cap(timeout_ms, force=True)

        started = self._timer()
        try:
            task = asyncio.ensure_future(_call(fn))
            try:
                done, _ = await asyncio.wait({task}, timeout=max(0.0, timeout_ms) / 1000.0)
            except asyncio.CancelledError:
                task.cancel()
                raise
            duration_ms = (self._timer() - started) * 1000.0
            if not done:
                task.cancel()
                error = OperationTimeoutError(operation_type, timeout_ms, duration_ms)
                record = self._record(operation_type, options, False, duration_ms, ErrorKind.TIMEOUT)
                logger.warning(
                    "timeout.exceeded",
                    operation_type=operation_type,
                    timeout_ms=timeout_ms,
                    actual_duration_ms=duration_ms,
                )
                if options.on_timeout is not None:
                    info = {
                        "operation_type": operation_type,
                        "timeout_ms": timeout_ms,
                        "actual_duration_ms": duration_ms,
                    }
                    maybe = options.on_timeout(error, info)
                    if inspect.isawaitable(maybe):
                        await maybe
                return TimeoutResult(
                    success=False,
                    operation_type=operation_type,
                    timeout_ms=timeout_ms,
                    actual_duration_ms=duration_ms,
                    timed_out=True,
                    error=error,
                    record=record,
                )

            exc = task.exception()
            if exc is not None:
                record = self._record(operation_type, options, False, duration_ms, classify(exc))
                return TimeoutResult(
                    success=False,
                    operation_type=operation_type,
                    timeout_ms=timeout_ms,
                    actual_duration_ms=duration_ms,
                    error=exc,
                    record=record,
                )

            value = task.result()
            record = self._record(operation_type, options, True, duration_ms, None, value)
            return TimeoutResult(
                success=True,
                operation_type=operation_type,
                timeout_ms=timeout_ms,
                actual_duration_ms=duration_ms,
                result=value,
                record=record,
            )
        finally:
            if context is not None:
                self.hierarchy.exit(context)

    def _record(
        self,
        operation_type: str,
        options: TimeoutOptions,
        success: bool,
        duration_ms: float,
        error_kind: ErrorKind | None,
        result: Any = None,
    ) -> ExecutionRecord:
        record = ExecutionRecord(
            operation_id=options.operation_id or operation_type,
            timestamp_ms=now_ms(self._clock),
            success=success,
            duration_ms=duration_ms,
            error_kind=error_kind,
            environment=self._sampler.sample() if self._sampler is not None else None,
            attempt=options.retry_count,
            result=result,
        )
        self.history.record(operation_type, record)
        return record

    def with_timeout(
        self, operation_type: str, fn: Operation, options: TimeoutOptions | None = None
    ) -> Callable[[], Awaitable[TimeoutResult]]:
        """Bind *fn* into a zero-argument coroutine function that runs it under ``run``."""

        async def _bound() -> TimeoutResult:
            return await self.run(operation_type, fn, options)

        return _bound


__all__ = ["Operation", "TimeoutManager"]
