"""Resilience – drive :mod:`tenacity` with the RetryDecisionEngine.

For callers that already structure their retries around tenacity: the
returned :class:`tenacity.AsyncRetrying` asks the decision engine whether
to retry after each failure and waits for the delay the engine chose.
Every attempt becomes an :class:`ExecutionRecord` timed on its own and is
appended to the execution history when one is given.  Outcomes also feed the
circuit breaker and the retry-outcome log.

Example
-------
::

    retrying = EngineRetrying(engine.retry, engine.circuit_breaker, history=engine.history)
    page = await retrying.execute(load_page, OperationContext("checkout"))
"""
from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, TypeVar

import tenacity

from mp_reliability.execution.context import OperationContext
from mp_reliability.execution.records import ExecutionHistory, ExecutionRecord
from mp_reliability.kernel.errors import classify
from mp_reliability.kernel.time import Clock, SystemClock, now_ms
from mp_reliability.observability.environment import EnvironmentSampler
from mp_reliability.resilience.circuit_breaker import CircuitBreaker
from mp_reliability.resilience.retry.decision import RetryDecision, RetryDecisionEngine

T = TypeVar("T")


class EngineRetrying:
    """Factory of engine-governed :class:`tenacity.AsyncRetrying` instances.

    Parameters
    ----------
    engine:
        The retry authority consulted after every failed attempt.
    circuit_breaker:
        Receives one success/failure event per attempt.  Must be the same
        breaker the engine consults.
    history:
        Receives one :class:`ExecutionRecord` per attempt, keyed by operation id.
    sampler:
        Optional environment sampler; sampled once per attempt.
    clock:
        Source of record timestamps.
    sleep:
        Awaitable sleep used between attempts (tests pass a no-op).
    """

    def __init__(
        self,
        engine: RetryDecisionEngine,
        circuit_breaker: CircuitBreaker,
        *,
        history: ExecutionHistory | None = None,
        sampler: EnvironmentSampler | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._engine = engine
        self._breaker = circuit_breaker
        self._history = history
        self._sampler = sampler
        self._clock = clock or SystemClock()
        self._timer = timer
        self._sleep = sleep
        self.last_decision: RetryDecision | None = None

    def build(self, context: OperationContext, max_retries: int | None = None) -> tenacity.AsyncRetrying:
        operation_id = context.operation_id
        ceiling = self._engine_ceiling(max_retries)
        pending: dict[str, float] = {}

        def _before(state: tenacity.RetryCallState) -> None:
            pending["started"] = self._timer()

        def _retry(state: tenacity.RetryCallState) -> bool:
            outcome = state.outcome
            if outcome is None:
                return False
            attempt = state.attempt_number - 1
            error = outcome.exception()
            finished = self._timer()
            duration_ms = (finished - pending.pop("started", finished)) * 1000.0
            environment = self._sampler.sample() if self._sampler is not None else None
            if self._history is not None:
                self._history.append(
                    operation_id,
                    ExecutionRecord(
                        operation_id=operation_id,
                        timestamp_ms=now_ms(self._clock),
                        success=error is None,
                        duration_ms=duration_ms,
                        error_kind=classify(error) if error is not None else None,
                        environment=environment,
                        attempt=attempt,
                        result=outcome.result() if error is None else None,
                    ),
                )
            if attempt > 0 and "delay_ms" in pending:
                self._engine.record_outcome(operation_id, error is None, pending.pop("delay_ms"), attempt)
            if error is None:
                self._breaker.record_success(operation_id)
                return False
            self._breaker.record_failure(operation_id, error)
            decision = self._engine.decide(
                error=error,
                attempt=attempt,
                context=context,
                max_retries=max_retries,
                execution_time_ms=duration_ms,
                environment=environment,
            )
            self.last_decision = decision
            if decision.should_retry:
                pending["delay_ms"] = decision.delay_ms
            return decision.should_retry

        def _wait(state: tenacity.RetryCallState) -> float:
            return pending.get("delay_ms", 0.0) / 1000.0

        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(ceiling + 1),
            before=_before,
            wait=_wait,
            retry=_retry,
            reraise=True,
            **kwargs,
        )

    def _engine_ceiling(self, max_retries: int | None) -> int:
        ceiling = self._engine.backoff.config.max_retries
        if max_retries is not None:
            ceiling = min(ceiling, max_retries)
        return ceiling

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        context: OperationContext,
        max_retries: int | None = None,
    ) -> T:
        """Run *func* under engine-governed retries.

        Raises :class:`~mp_reliability.resilience.circuit_breaker.CircuitOpenError`
        without calling *func* when the circuit refuses the first attempt;
        otherwise re-raises the last error once the engine stops retrying.
        """
        self._breaker.guard(context.operation_id)
        async for attempt in self.build(context, max_retries):
            with attempt:
                result = await func()
        return result  # type: ignore[return-value]


__all__ = ["EngineRetrying"]
