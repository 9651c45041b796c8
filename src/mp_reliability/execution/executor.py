"""Execution – ConcurrentExecutor.

Runs a batch of :class:`ReliabilityTask` items on the current event loop:

* at most ``max_concurrency`` tasks hold a slot at once; waiters suspend
  on a semaphore;
* every attempt goes through the :class:`TimeoutManager`;
* after a failed attempt the :class:`RetryDecisionEngine` decides whether
  and when to try again;
* each attempt's :class:`ExecutionRecord` is fed back into the execution
  history, the circuit breaker and the retry-outcome log.

Tasks sharing an id are serialised, so history and circuit updates for
one operation are applied in the order its attempts complete.  A batch
timeout stops new starts; tasks already running drain normally.
"""
from __future__ import annotations

import asyncio
import dataclasses
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from mp_reliability.execution.context import OperationContext
from mp_reliability.execution.records import ExecutionHistory, ExecutionRecord
from mp_reliability.kernel.errors import ErrorKind, classify
from mp_reliability.kernel.time import Clock, SystemClock
from mp_reliability.observability.logging import get_logger, operation_log_context
from mp_reliability.resilience.bulkhead import ConcurrencyLimiter
from mp_reliability.resilience.circuit_breaker import CircuitBreaker
from mp_reliability.resilience.retry import RetryDecision, RetryDecisionEngine, RetryReason
from mp_reliability.resilience.timeouts import Deadline, Operation, TimeoutManager, TimeoutOptions

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class ReliabilityTask:
    """One unit of work: ``fn`` is a zero-argument callable, sync or async."""

    id: str
    fn: Operation
    context: OperationContext | None = None
    timeout: TimeoutOptions | None = None
    max_retries: int | None = None

    @property
    def operation_context(self) -> OperationContext:
        return self.context or OperationContext(operation_id=self.id)


class TaskStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CIRCUIT_OPEN = "circuit_open"
    SKIPPED = "skipped"


@dataclasses.dataclass(frozen=True)
class TaskOutcome:
    task_id: str
    status: TaskStatus
    attempts: int = 0
    duration_ms: float = 0.0
    result: Any = None
    error: BaseException | None = None
    terminal_reason: RetryReason | None = None
    records: tuple[ExecutionRecord, ...] = ()
    decisions: tuple[RetryDecision, ...] = ()

    @property
    def success(self) -> bool:
        return self.status is TaskStatus.SUCCEEDED

    @property
    def error_kind(self) -> ErrorKind | None:
        return classify(self.error) if self.error is not None else None


@dataclasses.dataclass(frozen=True)
class BatchResult:
    outcomes: tuple[TaskOutcome, ...]
    total_duration_ms: float = 0.0

    def _count(self, status: TaskStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def successful(self) -> int:
        return self._count(TaskStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(TaskStatus.FAILED)

    @property
    def circuit_open(self) -> int:
        return self._count(TaskStatus.CIRCUIT_OPEN)

    @property
    def skipped(self) -> int:
        return self._count(TaskStatus.SKIPPED)

    @property
    def conflicts(self) -> list[TaskOutcome]:
        """Failed tasks whose error could not be classified."""
        return [o for o in self.outcomes if o.error_kind is ErrorKind.UNCLASSIFIED]

    @property
    def execution_times_ms(self) -> list[float]:
        return [o.duration_ms for o in self.outcomes if o.attempts > 0]

    @property
    def average_execution_time_ms(self) -> float:
        times = self.execution_times_ms
        return sum(times) / len(times) if times else 0.0

    def get(self, task_id: str) -> TaskOutcome | None:
        for outcome in self.outcomes:
            if outcome.task_id == task_id:
                return outcome
        return None


class ConcurrentExecutor:
    """Bounded-concurrency batch runner wired to the timeout and retry layers."""

    def __init__(
        self,
        timeouts: TimeoutManager,
        retry: RetryDecisionEngine,
        circuit_breaker: CircuitBreaker,
        history: ExecutionHistory,
        *,
        max_concurrency: int = 4,
        clock: Clock | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._timeouts = timeouts
        self._retry = retry
        self._breaker = circuit_breaker
        self._history = history
        self.max_concurrency = max_concurrency
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._timer = timer

    def record(self, record: ExecutionRecord, error: BaseException | None = None) -> None:
        """Feed one attempt into the history and the circuit breaker."""
        self._history.append(record.operation_id, record)
        if record.success:
            self._breaker.record_success(record.operation_id)
        else:
            self._breaker.record_failure(record.operation_id, error)

    async def execute_all(
        self,
        tasks: Sequence[ReliabilityTask],
        max_concurrency: int | None = None,
        batch_timeout_ms: float | None = None,
    ) -> BatchResult:
        limiter = ConcurrencyLimiter(max_concurrency or self.max_concurrency)
        deadline = Deadline.after(batch_timeout_ms, self._clock) if batch_timeout_ms is not None else None
        locks: dict[str, asyncio.Lock] = {}
        started = self._timer()

        async def _one(task: ReliabilityTask) -> TaskOutcome:
            lock = locks.setdefault(task.operation_context.operation_id, asyncio.Lock())
            async with lock, limiter.slot(task.operation_context.operation_id):
                if deadline is not None and deadline.is_expired:
                    logger.info("executor.task_skipped", task_id=task.id, reason="batch_timeout")
                    return TaskOutcome(task.id, TaskStatus.SKIPPED)
                return await self.execute(task)

        outcomes = await asyncio.gather(*(_one(task) for task in tasks))
        result = BatchResult(tuple(outcomes), (self._timer() - started) * 1000.0)
        logger.info(
            "executor.batch_completed",
            total=len(tasks),
            successful=result.successful,
            failed=result.failed,
            circuit_open=result.circuit_open,
            skipped=result.skipped,
            peak_concurrency=limiter.peak,
        )
        return result

    async def execute(self, task: ReliabilityTask) -> TaskOutcome:
        """Run one task to completion, retrying as the decision engine allows."""
        context = task.operation_context
        operation_id = context.operation_id
        with operation_log_context(operation_id, task_id=task.id):
            if not self._breaker.should_allow_execution(operation_id):
                logger.info("executor.circuit_open", task_id=task.id)
                return TaskOutcome(
                    task.id, TaskStatus.CIRCUIT_OPEN, terminal_reason=RetryReason.CIRCUIT_BREAKER_OPEN
                )

            base_options = task.timeout or TimeoutOptions()
            records: list[ExecutionRecord] = []
            decisions: list[RetryDecision] = []
            last_delay: float | None = None
            attempt = 0
            started = self._timer()

            while True:
                options = dataclasses.replace(base_options, retry_count=attempt, operation_id=operation_id)
                result = await self._timeouts.run(context.operation_type, task.fn, options)
                record = result.record
                if record is not None:
                    records.append(record)
                    self.record(record, result.error)
                if last_delay is not None:
                    self._retry.record_outcome(operation_id, result.success, last_delay, attempt)

                if result.success:
                    return TaskOutcome(
                        task.id,
                        TaskStatus.SUCCEEDED,
                        attempts=attempt + 1,
                        duration_ms=(self._timer() - started) * 1000.0,
                        result=result.result,
                        records=tuple(records),
                        decisions=tuple(decisions),
                    )

                decision = self._retry.decide(
                    error=result.error,
                    attempt=attempt,
                    context=context,
                    max_retries=task.max_retries,
                    execution_time_ms=result.actual_duration_ms,
                    environment=record.environment if record is not None else None,
                )
                decisions.append(decision)
                if not decision.should_retry:
                    status = TaskStatus.CIRCUIT_OPEN if decision.circuit_breaker_open else TaskStatus.FAILED
                    logger.info(
                        "executor.task_failed",
                        task_id=task.id,
                        attempts=attempt + 1,
                        reason=decision.terminal_reason.value if decision.terminal_reason else None,
                    )
                    return TaskOutcome(
                        task.id,
                        status,
                        attempts=attempt + 1,
                        duration_ms=(self._timer() - started) * 1000.0,
                        error=result.error,
                        terminal_reason=decision.terminal_reason,
                        records=tuple(records),
                        decisions=tuple(decisions),
                    )

                await self._sleep(decision.delay_ms / 1000.0)
                last_delay = decision.delay_ms
                attempt += 1


__all__ = ["BatchResult", "ConcurrentExecutor", "ReliabilityTask", "TaskOutcome", "TaskStatus"]
