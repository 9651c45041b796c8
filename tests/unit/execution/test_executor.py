"""Unit tests for ConcurrentExecutor and BatchResult."""

from __future__ import annotations

import asyncio
from typing import Any

from structlog.testing import capture_logs

from mp_reliability.execution.context import OperationContext
from mp_reliability.execution.executor import (
    BatchResult,
    ConcurrentExecutor,
    ReliabilityTask,
    TaskOutcome,
    TaskStatus,
)
from mp_reliability.execution.records import ExecutionHistory
from mp_reliability.kernel.errors import ErrorKind, NetworkError, OperationTimeoutError
from mp_reliability.kernel.time import FrozenClock
from mp_reliability.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerPolicy, CircuitPhase
from mp_reliability.resilience.retry import (
    BackoffConfig,
    ExponentialBackoff,
    RetryDecisionEngine,
    RetryReason,
)
from mp_reliability.resilience.timeouts import TimeoutManager, TimeoutOptions, TimeoutStrategy
from mp_reliability.testing import FakeClock, ScriptedOperation


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class Harness:
    def __init__(self, *, failure_threshold: int = 5, max_retries: int = 3, max_concurrency: int = 4) -> None:
        self.clock: FrozenClock = FakeClock()
        self.history = ExecutionHistory()
        self.breaker = CircuitBreaker(CircuitBreakerPolicy(failure_threshold=failure_threshold), self.clock)
        self.retry = RetryDecisionEngine(
            ExponentialBackoff(BackoffConfig(jitter_enabled=False, max_retries=max_retries)),
            self.breaker,
            clock=self.clock,
        )
        self.sleep = RecordingSleep()
        self.executor = ConcurrentExecutor(
            TimeoutManager(clock=self.clock),
            self.retry,
            self.breaker,
            self.history,
            max_concurrency=max_concurrency,
            clock=self.clock,
            sleep=self.sleep,
        )

    def run(self, tasks: list[ReliabilityTask], **kwargs: Any) -> BatchResult:
        return asyncio.run(self.executor.execute_all(tasks, **kwargs))


class ConcurrencyProbe:
    """Async operation that tracks how many copies of itself run at once."""

    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.active = 0
        self.peak = 0

    async def __call__(self) -> str:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return "done"


# ---------------------------------------------------------------------------
# Single task
# ---------------------------------------------------------------------------


class TestExecuteTask:
    def test_success_first_attempt(self) -> None:
        harness = Harness()
        batch = harness.run([ReliabilityTask("login", ScriptedOperation(["ok"]))])
        outcome = batch.get("login")
        assert outcome is not None
        assert outcome.status is TaskStatus.SUCCEEDED
        assert outcome.result == "ok"
        assert outcome.attempts == 1
        assert outcome.decisions == ()
        assert harness.sleep.calls == []

    def test_retries_transient_failure(self) -> None:
        harness = Harness()
        op = ScriptedOperation([NetworkError("reset"), "ok"])
        outcome = harness.run([ReliabilityTask("login", op)]).outcomes[0]
        assert outcome.success
        assert outcome.attempts == 2
        assert op.calls == 2
        assert len(outcome.records) == 2
        assert outcome.decisions[0].should_retry
        # default history of 0.5 halves the first delay
        assert harness.sleep.calls == [0.5]
        assert [o.success for o in harness.retry.outcomes("login")] == [True]

    def test_non_retryable_error_stops(self) -> None:
        harness = Harness()
        op = ScriptedOperation([ValueError("bad selector")])
        outcome = harness.run([ReliabilityTask("login", op)]).outcomes[0]
        assert outcome.status is TaskStatus.FAILED
        assert outcome.attempts == 1
        assert outcome.terminal_reason is RetryReason.NON_RETRYABLE_ERROR
        assert outcome.error_kind is ErrorKind.UNCLASSIFIED
        assert op.calls == 1

    def test_max_retries_reached(self) -> None:
        harness = Harness()
        op = ScriptedOperation([NetworkError("reset")])
        outcome = harness.run([ReliabilityTask("login", op, max_retries=2)]).outcomes[0]
        assert outcome.status is TaskStatus.FAILED
        assert outcome.attempts == 3
        assert outcome.terminal_reason is RetryReason.MAX_RETRIES_REACHED
        assert harness.sleep.calls == [0.5, 2.0]

    def test_timeout_is_classified(self) -> None:
        harness = Harness()
        task = ReliabilityTask(
            "slow",
            ScriptedOperation(["late"], delay=1.0),
            timeout=TimeoutOptions(timeout_ms=20.0, strategy=TimeoutStrategy.FIXED),
            max_retries=0,
        )
        outcome = harness.run([task]).outcomes[0]
        assert outcome.status is TaskStatus.FAILED
        assert isinstance(outcome.error, OperationTimeoutError)
        assert outcome.error_kind is ErrorKind.TIMEOUT
        assert outcome.records[0].timed_out

    def test_records_feed_history_and_circuit(self) -> None:
        harness = Harness()
        context = OperationContext("checkout", operation_type="api")
        op = ScriptedOperation([NetworkError("reset"), "ok"])
        harness.run([ReliabilityTask("t1", op, context=context)])
        assert [r.success for r in harness.history.get("checkout")] == [False, True]
        assert [r.attempt for r in harness.history.get("checkout")] == [0, 1]
        state = harness.breaker.get_state("checkout")
        assert (state.total_failures, state.total_successes) == (1, 1)
        assert state.consecutive_failures == 0


# ---------------------------------------------------------------------------
# Circuit breaker interplay
# ---------------------------------------------------------------------------


class TestCircuitOpen:
    def test_failure_opens_circuit_and_stops_retry(self) -> None:
        harness = Harness(failure_threshold=1)
        op = ScriptedOperation([NetworkError("reset")])
        outcome = harness.run([ReliabilityTask("login", op)]).outcomes[0]
        assert outcome.status is TaskStatus.CIRCUIT_OPEN
        assert outcome.attempts == 1
        assert outcome.terminal_reason is RetryReason.CIRCUIT_BREAKER_OPEN
        assert harness.breaker.get_state("login").phase is CircuitPhase.OPEN

    def test_open_circuit_refuses_without_calling(self) -> None:
        harness = Harness(failure_threshold=1)
        harness.breaker.record_failure("login")
        op = ScriptedOperation(["ok"])
        batch = harness.run([ReliabilityTask("login", op)])
        assert batch.circuit_open == 1
        assert batch.outcomes[0].attempts == 0
        assert op.calls == 0

    def test_recovers_after_deadline(self) -> None:
        harness = Harness(failure_threshold=1)
        harness.breaker.record_failure("login")
        harness.clock.advance(milliseconds=300_000)
        batch = harness.run([ReliabilityTask("login", ScriptedOperation(["ok"]))])
        assert batch.successful == 1
        assert harness.breaker.get_state("login").phase is CircuitPhase.HALF_OPEN


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


class TestExecuteAll:
    def test_concurrency_is_bounded(self) -> None:
        harness = Harness()
        probe = ConcurrencyProbe()
        tasks = [ReliabilityTask(f"t{i}", probe) for i in range(8)]
        batch = harness.run(tasks, max_concurrency=2)
        assert batch.successful == 8
        assert probe.peak == 2

    def test_same_operation_id_is_serialised(self) -> None:
        harness = Harness()
        probe = ConcurrencyProbe()
        shared = OperationContext("shared")
        tasks = [ReliabilityTask(f"t{i}", probe, context=shared) for i in range(4)]
        batch = harness.run(tasks, max_concurrency=4)
        assert batch.successful == 4
        assert probe.peak == 1
        assert len(harness.history.get("shared")) == 4

    def test_outcomes_keep_task_order(self) -> None:
        harness = Harness()
        tasks = [ReliabilityTask(f"t{i}", ScriptedOperation([i])) for i in range(5)]
        batch = harness.run(tasks)
        assert [o.task_id for o in batch.outcomes] == ["t0", "t1", "t2", "t3", "t4"]
        assert [o.result for o in batch.outcomes] == [0, 1, 2, 3, 4]

    def test_batch_timeout_skips_pending_tasks(self) -> None:
        harness = Harness(max_concurrency=1)

        async def consume_budget() -> str:
            harness.clock.advance(milliseconds=1000)
            return "ok"

        tasks = [
            ReliabilityTask("first", consume_budget),
            ReliabilityTask("second", ScriptedOperation(["ok"])),
        ]
        with capture_logs() as logs:
            batch = harness.run(tasks, batch_timeout_ms=500.0)
        assert batch.get("first").status is TaskStatus.SUCCEEDED  # type: ignore[union-attr]
        assert batch.get("second").status is TaskStatus.SKIPPED  # type: ignore[union-attr]
        assert batch.skipped == 1
        assert batch.execution_times_ms == [batch.outcomes[0].duration_ms]
        assert any(e["event"] == "executor.task_skipped" for e in logs)

    def test_conflicts_lists_unclassified_failures(self) -> None:
        harness = Harness()
        tasks = [
            ReliabilityTask("ok", ScriptedOperation(["ok"])),
            ReliabilityTask("broken", ScriptedOperation([RuntimeError("stale element")])),
        ]
        batch = harness.run(tasks)
        assert (batch.successful, batch.failed) == (1, 1)
        assert [o.task_id for o in batch.conflicts] == ["broken"]

    def test_logs_batch_summary(self) -> None:
        harness = Harness()
        with capture_logs() as logs:
            harness.run([ReliabilityTask("t", ScriptedOperation(["ok"]))])
        summary = [e for e in logs if e["event"] == "executor.batch_completed"]
        assert summary and summary[0]["successful"] == 1

    def test_empty_batch(self) -> None:
        batch = Harness().run([])
        assert batch.outcomes == ()
        assert batch.average_execution_time_ms == 0.0


class TestBatchResult:
    def test_counts_and_average(self) -> None:
        batch = BatchResult(
            (
                TaskOutcome("a", TaskStatus.SUCCEEDED, attempts=1, duration_ms=100.0),
                TaskOutcome("b", TaskStatus.FAILED, attempts=2, duration_ms=300.0, error=NetworkError("x")),
                TaskOutcome("c", TaskStatus.SKIPPED),
            )
        )
        assert (batch.successful, batch.failed, batch.skipped, batch.circuit_open) == (1, 1, 1, 0)
        assert batch.average_execution_time_ms == 200.0
        assert batch.conflicts == []
        assert batch.get("missing") is None
