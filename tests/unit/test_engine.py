"""Unit tests for ReliabilityEngine, the composition root."""

from __future__ import annotations

import asyncio

import pytest

from mp_reliability.config.settings import ReliabilitySettings
from mp_reliability.engine import ReliabilityEngine
from mp_reliability.execution.context import OperationContext
from mp_reliability.execution.executor import ReliabilityTask, TaskStatus
from mp_reliability.kernel.errors import NetworkError
from mp_reliability.observability.environment import PsutilEnvironmentSampler
from mp_reliability.resilience.circuit_breaker import CircuitPhase
from mp_reliability.resilience.retry import RetryReason
from mp_reliability.resilience.timeouts import TimeoutOptions, TimeoutStrategy
from mp_reliability.testing import FakeClock, FakeEnvironmentSampler, HistoryBuilder, ScriptedOperation


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_engine(**overrides: object) -> tuple[ReliabilityEngine, RecordingSleep]:
    settings = ReliabilitySettings(jitter_enabled=False, **overrides)  # type: ignore[arg-type]
    sleep = RecordingSleep()
    engine = ReliabilityEngine(
        settings, clock=FakeClock(), sampler=FakeEnvironmentSampler([(20.0, 30.0)]), sleep=sleep
    )
    return engine, sleep


CHECKOUT = OperationContext("checkout", operation_type="api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestWiring:
    def test_settings_flow_into_components(self) -> None:
        engine, _ = make_engine(failure_threshold=2, max_retries=7, parent_child_ratio=0.5, max_concurrency=3)
        assert engine.circuit_breaker.policy.failure_threshold == 2
        assert engine.backoff.config.max_retries == 7
        assert engine.timeouts.policy.parent_child_ratio == 0.5
        assert engine.executor.max_concurrency == 3

    def test_from_settings(self) -> None:
        engine = ReliabilityEngine.from_settings(ReliabilitySettings(min_executions=3), clock=FakeClock())
        assert engine.analyzer.min_executions == 3

    def test_from_settings_forwards_sleep(self) -> None:
        sleep = RecordingSleep()
        engine = ReliabilityEngine.from_settings(
            ReliabilitySettings(jitter_enabled=False),
            clock=FakeClock(),
            sampler=FakeEnvironmentSampler(),
            sleep=sleep,
        )
        op = ScriptedOperation([NetworkError("reset"), "ok"])
        asyncio.run(engine.execute_all([ReliabilityTask("t", op, context=CHECKOUT)]))
        assert sleep.calls == [0.5]

    def test_default_sampler_reads_host_metrics(self) -> None:
        engine = ReliabilityEngine(clock=FakeClock())
        assert isinstance(engine.sampler, PsutilEnvironmentSampler)
        options = TimeoutOptions(timeout_ms=1000.0, strategy=TimeoutStrategy.FIXED)
        result = asyncio.run(engine.run("api", ScriptedOperation(["ok"]), options))
        assert result.record is not None
        environment = result.record.environment
        assert environment is not None
        assert 0.0 <= environment.cpu_pct <= 100.0
        assert 0.0 <= environment.mem_pct <= 100.0

    def test_engines_do_not_share_state(self) -> None:
        first, _ = make_engine()
        second, _ = make_engine()
        for record in HistoryBuilder("login").failures(5).build():
            first.record(record)
        assert first.get_state("login").phase is CircuitPhase.OPEN
        assert second.get_state("login").phase is CircuitPhase.CLOSED
        assert second.analyze("login").insufficient_data


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestExecuteAndAnalyze:
    def test_flaky_operation_is_reported(self) -> None:
        engine, _ = make_engine(max_retries=0)
        op = ScriptedOperation(["ok", "ok", "ok", NetworkError("reset"), NetworkError("reset")])
        tasks = [ReliabilityTask(f"run-{i}", op, context=CHECKOUT) for i in range(5)]
        batch = asyncio.run(engine.execute_all(tasks))
        assert (batch.successful, batch.failed) == (3, 2)

        report = engine.analyze("checkout")
        assert report.is_flaky
        assert report.flakiness_score == pytest.approx(0.4)
        assert report.execution_count == 5

        consistency = engine.check("checkout")
        assert not consistency.outcomes_consistent
        assert not consistency.is_consistent

        state = engine.get_state("checkout")
        assert state.total_failures == 2
        assert state.phase is CircuitPhase.CLOSED

    def test_retry_uses_injected_sleep(self) -> None:
        engine, sleep = make_engine()
        op = ScriptedOperation([NetworkError("reset"), "ok"])
        batch = asyncio.run(engine.execute_all([ReliabilityTask("t", op, context=CHECKOUT)]))
        assert batch.outcomes[0].status is TaskStatus.SUCCEEDED
        assert sleep.calls == [0.5]

    def test_run_records_timeout_history(self) -> None:
        engine, _ = make_engine()
        options = TimeoutOptions(timeout_ms=1000.0, strategy=TimeoutStrategy.FIXED)
        result = asyncio.run(engine.run("api", ScriptedOperation(["ok"]), options))
        assert result.success
        assert len(engine.timeouts.history.get("api")) == 1

    def test_track_trend(self) -> None:
        engine, _ = make_engine()
        trend = engine.track("checkout")
        assert trend.direction.value == "insufficient_data"
        assert len(engine.trends.reports("checkout")) == 1

    def test_check_explicit_runs(self) -> None:
        engine, _ = make_engine()
        runs = HistoryBuilder().durations([100.0, 101.0, 99.0, 100.0, 100.0]).build()
        assert engine.check(runs).is_consistent


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


class TestDecide:
    def test_samples_environment_when_missing(self) -> None:
        engine, _ = make_engine()
        decision = engine.decide(error=NetworkError("reset"), attempt=0, context=CHECKOUT)
        assert decision.should_retry
        assert RetryReason.ENVIRONMENT_CONDITIONS in decision.reason_codes
        assert engine.sampler is not None and engine.sampler.calls == 1  # type: ignore[attr-defined]

    def test_refuses_unclassified(self) -> None:
        engine, _ = make_engine()
        decision = engine.decide(error=KeyError("x"), attempt=0, context=CHECKOUT)
        assert decision.terminal_reason is RetryReason.NON_RETRYABLE_ERROR

    def test_retrying_driver(self) -> None:
        engine, sleep = make_engine()
        op = ScriptedOperation([NetworkError("reset"), "ok"])
        assert asyncio.run(engine.retrying().execute(op, CHECKOUT)) == "ok"
        assert len(sleep.calls) == 1
        records = engine.history.get("checkout")
        assert [r.success for r in records] == [False, True]
        assert engine.analyze("checkout").execution_count == 2
