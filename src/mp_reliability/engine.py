"""ReliabilityEngine – composition root of the reliability components.

One engine instance owns every piece of mutable state (execution history,
circuit states, retry-outcome log, timeout history and trend points), so
independent test runs in one process stay isolated by using separate
engines.

Example
-------
::

    engine = ReliabilityEngine.from_settings(
        SettingsFactory.create(ReliabilitySettings, [EnvSettingsLoader()])
    )
    batch = await engine.execute_all(tasks, max_concurrency=4)
    report = engine.analyze("checkout")
"""
from __future__ import annotations

import random
from typing import Any, Awaitable, Callable, Sequence

from mp_reliability.analysis.consistency import ConsistencyChecker, ConsistencyReport
from mp_reliability.analysis.flakiness import (
    FlakinessAnalyzer,
    FlakinessReport,
    FlakinessTrend,
    FlakinessTrendTracker,
)
from mp_reliability.config.settings import ReliabilitySettings
from mp_reliability.execution.context import OperationContext
from mp_reliability.execution.executor import BatchResult, ConcurrentExecutor, ReliabilityTask
from mp_reliability.execution.records import ExecutionHistory, ExecutionRecord
from mp_reliability.kernel.time import Clock, SystemClock
from mp_reliability.observability.environment import (
    EnvironmentSampler,
    EnvironmentSnapshot,
    PsutilEnvironmentSampler,
)
from mp_reliability.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerPolicy, CircuitState
from mp_reliability.resilience.retry import (
    BackoffConfig,
    EngineRetrying,
    ExponentialBackoff,
    RetryDecision,
    RetryDecisionEngine,
    RetryPolicy,
)
from mp_reliability.resilience.timeouts import (
    Operation,
    TimeoutHistory,
    TimeoutManager,
    TimeoutOptions,
    TimeoutPolicy,
    TimeoutResult,
)


class ReliabilityEngine:
    """Injectable facade over the reliability components.

    Host metrics come from :class:`PsutilEnvironmentSampler` unless a
    *sampler* is injected.

    Public entry points: :meth:`execute_all`, :meth:`analyze`,
    :meth:`check`, :meth:`get_state` and :meth:`run`.
    """

    def __init__(
        self,
        settings: ReliabilitySettings | None = None,
        *,
        clock: Clock | None = None,
        sampler: EnvironmentSampler | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        s = settings or ReliabilitySettings()
        self.settings = s
        self.clock = clock or SystemClock()
        self.sampler: EnvironmentSampler = sampler or PsutilEnvironmentSampler()

        self.history = ExecutionHistory(s.history_window)
        self.analyzer = FlakinessAnalyzer(s.min_executions, s.flakiness_threshold, s.expected_success_rate)
        self.trends = FlakinessTrendTracker(self.analyzer, self.clock)
        self.consistency = ConsistencyChecker(s.required_runs, s.allowed_variance)
        self.circuit_breaker = CircuitBreaker(
            CircuitBreakerPolicy(
                failure_threshold=s.failure_threshold,
                recovery_timeout_ms=s.recovery_timeout_ms,
                half_open_attempts=s.half_open_attempts,
                monitoring_window_ms=s.monitoring_window_ms,
            ),
            self.clock,
        )
        self.backoff = ExponentialBackoff(
            BackoffConfig(
                initial_delay_ms=s.initial_delay_ms,
                max_delay_ms=s.max_delay_ms,
                multiplier=s.backoff_multiplier,
                jitter_enabled=s.jitter_enabled,
                max_retries=s.max_retries,
            ),
            rng,
        )
        self.retry = RetryDecisionEngine(
            self.backoff,
            self.circuit_breaker,
            RetryPolicy(
                learning_enabled=s.learning_enabled,
                max_execution_time_ms=s.max_execution_time_ms,
                outcome_log_size=s.history_window,
            ),
            self.clock,
        )
        timeout_policy = TimeoutPolicy(
            default_timeout_ms=s.default_timeout_ms,
            adaptive_success_threshold=s.adaptive_success_threshold,
            adaptive_adjustment_factor=s.adaptive_adjustment_factor,
            adaptive_min_multiplier=s.adaptive_min_multiplier,
            adaptive_max_multiplier=s.adaptive_max_multiplier,
            progressive_increment_factor=s.progressive_increment_factor,
            hierarchical_enabled=s.hierarchical_enabled,
            parent_child_ratio=s.parent_child_ratio,
            max_depth=s.max_timeout_depth,
        )
        self.timeouts = TimeoutManager(
            timeout_policy,
            TimeoutHistory(timeout_policy, ExecutionHistory(s.history_window)),
            clock=self.clock,
            sampler=self.sampler,
        )
        executor_kwargs: dict[str, Any] = {}
        if sleep is not None:
            executor_kwargs["sleep"] = sleep
        self.executor = ConcurrentExecutor(
            self.timeouts,
            self.retry,
            self.circuit_breaker,
            self.history,
            max_concurrency=s.max_concurrency,
            clock=self.clock,
            **executor_kwargs,
        )
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: ReliabilitySettings,
        *,
        clock: Clock | None = None,
        sampler: EnvironmentSampler | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> "ReliabilityEngine":
        return cls(settings, clock=clock, sampler=sampler, rng=rng, sleep=sleep)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def execute_all(
        self,
        tasks: Sequence[ReliabilityTask],
        max_concurrency: int | None = None,
        batch_timeout_ms: float | None = None,
    ) -> BatchResult:
        return await self.executor.execute_all(tasks, max_concurrency, batch_timeout_ms)

    async def run(
        self, operation_type: str, fn: Operation, options: TimeoutOptions | None = None
    ) -> TimeoutResult:
        return await self.timeouts.run(operation_type, fn, options)

    def analyze(self, operation_id: str) -> FlakinessReport:
        return self.analyzer.analyze(self.history.get(operation_id), operation_id)

    def track(self, operation_id: str) -> FlakinessTrend:
        return self.trends.track(operation_id, self.history.get(operation_id))

    def check(self, runs: Sequence[ExecutionRecord] | str) -> ConsistencyReport:
        """Consistency of *runs*, or of the recorded history when given an operation id."""
        if isinstance(runs, str):
            runs = self.history.get(runs)
        return self.consistency.check(runs)

    def get_state(self, operation_id: str) -> CircuitState:
        return self.circuit_breaker.get_state(operation_id)

    def decide(
        self,
        *,
        error: BaseException | None,
        attempt: int,
        context: OperationContext,
        max_retries: int | None = None,
        execution_time_ms: float = 0.0,
        environment: EnvironmentSnapshot | None = None,
    ) -> RetryDecision:
        if environment is None:
            environment = self.sampler.sample()
        return self.retry.decide(
            error=error,
            attempt=attempt,
            context=context,
            max_retries=max_retries,
            execution_time_ms=execution_time_ms,
            environment=environment,
        )

    def record(self, record: ExecutionRecord, error: BaseException | None = None) -> None:
        """Feed an externally produced attempt into history and circuit state."""
        self.executor.record(record, error)

    def retrying(self) -> EngineRetrying:
        """A tenacity driver governed by this engine's decision engine."""
        return EngineRetrying(
            self.retry,
            self.circuit_breaker,
            history=self.history,
            sampler=self.sampler,
            clock=self.clock,
            sleep=self._sleep,
        )


__all__ = ["ReliabilityEngine"]
