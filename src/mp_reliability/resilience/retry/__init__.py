"""Resilience – backoff schedule, retry decisions and the tenacity adapter."""
from mp_reliability.resilience.retry.backoff import (
    BackoffConfig,
    BackoffStep,
    BackoffStrategy,
    ExponentialBackoff,
)
from mp_reliability.resilience.retry.decision import (
    TERMINAL_REASONS,
    RetryDecision,
    RetryDecisionEngine,
    RetryOutcome,
    RetryPolicy,
    RetryReason,
)
from mp_reliability.resilience.retry.jitter import JitterStrategy, NoJitter, SymmetricJitter
from mp_reliability.resilience.retry.tenacity_adapter import EngineRetrying

__all__ = [
    "TERMINAL_REASONS",
    "BackoffConfig",
    "BackoffStep",
    "BackoffStrategy",
    "EngineRetrying",
    "ExponentialBackoff",
    "JitterStrategy",
    "NoJitter",
    "RetryDecision",
    "RetryDecisionEngine",
    "RetryOutcome",
    "RetryPolicy",
    "RetryReason",
    "SymmetricJitter",
]
