"""Resilience – exponential backoff schedule.

``schedule(attempt)`` is a pure function of the attempt number (and the
jitter RNG): ``min(initial * multiplier ** attempt, max_delay)``, perturbed
by at most ±10 % (and re-clamped to the cap) when jitter is enabled.
Once ``attempt >= max_retries`` it reports ``should_retry=False``
regardless of the error involved.
"""
from __future__ import annotations

import abc
import dataclasses
import random

from mp_reliability.resilience.retry.jitter import JitterStrategy, NoJitter, SymmetricJitter


@dataclasses.dataclass(frozen=True)
class BackoffConfig:
    """Delays are milliseconds; ``attempt`` is zero-based."""

    initial_delay_ms: float = 1000.0
    max_delay_ms: float = 30_000.0
    multiplier: float = 2.0
    jitter_enabled: bool = True
    max_retries: int = 3
    jitter_ratio: float = 0.1


@dataclasses.dataclass(frozen=True)
class BackoffStep:
    """One entry of a retry schedule."""

    should_retry: bool
    delay_ms: float
    attempt: int
    max_retries_reached: bool = False


class BackoffStrategy(abc.ABC):
    """Compute wait duration (milliseconds) after the *attempt*-th failure."""

    @abc.abstractmethod
    def compute(self, attempt: int) -> float: ...


class ExponentialBackoff(BackoffStrategy):
    """Capped exponential backoff with optional symmetric jitter."""

    def __init__(self, config: BackoffConfig | None = None, rng: random.Random | None = None) -> None:
        self.config = config or BackoffConfig()
        self._jitter: JitterStrategy = (
            SymmetricJitter(self.config.jitter_ratio, rng) if self.config.jitter_enabled else NoJitter()
        )

    @property
    def max_delay_ms(self) -> float:
        return self.config.max_delay_ms

    def compute(self, attempt: int) -> float:
        """Un-jittered delay; non-decreasing in *attempt* and never above the cap."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        cfg = self.config
        try:
            return min(cfg.initial_delay_ms * cfg.multiplier ** attempt, cfg.max_delay_ms)
        except OverflowError:
            return cfg.max_delay_ms

    def schedule(self, attempt: int) -> BackoffStep:
        if attempt >= self.config.max_retries:
            return BackoffStep(should_retry=False, delay_ms=0.0, attempt=attempt, max_retries_reached=True)
        delay = min(self._jitter.apply(self.compute(attempt)), self.config.max_delay_ms)
        return BackoffStep(should_retry=True, delay_ms=delay, attempt=attempt + 1)

    def total_estimated_time_ms(self, max_attempts: int | None = None) -> float:
        """Sum of un-jittered delays for the first *max_attempts* retries."""
        attempts = self.config.max_retries if max_attempts is None else max_attempts
        return sum(self.compute(i) for i in range(attempts))


__all__ = ["BackoffConfig", "BackoffStep", "BackoffStrategy", "ExponentialBackoff"]
