"""Resilience – jitter strategies."""
from __future__ import annotations

import abc
import random


class JitterStrategy(abc.ABC):
    """Apply randomness to a backoff delay to spread thundering-herd."""

    @abc.abstractmethod
    def apply(self, delay: float) -> float: ...


class NoJitter(JitterStrategy):
    def apply(self, delay: float) -> float:
        return delay


class SymmetricJitter(JitterStrategy):
    """Uniform random in ``[delay * (1 - ratio), delay * (1 + ratio)]``, floored at 0.

    Pass a seeded :class:`random.Random` for reproducible schedules.
    """

    def __init__(self, ratio: float = 0.1, rng: random.Random | None = None) -> None:
        if ratio < 0:
            raise ValueError("ratio must be >= 0")
        self.ratio = ratio
        self._rng = rng or random.Random()

    def apply(self, delay: float) -> float:
        return max(0.0, delay + self._rng.uniform(-self.ratio, self.ratio) * delay)


__all__ = ["JitterStrategy", "NoJitter", "SymmetricJitter"]
