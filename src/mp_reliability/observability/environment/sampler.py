"""Observability – environment sampling port and psutil implementation.

Flakiness analysis and retry decisions look at the CPU / memory pressure
present when an attempt ran.  The sampler is injected so tests can supply
scripted snapshots.
"""
from __future__ import annotations

import dataclasses
from typing import Protocol

import psutil


@dataclasses.dataclass(frozen=True)
class EnvironmentSnapshot:
    """Host resource pressure at one instant, in percent."""

    cpu_pct: float
    mem_pct: float

    def is_high_load(self, cpu_limit: float = 80.0, mem_limit: float = 85.0) -> bool:
        return self.cpu_pct > cpu_limit or self.mem_pct > mem_limit

    def is_stable(self, cpu_limit: float = 90.0, mem_limit: float = 95.0) -> bool:
        return self.cpu_pct < cpu_limit and self.mem_pct < mem_limit


class EnvironmentSampler(Protocol):
    """Port: supplies an :class:`EnvironmentSnapshot` on demand."""

    def sample(self) -> EnvironmentSnapshot: ...


class PsutilEnvironmentSampler:
    """Reads real host metrics through :mod:`psutil`.

    ``cpu_percent`` is called non-blocking; the first reading after process
    start compares against process start and may be 0.0.
    """

    def __init__(self, cpu_interval: float | None = None) -> None:
        self._cpu_interval = cpu_interval

    def sample(self) -> EnvironmentSnapshot:
        cpu = psutil.cpu_percent(interval=self._cpu_interval)
        memory = psutil.virtual_memory()
        return EnvironmentSnapshot(cpu_pct=round(cpu, 2), mem_pct=round(memory.percent, 2))


__all__ = ["EnvironmentSampler", "EnvironmentSnapshot", "PsutilEnvironmentSampler"]
