"""Unit tests for environment snapshots and samplers."""

from __future__ import annotations

import pytest

from mp_reliability.observability.environment import EnvironmentSnapshot, PsutilEnvironmentSampler
from mp_reliability.testing import FakeEnvironmentSampler


class TestEnvironmentSnapshot:
    @pytest.mark.parametrize(
        ("cpu", "mem", "high"),
        [(50.0, 50.0, False), (80.0, 85.0, False), (80.1, 10.0, True), (10.0, 85.1, True)],
    )
    def test_high_load_thresholds(self, cpu: float, mem: float, high: bool) -> None:
        assert EnvironmentSnapshot(cpu, mem).is_high_load() is high

    @pytest.mark.parametrize(
        ("cpu", "mem", "stable"),
        [(89.9, 94.9, True), (90.0, 10.0, False), (10.0, 95.0, False)],
    )
    def test_stable_thresholds(self, cpu: float, mem: float, stable: bool) -> None:
        assert EnvironmentSnapshot(cpu, mem).is_stable() is stable


class TestPsutilEnvironmentSampler:
    def test_reads_percentages(self) -> None:
        snapshot = PsutilEnvironmentSampler().sample()
        assert 0.0 <= snapshot.cpu_pct <= 100.0
        assert 0.0 <= snapshot.mem_pct <= 100.0


class TestFakeEnvironmentSampler:
    def test_replays_then_repeats_last(self) -> None:
        sampler = FakeEnvironmentSampler([(95.0, 40.0), EnvironmentSnapshot(20.0, 30.0)])
        assert sampler.sample() == EnvironmentSnapshot(95.0, 40.0)
        assert sampler.sample() == EnvironmentSnapshot(20.0, 30.0)
        assert sampler.sample() == EnvironmentSnapshot(20.0, 30.0)
        assert sampler.calls == 3

    def test_empty_script_rejected(self) -> None:
        with pytest.raises(ValueError):
            FakeEnvironmentSampler([])
