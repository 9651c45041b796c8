"""Testing support – deterministic fakes and generators for reliability tests."""

from mp_reliability.testing.fakes import FAKE_EPOCH_MS, FakeClock, FakeEnvironmentSampler, ScriptedOperation
from mp_reliability.testing.generators import (
    HistoryBuilder,
    backoff_config_strategy,
    environment_strategy,
    execution_record_strategy,
    history_strategy,
)

__all__ = [
    "FAKE_EPOCH_MS",
    "FakeClock",
    "FakeEnvironmentSampler",
    "HistoryBuilder",
    "ScriptedOperation",
    "backoff_config_strategy",
    "environment_strategy",
    "execution_record_strategy",
    "history_strategy",
]
