"""Testing fakes – deterministic doubles for clocks, samplers and task functions."""
from mp_reliability.kernel.time import FrozenClock
from mp_reliability.testing.fakes.clock import FAKE_EPOCH_MS, FAKE_START, FakeClock
from mp_reliability.testing.fakes.environment import FakeEnvironmentSampler
from mp_reliability.testing.fakes.operations import ScriptedOperation

__all__ = [
    "FAKE_EPOCH_MS",
    "FAKE_START",
    "FakeClock",
    "FakeEnvironmentSampler",
    "FrozenClock",
    "ScriptedOperation",
]
