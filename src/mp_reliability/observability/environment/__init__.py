"""Observability – host environment sampling."""
from mp_reliability.observability.environment.sampler import (
    EnvironmentSampler,
    EnvironmentSnapshot,
    PsutilEnvironmentSampler,
)

__all__ = ["EnvironmentSampler", "EnvironmentSnapshot", "PsutilEnvironmentSampler"]
