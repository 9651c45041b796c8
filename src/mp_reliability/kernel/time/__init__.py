"""Kernel time – Clock port + implementations."""
from mp_reliability.kernel.time.clock import Clock, FrozenClock, SystemClock, now_ms

__all__ = ["Clock", "FrozenClock", "SystemClock", "now_ms"]
