"""Kernel time – wall-clock port used for circuit windows, deadlines and history timestamps.

Engine components never call :func:`datetime.now` directly; they take a
:class:`Clock` and convert through :func:`now_ms` so a :class:`FrozenClock`
can drive recovery windows and deadlines in tests.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...
    def timestamp(self) -> float: ...


class SystemClock:
    """UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def timestamp(self) -> float:
        return self.now().timestamp()


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, fixed: datetime) -> None:
        if fixed.tzinfo is None:
            fixed = fixed.replace(tzinfo=UTC)
        self._fixed = fixed

    def now(self) -> datetime:
        return self._fixed

    def timestamp(self) -> float:
        return self._fixed.timestamp()

    def advance(self, **kwargs: int | float) -> None:
        """Move forward by ``timedelta(**kwargs)``, e.g. ``advance(milliseconds=250)``."""
        self._fixed += timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self._fixed = when if when.tzinfo is not None else when.replace(tzinfo=UTC)


def now_ms(clock: Clock) -> float:
    """Epoch milliseconds according to *clock*."""
    return clock.timestamp() * 1000.0


__all__ = ["Clock", "FrozenClock", "SystemClock", "now_ms"]
