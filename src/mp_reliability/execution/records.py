"""Execution – ExecutionRecord and the bounded per-key ExecutionHistory."""
from __future__ import annotations

import dataclasses
import uuid
from collections import deque
from typing import Any, Iterable, Iterator

from mp_reliability.kernel.errors import ErrorKind
from mp_reliability.observability.environment import EnvironmentSnapshot


@dataclasses.dataclass(frozen=True)
class ExecutionRecord:
    """Outcome of exactly one attempt of one operation.

    ``timestamp_ms`` is epoch milliseconds at completion.  ``result`` holds
    the value the operation produced (compared structurally by the
    consistency checker); ``memory_mb`` is an optional per-run memory figure.
    """

    operation_id: str
    timestamp_ms: float
    success: bool
    duration_ms: float
    error_kind: ErrorKind | None = None
    environment: EnvironmentSnapshot | None = None
    run_id: str = dataclasses.field(default_factory=lambda: uuid.uuid4().hex)
    attempt: int = 0
    result: Any = None
    memory_mb: float | None = None

    @property
    def timed_out(self) -> bool:
        return self.error_kind is ErrorKind.TIMEOUT

    @property
    def outcome(self) -> tuple[bool, Any]:
        return (self.success, self.result)


class ExecutionHistory:
    """Sliding window of :class:`ExecutionRecord` per key (operation id or type).

    Appending to a full window evicts the oldest record.
    """

    def __init__(self, window: int = 50) -> None:
        if window < 1:
            raise ValueError("window must be >= 1")
        self._window = window
        self._records: dict[str, deque[ExecutionRecord]] = {}

    @property
    def window(self) -> int:
        return self._window

    def append(self, key: str, record: ExecutionRecord) -> None:
        bucket = self._records.get(key)
        if bucket is None:
            bucket = deque(maxlen=self._window)
            self._records[key] = bucket
        bucket.append(record)

    def extend(self, key: str, records: Iterable[ExecutionRecord]) -> None:
        for record in records:
            self.append(key, record)

    def get(self, key: str) -> list[ExecutionRecord]:
        return list(self._records.get(key, ()))

    def keys(self) -> list[str]:
        return list(self._records)

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self._records.clear()
        else:
            self._records.pop(key, None)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))

    def __contains__(self, key: object) -> bool:
        return key in self._records


__all__ = ["ExecutionHistory", "ExecutionRecord"]
