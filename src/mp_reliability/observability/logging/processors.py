"""Observability – get_logger helper and per-operation log context."""
from __future__ import annotations

import contextlib
from typing import Any, Iterator

import structlog


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


@contextlib.contextmanager
def operation_log_context(operation_id: str, **extra: Any) -> Iterator[None]:
    """Bind ``operation_id`` into structlog contextvars for the enclosed block.

    Every log line emitted inside the block (including from nested
    components) carries the identifier of the operation being executed.
    """
    with structlog.contextvars.bound_contextvars(operation_id=operation_id, **extra):
        yield


__all__ = ["get_logger", "operation_log_context"]
