"""Tagged execution errors and the ``classify`` entry point.

Every failure that reaches the retry engine is reduced to an
:class:`~mp_reliability.kernel.errors.kinds.ErrorKind`.  Errors raised by
this library (and by well-behaved task functions) carry their kind from
the point they are raised; foreign exceptions are mapped by type only.  Anything
that cannot be mapped is ``UNCLASSIFIED`` and therefore never retried.
"""

from __future__ import annotations

import asyncio
import builtins
from typing import Any, ClassVar

from mp_reliability.kernel.errors.base import BaseError
from mp_reliability.kernel.errors.kinds import ErrorKind


class ReliabilityError(BaseError):
    """Failure of a unit of work, tagged with an :class:`ErrorKind`."""

    default_code = "reliability_error"
    default_kind: ClassVar[ErrorKind] = ErrorKind.UNCLASSIFIED

    def __init__(self, message: str, *, kind: ErrorKind | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.kind: ErrorKind = kind or self.default_kind

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["kind"] = self.kind.value
        return base


class OperationTimeoutError(ReliabilityError):
    """An operation did not complete within its effective timeout."""

    default_code = "operation_timeout"
    default_kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        operation_type: str,
        timeout_ms: float,
        actual_duration_ms: float,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Operation '{operation_type}' timed out after {timeout_ms:g}ms",
            detail={
                "operation_type": operation_type,
                "timeout_ms": timeout_ms,
                "actual_duration_ms": actual_duration_ms,
            },
            **kwargs,
        )
        self.operation_type = operation_type
        self.timeout_ms = timeout_ms
        self.actual_duration_ms = actual_duration_ms


class NetworkError(ReliabilityError):
    default_code = "network_error"
    default_kind = ErrorKind.NETWORK


class ConnectionFailedError(ReliabilityError):
    default_code = "connection_failed"
    default_kind = ErrorKind.CONNECTION


class ResourceContentionError(ReliabilityError):
    default_code = "resource_contention"
    default_kind = ErrorKind.RESOURCE_CONTENTION


class RaceConditionError(ReliabilityError):
    default_code = "race_condition"
    default_kind = ErrorKind.RACE_CONDITION


class ProtocolError(ReliabilityError):
    default_code = "protocol_error"
    default_kind = ErrorKind.PROTOCOL


class TemporaryError(ReliabilityError):
    default_code = "temporary_error"
    default_kind = ErrorKind.TEMPORARY


class AssertionFailedError(ReliabilityError):
    """The operation ran to completion but its outcome was wrong."""

    default_code = "assertion_failed"
    default_kind = ErrorKind.ASSERTION


_KIND_TO_ERROR: dict[ErrorKind, type[ReliabilityError]] = {
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.CONNECTION: ConnectionFailedError,
    ErrorKind.RESOURCE_CONTENTION: ResourceContentionError,
    ErrorKind.RACE_CONDITION: RaceConditionError,
    ErrorKind.PROTOCOL: ProtocolError,
    ErrorKind.TEMPORARY: TemporaryError,
    ErrorKind.ASSERTION: AssertionFailedError,
}

# Ordered: first matching builtin type wins.
_BUILTIN_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (asyncio.TimeoutError, ErrorKind.TIMEOUT),
    (builtins.TimeoutError, ErrorKind.TIMEOUT),
    (builtins.ConnectionError, ErrorKind.CONNECTION),
    (AssertionError, ErrorKind.ASSERTION),
)


def classify(exc: BaseException | None) -> ErrorKind:
    """Return the :class:`ErrorKind` of *exc* without inspecting its message."""
    if exc is None:
        return ErrorKind.UNCLASSIFIED
    if isinstance(exc, ReliabilityError):
        return exc.kind
    for exc_type, kind in _BUILTIN_KINDS:
        if isinstance(exc, exc_type):
            return kind
    return ErrorKind.UNCLASSIFIED


def tag_error(exc: BaseException, kind: ErrorKind) -> ReliabilityError:
    """Wrap a foreign exception into the tagged error for *kind*.

    Task functions call this where they catch driver exceptions so the
    retry engine sees an explicit kind instead of guessing from text.
    """
    if isinstance(exc, ReliabilityError) and exc.kind is kind:
        return exc
    message = str(exc) or type(exc).__name__
    error_cls = _KIND_TO_ERROR.get(kind)
    if error_cls is None:
        return ReliabilityError(message, kind=kind, cause=exc)
    return error_cls(message, cause=exc)


__all__ = [
    "AssertionFailedError",
    "ConnectionFailedError",
    "NetworkError",
    "OperationTimeoutError",
    "ProtocolError",
    "RaceConditionError",
    "ReliabilityError",
    "ResourceContentionError",
    "TemporaryError",
    "classify",
    "tag_error",
]
