"""Error-kind taxonomy used by every retry and flakiness decision."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag assigned to a failure at the point it is raised or wrapped."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    CONNECTION = "connection"
    RESOURCE_CONTENTION = "resource_contention"
    RACE_CONDITION = "race_condition"
    PROTOCOL = "protocol"
    TEMPORARY = "temporary"
    ASSERTION = "assertion"
    UNCLASSIFIED = "unclassified"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS


RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK,
        ErrorKind.CONNECTION,
        ErrorKind.RESOURCE_CONTENTION,
        ErrorKind.RACE_CONDITION,
        ErrorKind.PROTOCOL,
        ErrorKind.TEMPORARY,
    }
)


__all__ = ["RETRYABLE_KINDS", "ErrorKind"]
