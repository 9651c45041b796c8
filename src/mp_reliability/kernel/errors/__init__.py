"""Kernel error hierarchy: public re-export surface.

Hierarchy::

    BaseError
    ├── ApplicationError             (base.py)
    │   └── ConfigError ...          (config.validation)
    └── ReliabilityError             (reliability.py, tagged with ErrorKind)
        ├── OperationTimeoutError    TIMEOUT
        ├── NetworkError             NETWORK
        ├── ConnectionFailedError    CONNECTION
        ├── ResourceContentionError  RESOURCE_CONTENTION
        ├── RaceConditionError       RACE_CONDITION
        ├── ProtocolError            PROTOCOL
        ├── TemporaryError           TEMPORARY
        └── AssertionFailedError     ASSERTION (non-retryable)
"""

from mp_reliability.kernel.errors.base import ApplicationError, BaseError
from mp_reliability.kernel.errors.kinds import RETRYABLE_KINDS, ErrorKind
from mp_reliability.kernel.errors.reliability import (
    AssertionFailedError,
    ConnectionFailedError,
    NetworkError,
    OperationTimeoutError,
    ProtocolError,
    RaceConditionError,
    ReliabilityError,
    ResourceContentionError,
    TemporaryError,
    classify,
    tag_error,
)

__all__ = [
    "RETRYABLE_KINDS",
    "ApplicationError",
    "AssertionFailedError",
    "BaseError",
    "ConnectionFailedError",
    "ErrorKind",
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
