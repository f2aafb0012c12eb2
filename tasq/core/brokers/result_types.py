"""Typed error types for RedisBroker operations.

Result propagation policy
-------------------------
Broker methods return ``BrokerResult[T]`` (``Ok`` / ``Err`` from the
``result`` package) and never raise for operational failures: lost
connections, Redis errors and codec failures all become
``Err(BrokerOperationError)`` carrying a ``retryable`` flag.

Validation problems are programming errors. They are raised as
``TaskValidationError`` by the client before any store traffic and never
reach the broker.

A duplicate task id is not an error. The registration scripts report it as
``Ok(EnqueueOutcome.DUPLICATE)``.

The broker never retries. When a round trip fails its outcome is unknown
(the script may or may not have run), so the decision to resubmit belongs to
the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias, TypeVar

from result import Result


class BrokerErrorCode(str, Enum):
    """Categorized broker operation failure codes."""

    INIT_FAILED = 'INIT_FAILED'
    ENQUEUE_FAILED = 'ENQUEUE_FAILED'
    SCHEDULE_FAILED = 'SCHEDULE_FAILED'
    BATCH_FAILED = 'BATCH_FAILED'
    SERIALIZATION_FAILED = 'SERIALIZATION_FAILED'
    QUERY_FAILED = 'QUERY_FAILED'
    CLOSE_FAILED = 'CLOSE_FAILED'


class EnqueueOutcome(str, Enum):
    """What a registration script did with one task id."""

    ENQUEUED = 'enqueued'  # script returned 1
    DUPLICATE = 'duplicate'  # script returned 0, id already registered


@dataclass(slots=True, frozen=True)
class BrokerOperationError:
    """Error payload carried inside Err(...) for broker operations.

    Fields:
        code: which operation category failed
        message: human-readable description
        retryable: whether the caller can retry this operation
        exception: the original cause (if any)
    """

    code: BrokerErrorCode
    message: str
    retryable: bool
    exception: BaseException | None = None


T = TypeVar('T')

BrokerResult: TypeAlias = Result[T, BrokerOperationError]
