# tasq/core/utils/store.py
"""Shared helpers for classifying Redis errors."""

from __future__ import annotations

from redis.exceptions import (
    BusyLoadingError,
    ConnectionError,
    TimeoutError,
    TryAgainError,
)


def is_retryable_store_error(exc: BaseException) -> bool:
    """Check whether a store failure is transient and worth a caller retry.

    The outcome of the failed round trip is unknown for these errors, so a
    retry may observe the task as already registered.
    """
    match exc:
        case ConnectionError() | TimeoutError() | BusyLoadingError() | TryAgainError():
            return True
        case OSError():
            return True
        case _:
            return False
