# tasq/core/types/status.py
"""
Task states shared between producers and consumers.
This module should not import from other application modules.
"""

from enum import Enum


class TaskState(Enum):
    """State of a task as recorded in the store's ``state`` field."""

    ACTIVE = 'active'  # Currently being processed by a handler.

    PENDING = 'pending'  # Ready to be processed.
    # State of every task submitted without a future process_at.

    SCHEDULED = 'scheduled'  # Waiting for its process_at time.

    RETRY = 'retry'  # Failed before; scheduled for another attempt.

    ARCHIVED = 'archived'  # Retries exhausted, kept for inspection.

    COMPLETED = 'completed'  # Processed successfully, kept until retention expires.

    AGGREGATING = 'aggregating'  # Waiting in a group to be aggregated.

    @classmethod
    def from_str(cls, value: str) -> 'TaskState':
        """Parse a state tag read from the store."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f'unknown task state: {value!r}') from None

    def __str__(self) -> str:
        return self.value


# States a producer can derive on its own at submission time.
PRODUCIBLE_STATES: frozenset[TaskState] = frozenset({
    TaskState.PENDING,
    TaskState.SCHEDULED,
})
