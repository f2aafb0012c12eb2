# tasq/core/models/tasks.py
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from tasq.core.codec.serde import dumps_json
from tasq.core.models.options import TaskOptions
from tasq.core.types.status import PRODUCIBLE_STATES, TaskState

if TYPE_CHECKING:
    from tasq.core.models.message import TaskMessage


@dataclass(frozen=True, slots=True)
class Task:
    """
    A unit of work: a handler type name and its payload.

    ``payload`` is stored as bytes. Any other value is JSON-encoded on
    construction, so ``Task('send_email', {'to': 'a@b.c'})`` works directly.
    """

    type_name: str
    payload: bytes = b''
    options: Optional[TaskOptions] = None

    def __post_init__(self) -> None:
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            object.__setattr__(self, 'payload', dumps_json(self.payload).encode('utf-8'))
        elif not isinstance(self.payload, bytes):
            object.__setattr__(self, 'payload', bytes(self.payload))

    @classmethod
    def with_options(cls, type_name: str, payload: Any = b'', **options: Any) -> Task:
        """Build a task with its own option layer from keyword arguments."""
        return cls(type_name, payload, TaskOptions(**options))


def _from_unix_or_none(seconds: int) -> datetime.datetime | None:
    if seconds == 0:
        return None
    return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)


@dataclass(frozen=True, slots=True)
class TaskInfo:
    """Receipt describing a submitted task and the state it was stored in."""

    id: str
    queue: str
    type: str
    payload: bytes
    state: TaskState
    max_retry: int
    retried: int
    last_err: str
    # None when the task never failed.
    last_failed_at: datetime.datetime | None
    # Seconds an attempt may run; 0 when only a deadline bounds the task.
    timeout: int
    deadline: datetime.datetime | None
    # Aggregation group; empty when the task is not grouped.
    group: str
    next_process_at: datetime.datetime
    retention: int
    completed_at: datetime.datetime | None
    # Only meaningful for ACTIVE tasks, which a producer never reports.
    is_orphaned: bool = False
    result: bytes | None = None
    # True when the store already held this task id and nothing was written.
    duplicate: bool = False


def project_task_info(
    message: 'TaskMessage',
    state: TaskState,
    next_process_at: datetime.datetime,
    *,
    duplicate: bool = False,
) -> TaskInfo:
    """Build the receipt for a message the producer just handed to the store.

    Only PENDING and SCHEDULED can be derived at submission time; any other
    state here is a bug in the caller.
    """
    if state not in PRODUCIBLE_STATES:
        raise RuntimeError(f'internal error: unexpected task state at submission: {state}')

    return TaskInfo(
        id=message.id,
        queue=message.queue,
        type=message.type,
        payload=message.payload,
        state=state,
        max_retry=message.retry,
        retried=message.retried,
        last_err=message.error_msg,
        last_failed_at=_from_unix_or_none(message.last_failed_at),
        timeout=message.timeout,
        deadline=_from_unix_or_none(message.deadline),
        group=message.group_key,
        next_process_at=next_process_at,
        retention=message.retention,
        completed_at=_from_unix_or_none(message.completed_at),
        duplicate=duplicate,
    )
