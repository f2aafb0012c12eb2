# tasq/core/models/message.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tasq.core.defaults import NO_DEADLINE
from tasq.core.models.options import ResolvedOptions

if TYPE_CHECKING:
    from tasq.core.models.tasks import Task


@dataclass(slots=True)
class TaskMessage:
    """
    Store-bound representation of a task. Its encoded form is the ``msg``
    field of the task hash.

    Times are Unix seconds and durations are seconds; 0 means "not set".
    Fields after ``deadline`` belong to the consumer lifecycle and are only
    initialized here.
    """

    id: str
    type: str
    payload: bytes
    queue: str
    retry: int = 0
    retried: int = 0
    timeout: int = 0
    deadline: int = NO_DEADLINE
    error_msg: str = ''
    last_failed_at: int = 0
    unique_key: str = ''
    group_key: str = ''
    retention: int = 0
    completed_at: int = 0


def new_task_id() -> str:
    """Random 128-bit (uuid4) identifier, drawn from os.urandom."""
    return str(uuid.uuid4())


def build_task_message(task: 'Task', resolved: ResolvedOptions) -> TaskMessage:
    """Create the message for one submission. Every call gets a fresh id."""
    deadline = NO_DEADLINE
    if resolved.deadline is not None:
        deadline = int(resolved.deadline.timestamp())

    return TaskMessage(
        id=new_task_id(),
        type=task.type_name,
        payload=task.payload,
        queue=resolved.queue,
        retry=resolved.retry,
        timeout=resolved.timeout,
        deadline=deadline,
    )
