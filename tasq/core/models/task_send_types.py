"""Typed error types for task submission.

``Client.enqueue_async()`` returns ``TaskSendResult[TaskInfo]`` and
``Client.enqueue_batch_async()`` returns
``list[TaskSendResult[TaskInfo]]``, one result per task in input order.

A duplicate task id is ``Ok`` with ``TaskInfo.duplicate`` set. Validation
problems are raised as ``TaskValidationError`` before anything is sent.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias, TypeVar

from result import Result


class TaskSendErrorCode(str, Enum):
    """Categorized task submission failure codes.

    Follows the same pattern as BrokerErrorCode.
    """

    ENQUEUE_FAILED = 'ENQUEUE_FAILED'
    SERIALIZATION_FAILED = 'SERIALIZATION_FAILED'


@dataclass(slots=True, frozen=True)
class TaskSendError:
    """Error from a task submission.

    Fields:
        code: which failure category
        message: human-readable description
        retryable: whether the failure looks transient. The store may still
            have registered the task, so a resubmission can create a second
            copy under a new id.
        task_id: id generated for the submission
        queue: queue the task was routed to
        exception: the original cause (if any)
    """

    code: TaskSendErrorCode
    message: str
    retryable: bool
    task_id: str | None = None
    queue: str | None = None
    exception: BaseException | None = None

    def __repr__(self) -> str:
        """Short repr: never dumps payloads into logs."""
        return (
            f'TaskSendError(code={self.code!r}, retryable={self.retryable}, '
            f'task_id={self.task_id!r})'
        )

    def __str__(self) -> str:
        return self.__repr__()


T = TypeVar('T')

TaskSendResult: TypeAlias = Result[T, TaskSendError]
