# tasq/core/models/options.py
from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict

from tasq.core.defaults import (
    DEFAULT_MAX_RETRY,
    DEFAULT_QUEUE,
    DEFAULT_TIMEOUT,
    DEFAULT_UNIQUE_TTL,
    NO_TIMEOUT,
)
from tasq.core.errors import (
    ErrorCode,
    TaskValidationError,
    ValidationReport,
    raise_collected,
)

if TYPE_CHECKING:
    from tasq.core.models.tasks import Task

# process_at and process_in describe one logical option: whichever a layer
# sets replaces both from the layers beneath it.
_PROCESS_TIME_FIELDS = ('process_at', 'process_in')


class TaskOptions(BaseModel):
    """
    Per-task or per-call processing options. ``None`` means "not supplied".

    Fields:
        retry: max number of re-attempts (negative values resolve to 0)
        queue: name of the queue the task is routed to
        timeout: seconds one attempt may run; 0 means no timeout
        deadline: absolute time after which no further attempts happen
        unique_ttl: seconds a uniqueness lock should live (reserved, not enforced)
        process_at: time the task becomes eligible for processing
        process_in: delay from submission after which the task becomes eligible
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    retry: Optional[int] = None
    queue: Optional[str] = None
    timeout: Optional[int] = None
    deadline: Optional[datetime.datetime] = None
    unique_ttl: Optional[int] = None
    process_at: Optional[datetime.datetime] = None
    process_in: Optional[datetime.timedelta] = None

    def supplied(self) -> dict[str, Any]:
        """Fields this layer actually sets."""
        return self.model_dump(exclude_none=True)


class ResolvedOptions(BaseModel):
    """Fully resolved option set; every field carries a concrete value."""

    model_config = ConfigDict(frozen=True)

    retry: int
    queue: str
    timeout: int
    deadline: Optional[datetime.datetime]
    unique_ttl: int
    process_at: datetime.datetime

    def as_options(self) -> TaskOptions:
        """Re-express the resolved set as an option layer."""
        return TaskOptions(
            retry=self.retry,
            queue=self.queue,
            timeout=self.timeout,
            deadline=self.deadline,
            unique_ttl=self.unique_ttl,
            process_at=self.process_at,
        )


DEFAULT_OPTIONS = TaskOptions(
    retry=DEFAULT_MAX_RETRY,
    queue=DEFAULT_QUEUE,
    unique_ttl=DEFAULT_UNIQUE_TTL,
)


def _merge_layers(*layers: TaskOptions | None) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer is None:
            continue
        supplied = layer.supplied()
        if any(name in supplied for name in _PROCESS_TIME_FIELDS):
            for name in _PROCESS_TIME_FIELDS:
                merged.pop(name, None)
        merged.update(supplied)
    return merged


def resolve_options(
    task_options: TaskOptions | None,
    call_options: TaskOptions | None,
    *,
    now: datetime.datetime,
) -> ResolvedOptions:
    """
    Merge built-in defaults, task options and call options into one set.

    Later layers override earlier ones field by field. After merging:
    - retry is clamped to >= 0
    - with neither timeout nor deadline, timeout becomes DEFAULT_TIMEOUT;
      a deadline without a timeout leaves timeout at 0 (unset)
    - process_at defaults to ``now + process_in``, or ``now``

    Never fails: validation happens separately in validate_submission().
    """
    merged = _merge_layers(DEFAULT_OPTIONS, task_options, call_options)

    timeout: int = merged.get('timeout', NO_TIMEOUT)
    deadline: datetime.datetime | None = merged.get('deadline')
    if deadline is None and timeout == NO_TIMEOUT:
        timeout = DEFAULT_TIMEOUT

    process_at: datetime.datetime | None = merged.get('process_at')
    if process_at is None:
        process_at = now + merged.get('process_in', datetime.timedelta(0))

    return ResolvedOptions(
        retry=max(0, merged.get('retry', DEFAULT_MAX_RETRY)),
        queue=merged.get('queue', DEFAULT_QUEUE),
        timeout=timeout,
        deadline=deadline,
        unique_ttl=merged.get('unique_ttl', DEFAULT_UNIQUE_TTL),
        process_at=process_at,
    )


def validate_submission(task: 'Task', resolved: ResolvedOptions) -> None:
    """Reject a submission before any store traffic.

    Collects every problem; a single problem is raised as TaskValidationError,
    several as MultipleValidationErrors.
    """
    report = ValidationReport('submission')

    if not task.type_name or not task.type_name.strip():
        report.add(
            TaskValidationError(
                message='task type name must not be empty',
                code=ErrorCode.TASK_EMPTY_TYPE_NAME,
                notes=[f'got type_name={task.type_name!r}'],
                help_text="pass a handler name, e.g. Task('send_email', payload)",
            )
        )

    if not resolved.queue or not resolved.queue.strip():
        report.add(
            TaskValidationError(
                message='queue name must not be empty',
                code=ErrorCode.TASK_INVALID_QUEUE,
                notes=[f'got queue={resolved.queue!r}'],
                help_text="omit the queue option to use 'default'",
            )
        )

    if resolved.timeout < 0:
        report.add(
            TaskValidationError(
                message='timeout must be non-negative',
                code=ErrorCode.TASK_INVALID_OPTIONS,
                notes=[f'got timeout={resolved.timeout}'],
                help_text='use seconds, or 0 together with a deadline for no timeout',
            )
        )

    if resolved.unique_ttl < 0:
        report.add(
            TaskValidationError(
                message='unique_ttl must be non-negative',
                code=ErrorCode.TASK_INVALID_OPTIONS,
                notes=[f'got unique_ttl={resolved.unique_ttl}'],
            )
        )

    for name, value in (('process_at', resolved.process_at), ('deadline', resolved.deadline)):
        if value is not None and value.tzinfo is None:
            report.add(
                TaskValidationError(
                    message=f'{name} must be timezone-aware',
                    code=ErrorCode.TASK_NAIVE_DATETIME,
                    notes=[f'got {name}={value.isoformat()}'],
                    help_text='use datetime.now(timezone.utc) or attach tzinfo',
                )
            )

    raise_collected(report)
