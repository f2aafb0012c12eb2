# tasq/core/client.py
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from result import Err, Ok, is_err

from tasq.core.brokers.redis import RedisBroker
from tasq.core.brokers.result_types import (
    BrokerErrorCode,
    BrokerOperationError,
    BrokerResult,
    EnqueueOutcome,
)
from tasq.core.logging import get_logger
from tasq.core.models.client import ClientConfig
from tasq.core.models.message import TaskMessage, build_task_message
from tasq.core.models.options import (
    ResolvedOptions,
    TaskOptions,
    resolve_options,
    validate_submission,
)
from tasq.core.models.task_send_types import (
    TaskSendError,
    TaskSendErrorCode,
    TaskSendResult,
)
from tasq.core.models.tasks import Task, TaskInfo, project_task_info
from tasq.core.types.status import TaskState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Client:
    """
    Producer client: submits tasks to be processed now or later.

    Options are resolved field by field, later layers winning: built-in
    defaults, then ``task.options``, then the ``options`` given to the call.
    By default a task goes to the ``default`` queue with 25 retries and a
    30 minute timeout.

    A task whose resolved ``process_at`` is at or before the submission time
    is pending immediately; a later ``process_at`` schedules it.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        broker: RedisBroker | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.logger = get_logger('client')
        if broker is None:
            self._broker = RedisBroker(self.config.broker)
            self._owns_broker = True
        else:
            self._broker = broker
            self._owns_broker = False

    @property
    def broker(self) -> RedisBroker:
        return self._broker

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close_async()

    async def close_async(self) -> BrokerResult[None]:
        """Close the broker if this client created it."""
        if not self._owns_broker:
            return Ok(None)
        return await self._broker.close_async()

    # ----------------- Submission -----------------

    def _prepare(
        self, task: Task, options: TaskOptions | None, now: datetime,
    ) -> tuple[TaskMessage, ResolvedOptions]:
        resolved = resolve_options(task.options, options, now=now)
        validate_submission(task, resolved)
        return build_task_message(task, resolved), resolved

    async def enqueue_async(
        self, task: Task, options: TaskOptions | None = None,
    ) -> TaskSendResult[TaskInfo]:
        """
        Submit one task.

        Returns:
            Ok(TaskInfo) when the store accepted the task (``duplicate`` set
            if the id was already registered), Err(TaskSendError) when the
            store could not be reached or the message could not be encoded.

        Raises:
            TaskValidationError: before any store traffic, for an empty type
                name or queue, a negative timeout or a naive datetime.
        """
        now = _utcnow()
        message, resolved = self._prepare(task, options, now)

        if resolved.process_at <= now:
            state, next_process_at = TaskState.PENDING, now
            result = await self._broker.enqueue_async(message)
        else:
            state, next_process_at = TaskState.SCHEDULED, resolved.process_at
            result = await self._broker.schedule_async(message, resolved.process_at)

        if not is_err(result):
            self.logger.debug(
                f'Submitted {message.type} as {message.id} to {message.queue} ({state})'
            )
        return self._to_send_result(result, message, state, next_process_at)

    async def enqueue_batch_async(
        self, tasks: Sequence[Task], options: TaskOptions | None = None,
    ) -> list[TaskSendResult[TaskInfo]]:
        """
        Submit many tasks in at most two round trips.

        ``options`` apply to every task, overriding each task's own options
        field by field. Tasks are split into a pending and a scheduled
        sub-batch by their own resolved ``process_at``; queues may differ.

        Returns one result per task, in input order. Each must be inspected:
        a duplicate, an encoding failure or a failed round trip affects only
        the items it concerns.

        Raises:
            TaskValidationError: if any task is invalid; nothing is sent.
        """
        now = _utcnow()
        prepared = [self._prepare(task, options, now) for task in tasks]

        pending = [i for i, (_, r) in enumerate(prepared) if r.process_at <= now]
        scheduled = [i for i, (_, r) in enumerate(prepared) if r.process_at > now]
        results: list[TaskSendResult[TaskInfo] | None] = [None] * len(prepared)

        if pending:
            batch = await self._broker.enqueue_batch_async(
                [prepared[i][0] for i in pending]
            )
            self._collect(batch, pending, prepared, results, TaskState.PENDING, now)

        if scheduled:
            batch = await self._broker.schedule_batch_async(
                [prepared[i][0] for i in scheduled],
                [prepared[i][1].process_at for i in scheduled],
            )
            self._collect(batch, scheduled, prepared, results, TaskState.SCHEDULED, now)

        self.logger.debug(
            f'Submitted batch of {len(prepared)} task(s): '
            f'{len(pending)} pending, {len(scheduled)} scheduled'
        )
        return [r for r in results if r is not None]

    def _collect(
        self,
        batch: BrokerResult[list[BrokerResult[EnqueueOutcome]]],
        indices: list[int],
        prepared: list[tuple[TaskMessage, ResolvedOptions]],
        results: list[TaskSendResult[TaskInfo] | None],
        state: TaskState,
        now: datetime,
    ) -> None:
        if is_err(batch):
            # The round trip failed: every item in it shares the error.
            for i in indices:
                results[i] = self._map_broker_err(batch.err_value, prepared[i][0])
            return

        for i, item in zip(indices, batch.ok_value):
            message, resolved = prepared[i]
            next_process_at = now if state == TaskState.PENDING else resolved.process_at
            results[i] = self._to_send_result(item, message, state, next_process_at)

    # ----------------- Broker-to-TaskSendError mapping -----------------

    def _to_send_result(
        self,
        result: BrokerResult[EnqueueOutcome],
        message: TaskMessage,
        state: TaskState,
        next_process_at: datetime,
    ) -> TaskSendResult[TaskInfo]:
        if is_err(result):
            return self._map_broker_err(result.err_value, message)
        return Ok(project_task_info(
            message,
            state,
            next_process_at,
            duplicate=result.ok_value is EnqueueOutcome.DUPLICATE,
        ))

    @staticmethod
    def _map_broker_err(
        broker_err: BrokerOperationError, message: TaskMessage,
    ) -> Err[TaskSendError]:
        code = (
            TaskSendErrorCode.SERIALIZATION_FAILED
            if broker_err.code == BrokerErrorCode.SERIALIZATION_FAILED
            else TaskSendErrorCode.ENQUEUE_FAILED
        )
        return Err(TaskSendError(
            code=code,
            message=broker_err.message,
            retryable=broker_err.retryable,
            task_id=message.id,
            queue=message.queue,
            exception=broker_err.exception,
        ))
