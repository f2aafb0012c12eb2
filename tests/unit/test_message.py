"""Unit tests for task message construction and the Redis key layout."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tasq.core.keys import (
    ALL_QUEUES,
    pending_key,
    scheduled_key,
    task_key,
    task_key_prefix,
)
from tasq.core.models.message import build_task_message, new_task_id
from tasq.core.models.options import TaskOptions, resolve_options
from tasq.core.models.tasks import Task

pytestmark = pytest.mark.unit

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestBuildTaskMessage:
    def test_fields_taken_from_task_and_resolved_options(self) -> None:
        task = Task('resize_image', b'img-1')
        resolved = resolve_options(None, TaskOptions(queue='media', retry=4), now=NOW)

        message = build_task_message(task, resolved)

        assert message.type == 'resize_image'
        assert message.payload == b'img-1'
        assert message.queue == 'media'
        assert message.retry == 4
        assert message.timeout == 1800
        assert message.deadline == 0

    def test_consumer_fields_start_empty(self) -> None:
        message = build_task_message(Task('t'), resolve_options(None, None, now=NOW))

        assert message.retried == 0
        assert message.error_msg == ''
        assert message.last_failed_at == 0
        assert message.unique_key == ''
        assert message.group_key == ''
        assert message.retention == 0
        assert message.completed_at == 0

    def test_deadline_encoded_as_unix_seconds(self) -> None:
        deadline = NOW + timedelta(hours=1)
        resolved = resolve_options(None, TaskOptions(deadline=deadline), now=NOW)

        message = build_task_message(Task('t'), resolved)

        assert message.deadline == int(deadline.timestamp())
        assert message.timeout == 0

    def test_every_message_gets_a_fresh_id(self) -> None:
        task = Task('t')
        resolved = resolve_options(None, None, now=NOW)

        ids = {build_task_message(task, resolved).id for _ in range(100)}

        assert len(ids) == 100

    def test_id_is_uuid4(self) -> None:
        assert uuid.UUID(new_task_id()).version == 4


class TestKeys:
    def test_queue_registry_key(self) -> None:
        assert ALL_QUEUES == 'asynq:queues'

    def test_task_key(self) -> None:
        assert task_key('default', 'abc') == 'asynq:{default}:t:abc'
        assert task_key_prefix('default') == 'asynq:{default}:t:'

    def test_pending_key(self) -> None:
        assert pending_key('critical') == 'asynq:{critical}:pending'

    def test_scheduled_key(self) -> None:
        assert scheduled_key('critical') == 'asynq:{critical}:scheduled'
