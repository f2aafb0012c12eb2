# tasq/core/brokers/redis.py
from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError
from result import Err, Ok

from tasq.core.brokers.result_types import (
    BrokerErrorCode,
    BrokerOperationError,
    BrokerResult,
    EnqueueOutcome,
)
from tasq.core.brokers.scripts import ENQUEUE_SCRIPT, SCHEDULE_SCRIPT
from tasq.core.codec.serde import JsonMessageCodec, MessageCodec
from tasq.core.keys import ALL_QUEUES, pending_key, scheduled_key, task_key
from tasq.core.logging import get_logger
from tasq.core.models.broker import RedisConfig
from tasq.core.models.message import TaskMessage
from tasq.core.utils.store import is_retryable_store_error

# Errors a round trip to the store can surface.
_STORE_ERRORS = (RedisError, OSError)


class BrokerClosedError(RuntimeError):
    """Raised internally when an operation is attempted after close_async()."""


class RedisBroker:
    """
    Store handle that registers task messages in Redis.

    Lifecycle: construct -> use -> ``close_async()`` (or ``async with``).
    Each handle owns its registration scripts; they are registered once here
    and preloaded on first use by ``ensure_initialized()``.

    Every operation returns a ``BrokerResult``. Registration is at-most-once
    per task id: a second attempt for a known id yields
    ``Ok(EnqueueOutcome.DUPLICATE)`` and writes nothing.
    """

    def __init__(
        self,
        config: RedisConfig | None = None,
        *,
        redis: Redis | None = None,
        codec: MessageCodec | None = None,
    ) -> None:
        self.config = config or RedisConfig()
        self.logger = get_logger('broker')
        self.codec: MessageCodec = codec or JsonMessageCodec()

        if redis is None:
            self._redis: Redis = Redis.from_url(
                self.config.redis_url,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                # Every command is sent at most once.
                retry_on_timeout=False,
                retry=Retry(NoBackoff(), 0),
            )
            self._owns_redis = True
        else:
            # Injected clients stay owned by the caller.
            self._redis = redis
            self._owns_redis = False

        self._enqueue_script = self._redis.register_script(ENQUEUE_SCRIPT)
        self._schedule_script = self._redis.register_script(SCHEDULE_SCRIPT)

        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._closed = False

        self.logger.info(f'RedisBroker initialized ({self.config.masked_url()})')

    @property
    def redis(self) -> Redis:
        return self._redis

    async def __aenter__(self) -> RedisBroker:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close_async()

    # ----------------- Initialization -----------------

    def _check_open(self) -> None:
        if self._closed:
            raise BrokerClosedError('RedisBroker is closed')

    async def _ensure_initialized(self) -> None:
        self._check_open()
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._redis.script_load(ENQUEUE_SCRIPT)
            await self._redis.script_load(SCHEDULE_SCRIPT)
            self._initialized = True
            self.logger.debug('Registration scripts loaded')

    async def ensure_initialized(self) -> BrokerResult[None]:
        """
        Preload the registration scripts into Redis.

        Safe to call many times and concurrently; only the first call
        talks to the store.
        """
        try:
            await self._ensure_initialized()
        except BrokerClosedError as exc:
            return Err(self._closed_error(BrokerErrorCode.INIT_FAILED, exc))
        except _STORE_ERRORS as exc:
            return Err(self._store_error(
                BrokerErrorCode.INIT_FAILED, 'Failed to load registration scripts', exc,
            ))
        return Ok(None)

    # ----------------- Single registration -----------------

    async def enqueue_async(self, message: TaskMessage) -> BrokerResult[EnqueueOutcome]:
        """Register ``message`` as immediately runnable on its queue."""
        return await self._register(
            message,
            script=self._enqueue_script,
            keys=[task_key(message.queue, message.id), pending_key(message.queue)],
            extra_args=[message.id, time.time_ns()],
            code=BrokerErrorCode.ENQUEUE_FAILED,
        )

    async def schedule_async(
        self, message: TaskMessage, process_at: datetime,
    ) -> BrokerResult[EnqueueOutcome]:
        """Register ``message`` to become runnable at ``process_at``."""
        return await self._register(
            message,
            script=self._schedule_script,
            keys=[task_key(message.queue, message.id), scheduled_key(message.queue)],
            extra_args=[int(process_at.timestamp()), message.id],
            code=BrokerErrorCode.SCHEDULE_FAILED,
        )

    async def _register(
        self,
        message: TaskMessage,
        *,
        script: Any,
        keys: list[str],
        extra_args: list[Any],
        code: BrokerErrorCode,
    ) -> BrokerResult[EnqueueOutcome]:
        encoded = self._encode(message)
        if isinstance(encoded, Err):
            return encoded

        try:
            await self._ensure_initialized()
            # Registry membership is monotonic, so it need not be atomic
            # with the insert below.
            await self._redis.sadd(ALL_QUEUES, message.queue)
            reply = await script(keys=keys, args=[encoded.ok_value, *extra_args])
        except BrokerClosedError as exc:
            return Err(self._closed_error(code, exc))
        except _STORE_ERRORS as exc:
            return Err(self._store_error(
                code, f'Failed to register task {message.id} on queue {message.queue}', exc,
            ))

        return Ok(self._outcome(reply, message))

    # ----------------- Batch registration -----------------

    async def enqueue_batch_async(
        self, messages: Sequence[TaskMessage],
    ) -> BrokerResult[list[BrokerResult[EnqueueOutcome]]]:
        """
        Register every message as pending in one pipelined round trip.

        Atomicity is per message: a duplicate or failing item never affects
        its siblings. The outer Err is reserved for a failed round trip.
        """
        return await self._register_batch(
            messages, [None] * len(messages), BrokerErrorCode.ENQUEUE_FAILED,
        )

    async def schedule_batch_async(
        self,
        messages: Sequence[TaskMessage],
        process_at: datetime | Sequence[datetime],
    ) -> BrokerResult[list[BrokerResult[EnqueueOutcome]]]:
        """
        Register every message as scheduled in one pipelined round trip.

        ``process_at`` is either one time for the whole batch or a sequence
        aligned with ``messages``.
        """
        if isinstance(process_at, datetime):
            times: list[datetime | None] = [process_at] * len(messages)
        else:
            times = list(process_at)
            if len(times) != len(messages):
                raise ValueError(
                    f'process_at has {len(times)} entries for {len(messages)} messages'
                )
        return await self._register_batch(messages, times, BrokerErrorCode.SCHEDULE_FAILED)

    async def _register_batch(
        self,
        messages: Sequence[TaskMessage],
        times: list[datetime | None],
        code: BrokerErrorCode,
    ) -> BrokerResult[list[BrokerResult[EnqueueOutcome]]]:
        results: list[BrokerResult[EnqueueOutcome] | None] = [None] * len(messages)
        # (position in messages, script, keys, args) for every encodable item
        calls: list[tuple[int, Any, list[str], list[Any]]] = []

        for idx, (message, process_at) in enumerate(zip(messages, times)):
            encoded = self._encode(message)
            if isinstance(encoded, Err):
                results[idx] = encoded
                continue
            if process_at is None:
                calls.append((
                    idx,
                    self._enqueue_script,
                    [task_key(message.queue, message.id), pending_key(message.queue)],
                    [encoded.ok_value, message.id, time.time_ns()],
                ))
            else:
                calls.append((
                    idx,
                    self._schedule_script,
                    [task_key(message.queue, message.id), scheduled_key(message.queue)],
                    [encoded.ok_value, int(process_at.timestamp()), message.id],
                ))

        if calls:
            queues = list(dict.fromkeys(messages[idx].queue for idx, *_ in calls))
            try:
                await self._ensure_initialized()
                async with self._redis.pipeline(transaction=True) as pipe:
                    for queue in queues:
                        pipe.sadd(ALL_QUEUES, queue)
                    for _, script, keys, args in calls:
                        await script(keys=keys, args=args, client=pipe)
                    replies = await pipe.execute(raise_on_error=False)
            except BrokerClosedError as exc:
                return Err(self._closed_error(BrokerErrorCode.BATCH_FAILED, exc))
            except _STORE_ERRORS as exc:
                return Err(self._store_error(
                    BrokerErrorCode.BATCH_FAILED,
                    f'Batch of {len(calls)} task(s) failed',
                    exc,
                ))

            for (idx, *_), reply in zip(calls, replies[len(queues):]):
                message = messages[idx]
                if isinstance(reply, BaseException):
                    results[idx] = Err(self._store_error(
                        code,
                        f'Failed to register task {message.id} on queue {message.queue}',
                        reply,
                    ))
                else:
                    results[idx] = Ok(self._outcome(reply, message))

        return Ok([r for r in results if r is not None])

    # ----------------- Queries -----------------

    async def queues_async(self) -> BrokerResult[set[str]]:
        """Return every queue name recorded in the registry."""
        try:
            self._check_open()
            members = await self._redis.smembers(ALL_QUEUES)
        except BrokerClosedError as exc:
            return Err(self._closed_error(BrokerErrorCode.QUERY_FAILED, exc))
        except _STORE_ERRORS as exc:
            return Err(self._store_error(
                BrokerErrorCode.QUERY_FAILED, 'Failed to read queue registry', exc,
            ))
        return Ok({m.decode() if isinstance(m, bytes) else m for m in members})

    async def ping_async(self) -> BrokerResult[bool]:
        try:
            self._check_open()
            return Ok(bool(await self._redis.ping()))
        except BrokerClosedError as exc:
            return Err(self._closed_error(BrokerErrorCode.QUERY_FAILED, exc))
        except _STORE_ERRORS as exc:
            return Err(self._store_error(
                BrokerErrorCode.QUERY_FAILED, 'Redis did not answer PING', exc,
            ))

    # ----------------- Lifecycle -----------------

    async def close_async(self) -> BrokerResult[None]:
        """Close the handle. Injected Redis clients are left open."""
        if self._closed:
            return Ok(None)
        self._closed = True
        if not self._owns_redis:
            return Ok(None)
        try:
            await self._redis.aclose()
        except _STORE_ERRORS as exc:
            return Err(self._store_error(
                BrokerErrorCode.CLOSE_FAILED, 'Failed to close Redis connections', exc,
            ))
        self.logger.info('RedisBroker closed')
        return Ok(None)

    # ----------------- Helpers -----------------

    def _encode(self, message: TaskMessage) -> BrokerResult[bytes]:
        try:
            return Ok(self.codec.encode(message))
        except Exception as exc:
            # Codecs are injected; any failure is reported, never retried.
            self.logger.error(f'Failed to encode task {message.id}: {exc}')
            return Err(BrokerOperationError(
                code=BrokerErrorCode.SERIALIZATION_FAILED,
                message=f'Failed to encode task {message.id}: {exc}',
                retryable=False,
                exception=exc,
            ))

    def _outcome(self, reply: Any, message: TaskMessage) -> EnqueueOutcome:
        if int(reply) == 1:
            return EnqueueOutcome.ENQUEUED
        self.logger.warning(
            f'Task {message.id} already registered on queue {message.queue}; nothing written'
        )
        return EnqueueOutcome.DUPLICATE

    def _closed_error(
        self, code: BrokerErrorCode, exc: BrokerClosedError,
    ) -> BrokerOperationError:
        return BrokerOperationError(
            code=code, message=str(exc), retryable=False, exception=exc,
        )

    def _store_error(
        self, code: BrokerErrorCode, message: str, exc: BaseException,
    ) -> BrokerOperationError:
        self.logger.error(f'{message}: {type(exc).__name__}: {exc}')
        return BrokerOperationError(
            code=code,
            message=f'{message}: {exc}',
            retryable=is_retryable_store_error(exc),
            exception=exc,
        )
