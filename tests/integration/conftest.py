"""Integration test fixtures: a real Redis at TASQ_TEST_REDIS_URL."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from redis.exceptions import RedisError

from tasq.core.brokers.redis import RedisBroker
from tasq.core.client import Client
from tasq.core.models.broker import RedisConfig

REDIS_URL = os.environ.get('TASQ_TEST_REDIS_URL', 'redis://localhost:6379/15')


@pytest.fixture(scope='session')
def redis_url() -> str:
    """Redis connection URL (a dedicated logical database, flushed per test)."""
    return REDIS_URL


@pytest_asyncio.fixture
async def redis(redis_url: str) -> AsyncGenerator[Redis, None]:
    """Raw client for direct key inspection. Skips when Redis is unreachable."""
    client = Redis.from_url(redis_url)
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        await client.aclose()
        pytest.skip(f'Redis not reachable at {redis_url}: {exc}')
    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()


@pytest_asyncio.fixture
async def broker(redis: Redis, redis_url: str) -> AsyncGenerator[RedisBroker, None]:
    """Broker with its own connection pool."""
    b = RedisBroker(RedisConfig(redis_url=redis_url))
    yield b
    await b.close_async()


@pytest_asyncio.fixture
async def client(broker: RedisBroker) -> AsyncGenerator[Client, None]:
    async with Client(broker=broker) as c:
        yield c
