"""
Unit Tests for the Redis Client

No Redis server is needed: the executor is exercised over an AsyncMock
client and the public API in its disconnected state.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from adfatigue.core.exceptions import CacheConnectionError, CacheKeyError
from adfatigue.infrastructure.cache.redis_client import OperationExecutor, RedisClient


@pytest.mark.unit
@pytest.mark.asyncio
class TestOperationExecutor:
    """Test command execution and error translation."""

    async def test_set_passes_ttl(self):
        redis = AsyncMock()
        redis.set.return_value = True

        assert await OperationExecutor(redis).set("k", "v", ttl=60) is True
        redis.set.assert_awaited_once_with("k", "v", ex=60)

    async def test_redis_error_becomes_cache_key_error(self):
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("connection reset")

        with pytest.raises(CacheKeyError) as exc_info:
            await OperationExecutor(redis).get("k")

        assert exc_info.value.details == {"key": "k"}


@pytest.mark.unit
@pytest.mark.asyncio
class TestRedisClientDisconnected:
    """Test the public API before connect()."""

    async def test_commands_require_connection(self):
        client = RedisClient()

        with pytest.raises(CacheConnectionError):
            await client.get("k")

    async def test_empty_deletes_are_noops(self):
        client = RedisClient()

        assert await client.delete() == 0
        assert await client.hdel("index") == 0

    async def test_ping_is_false(self):
        assert await RedisClient().ping() is False
