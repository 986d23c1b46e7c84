"""
Redis Client - Persistent Tier Backend

Architecture:
    RedisClient (KeyValueBackend implementation)
        ├── ConnectionManager (Connection lifecycle and pooling)
        └── OperationExecutor (Command execution with error translation)

Only the commands the persistent tier needs are exposed: string get/set
with TTL, expire, hash index operations and publish for change events.

Author: System Architect
Date: 2025-12-09
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from adfatigue.core.config.settings import Settings, get_settings
from adfatigue.core.exceptions import CacheConnectionError, CacheKeyError
from adfatigue.core.interfaces import KeyValueBackend
from adfatigue.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Pool Configuration (from RedisSettings):
    - Max connections: REDIS_MAX_CONNECTIONS
    - Socket timeouts: REDIS_SOCKET_TIMEOUT / REDIS_SOCKET_CONNECT_TIMEOUT
    - Health check interval: REDIS_HEALTH_CHECK_INTERVAL
    - decode_responses=True (values come back as str)
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis
        try:
            self._pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()
            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            )
            return self._client

        except (ConnectionError, TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT},
            )

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False
        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        try:
            if self._client and self._is_connected:
                return bool(await self._client.ping())
        except (ConnectionError, TimeoutError):
            pass
        return False


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# =============================================================================


class OperationExecutor:
    """
    Executes Redis commands with consistent error handling.

    Every RedisError is logged with its stage and re-raised as
    CacheKeyError carrying the key (or channel) involved.
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    async def _run(
        self, command: str, call: Callable[[], Awaitable[T]], **context: Any
    ) -> T:
        try:
            return await call()
        except RedisError as e:
            logger.error(f"Redis {command} failed", stage=f"REDIS.{command}", error=str(e), **context)
            raise CacheKeyError(message=f"Redis {command} failed: {e}", details=context)

    async def get(self, key: str) -> str | None:
        return await self._run("GET", lambda: self._redis.get(key), key=key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        result = await self._run("SET", lambda: self._redis.set(key, value, ex=ttl), key=key)
        return result is not None

    async def delete(self, *keys: str) -> int:
        return await self._run("DEL", lambda: self._redis.delete(*keys), keys=list(keys))

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self._run("EXPIRE", lambda: self._redis.expire(key, ttl), key=key))

    async def hset(self, name: str, key: str, value: str) -> int:
        return await self._run("HSET", lambda: self._redis.hset(name, key, value), name=name, key=key)

    async def hgetall(self, name: str) -> dict[str, str]:
        return await self._run("HGETALL", lambda: self._redis.hgetall(name), name=name)

    async def hdel(self, name: str, *keys: str) -> int:
        return await self._run("HDEL", lambda: self._redis.hdel(name, *keys), name=name)

    async def publish(self, channel: str, message: str) -> int:
        return await self._run(
            "PUBLISH", lambda: self._redis.publish(channel, message), channel=channel
        )


# =============================================================================
# LAYER 3: PUBLIC API
# =============================================================================


class RedisClient(KeyValueBackend):
    """
    Async Redis backend for the persistent tier.

    Usage:
        client = RedisClient()
        await client.connect()
        await client.set("adfatigue:entry:insights:123:...", payload, ttl=3600)
        value = await client.get("adfatigue:entry:insights:123:...")
        await client.disconnect()
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None

    async def connect(self) -> None:
        """
        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError("Redis client is not connected")
        return self._executor

    async def get(self, key: str) -> str | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        return await self._require_executor().set(key, value, ttl=ttl)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._require_executor().delete(*keys)

    async def expire(self, key: str, ttl: int) -> bool:
        return await self._require_executor().expire(key, ttl)

    async def hset(self, name: str, key: str, value: str) -> int:
        return await self._require_executor().hset(name, key, value)

    async def hgetall(self, name: str) -> dict[str, str]:
        return await self._require_executor().hgetall(name)

    async def hdel(self, name: str, *keys: str) -> int:
        if not keys:
            return 0
        return await self._require_executor().hdel(name, *keys)

    async def publish(self, channel: str, message: str) -> int:
        return await self._require_executor().publish(channel, message)


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """
    Get the global Redis client instance (singleton).

    Returns:
        RedisClient: Global Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = RedisClient()

    return _redis_client


async def init_redis() -> RedisClient:
    """Initialize and connect the global Redis client."""
    client = get_redis_client()
    await client.connect()
    return client


async def close_redis() -> None:
    """Close the global Redis client."""
    global _redis_client

    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
