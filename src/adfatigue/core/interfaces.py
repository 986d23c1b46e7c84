"""
Abstract contracts between the cache core and its collaborators.

- KeyValueBackend: storage used by the persistent tier (Redis in production,
  an in-memory stand-in in tests)
- OriginFetcher: the ad platform API client, seen by the core purely as an
  async callable taking a cache key
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

OriginFetcher = Callable[[str], Awaitable[Any]]


class KeyValueBackend(ABC):
    """
    Abstract base class for persistent tier storage backends.

    Values are strings; callers own serialization.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Store a value.

        Args:
            key: Storage key
            value: Serialized value
            ttl: Time-to-live in seconds (None keeps the key forever)
        """
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        pass

    @abstractmethod
    async def expire(self, key: str, ttl: int) -> bool:
        """Reset the time-to-live of a key."""
        pass

    @abstractmethod
    async def hset(self, name: str, key: str, value: str) -> int:
        """Set a hash field."""
        pass

    @abstractmethod
    async def hgetall(self, name: str) -> dict[str, str]:
        """Return every field of a hash."""
        pass

    @abstractmethod
    async def hdel(self, name: str, *keys: str) -> int:
        """Delete hash fields."""
        pass

    @abstractmethod
    async def publish(self, channel: str, message: str) -> int:
        """Publish a message to a channel, returning the receiver count."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backend is reachable."""
        pass
