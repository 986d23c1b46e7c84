"""
Cache-Related Exceptions

All exceptions related to the memory and persistent cache tiers.

A cache miss is NOT an exception: tiers return None and the
orchestrator moves on to the next tier.

Author: System Architect
Date: 2025-12-08
"""

from adfatigue.core.exceptions.base import FatigueServiceError


class CacheError(FatigueServiceError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the persistent backend (Redis).

    Common causes:
    - Redis server is down
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key operation fails.

    Common causes:
    - Unknown key for an update/extend operation
    - Operation timeout
    """
    pass


class SerializationError(CacheError):
    """
    Raised when a payload cannot be encoded for size accounting,
    or is larger than the memory tier's whole byte budget.

    The orchestrator skips the memory write and logs a warning;
    the data is still returned and still offered to the persistent tier.
    """
    pass


class PersistentWriteError(CacheError):
    """
    Raised when the persistent tier fails to store an entry.

    Writes are best-effort relative to the read they accompany: the
    orchestrator logs this error and never fails a resolve because of it.
    """
    pass
