#!/usr/bin/env python3
"""
Memory Tier - Bounded In-Process LRU Cache

STAGE-CACHE.1: Memory tier

Bounded both by serialized bytes and by entry count, with a per-entry TTL.

Implementation Details:
- OrderedDict for O(1) access and LRU ordering (front = least recently used)
- asyncio.Lock guards every mutation, including the background sweep
- Lazy expiry on get(): an expired entry is never returned, even between sweeps
- evict_expired() is called periodically by the orchestrator's sweeper

Author: System Architect
Date: 2025-12-09
"""

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from adfatigue.core.config.settings import get_settings
from adfatigue.core.exceptions import SerializationError
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.infrastructure.cache import serialization
from adfatigue.infrastructure.monitoring.metrics_collector import get_metrics_collector
from adfatigue.models.cache import CacheEntry, utc_now

logger = get_logger(__name__)

HEALTHY_USAGE_RATIO = 0.9


class MemoryTier:
    """
    In-memory LRU cache storage.

    Eviction Policy:
    - While current_size + new_size > max_bytes OR entries >= max_entries,
      the least recently used entry is removed
    - get() moves a hit to the end, so recency reflects access

    Usage:
        tier = MemoryTier(max_bytes=10 * 1024 * 1024, max_entries=500)
        await tier.set("insights:123:2025-12-01_2025-12-07", payload, ttl_hours=1)
        data = await tier.get("insights:123:2025-12-01_2025-12-07")
    """

    def __init__(
        self,
        max_bytes: int | None = None,
        max_entries: int | None = None,
        default_ttl_hours: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize memory tier.

        Args:
            max_bytes: Byte budget (default CACHE_MEMORY_MAX_BYTES)
            max_entries: Entry budget (default CACHE_MEMORY_MAX_ENTRIES)
            default_ttl_hours: TTL used when set() gets none
            clock: Returns the current UTC time (injectable for tests)
        """
        settings = get_settings()
        self._max_bytes = max_bytes or settings.cache.CACHE_MEMORY_MAX_BYTES
        self._max_entries = max_entries or settings.cache.CACHE_MEMORY_MAX_ENTRIES
        self._default_ttl_hours = default_ttl_hours or settings.cache.CACHE_DEFAULT_TTL_HOURS
        self._clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._size_bytes = 0
        self._lock = asyncio.Lock()
        self._metrics = get_metrics_collector()

        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Any | None:
        """
        Get value from cache. Returns None if missing or expired.

        Args:
            key: Cache key

        Returns:
            Cached data or None
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                self._remove(key)
                self._misses += 1
                self._metrics.record_eviction("expired")
                log_stage(logger, "CACHE.1", "Memory entry expired on read", level="debug", cache_key=key)
                return None

            self._entries.move_to_end(key)
            entry.access_count += 1
            self._hits += 1
            return entry.data

    async def set(self, key: str, data: Any, ttl_hours: float | None = None) -> None:
        """
        Insert or replace an entry, evicting LRU entries to make room.

        Args:
            key: Cache key
            data: JSON-serializable payload
            ttl_hours: Time-to-live (default from settings)

        Raises:
            SerializationError: If the payload cannot be encoded or is
                larger than the whole byte budget
        """
        ttl_hours = ttl_hours or self._default_ttl_hours
        size_bytes = len(serialization.dumps(data))

        if size_bytes > self._max_bytes:
            raise SerializationError(
                "Payload exceeds memory tier byte budget",
                details={"cache_key": key, "size_bytes": size_bytes, "max_bytes": self._max_bytes},
            )

        now = self._clock()
        entry = CacheEntry(
            data=data,
            created_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
            size_bytes=size_bytes,
        )

        async with self._lock:
            if key in self._entries:
                self._remove(key)

            evicted = 0
            while self._entries and (
                self._size_bytes + size_bytes > self._max_bytes
                or len(self._entries) >= self._max_entries
            ):
                _, oldest = self._entries.popitem(last=False)
                self._size_bytes -= oldest.size_bytes
                evicted += 1

            self._entries[key] = entry
            self._size_bytes += size_bytes

        if evicted:
            self._metrics.record_eviction("lru", evicted)
            log_stage(logger, "CACHE.1", "LRU eviction", level="debug", evicted=evicted)
        self._metrics.set_memory_usage(len(self._entries), self._size_bytes)

    async def delete(self, key: str) -> bool:
        """
        Delete value from cache.

        Returns:
            True if deleted, False if not found
        """
        async with self._lock:
            if key in self._entries:
                self._remove(key)
                return True
            return False

    async def clear(self) -> None:
        """Clear all entries and counters."""
        async with self._lock:
            self._entries.clear()
            self._size_bytes = 0
            self._hits = 0
            self._misses = 0
        self._metrics.set_memory_usage(0, 0)

    async def evict_expired(self) -> int:
        """
        Remove every expired entry.

        STAGE-CACHE.SWEEP: Periodic expiry sweep

        Returns:
            Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._remove(key)

        if expired:
            self._metrics.record_eviction("expired", len(expired))
            log_stage(logger, "CACHE.SWEEP", "Expired entries evicted", evicted=len(expired))
        self._metrics.set_memory_usage(len(self._entries), self._size_bytes)
        return len(expired)

    def _remove(self, key: str) -> None:
        # caller holds the lock
        entry = self._entries.pop(key)
        self._size_bytes -= entry.size_bytes

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """
        Get memory tier statistics.

        Returns:
            Dict with entries, size_bytes, oldest/newest creation time,
            hits, misses and hit_rate
        """
        created = [entry.created_at for entry in self._entries.values()]
        total = self._hits + self._misses

        return {
            "entries": len(self._entries),
            "size_bytes": self._size_bytes,
            "max_bytes": self._max_bytes,
            "max_entries": self._max_entries,
            "oldest": min(created) if created else None,
            "newest": max(created) if created else None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }

    def health(self) -> dict[str, Any]:
        """Healthy while usage stays under 90% of the byte budget."""
        usage = self._size_bytes / self._max_bytes
        return {
            "status": "healthy" if usage < HEALTHY_USAGE_RATIO else "degraded",
            "usage_pct": round(usage * 100, 2),
            "entries": len(self._entries),
        }

    def keys(self) -> list[str]:
        """
        Get all cache keys.

        Returns:
            List of keys in LRU order (least recent first)
        """
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def size_bytes(self) -> int:
        return self._size_bytes
