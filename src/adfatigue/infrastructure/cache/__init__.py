"""
Cache Module

Multi-tier caching for ad platform insights.

Tiers:
- MemoryTier: In-process LRU bounded by bytes and entries
- PersistentTier: Redis-backed entries with freshness tracking
- Origin: The ad platform API, reached through the orchestrator only

Usage:
    from adfatigue.infrastructure.cache import get_cache_orchestrator

    orchestrator = get_cache_orchestrator()
    result = await orchestrator.resolve(key, fetcher)
"""

from adfatigue.infrastructure.cache.cache_orchestrator import (
    CacheOrchestrator,
    close_cache_orchestrator,
    get_cache_orchestrator,
    init_cache_orchestrator,
)
from adfatigue.infrastructure.cache.memory_tier import MemoryTier
from adfatigue.infrastructure.cache.persistent_tier import PersistentTier, evaluate_freshness_status
from adfatigue.infrastructure.cache.redis_client import RedisClient, get_redis_client
from adfatigue.infrastructure.cache.single_flight import SingleFlight

__all__ = [
    "CacheOrchestrator",
    "MemoryTier",
    "PersistentTier",
    "RedisClient",
    "SingleFlight",
    "close_cache_orchestrator",
    "evaluate_freshness_status",
    "get_cache_orchestrator",
    "get_redis_client",
    "init_cache_orchestrator",
]
