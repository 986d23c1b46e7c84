#!/usr/bin/env python3
"""
Cache Orchestrator - Memory -> Persistent -> Origin

Architecture:
    CacheOrchestrator (Public API)
        ├── MemoryTier (in-process LRU)
        ├── PersistentTier (Redis, freshness tracking)
        ├── SingleFlight (one origin fetch per key at a time)
        └── Sweeper task (periodic memory expiry)

Resolve Flow:
    STAGE-CACHE.1: Memory lookup (skipped on force_refresh)
    STAGE-CACHE.2: Persistent lookup (skipped on force_refresh)
        - fresh hit: backfill memory, return
        - stale hit: return stale data, refresh in the background
    STAGE-CACHE.3: Origin fetch through the single-flight group
        - network errors retried with exponential backoff
        - timeout / rate limit: serve cached data when any exists
        - a background refresh that is rate limited holds off further
          refreshes of that key until the Retry-After hint has passed
    STAGE-CACHE.4: Write-back to both tiers (best effort)

One orchestrator is meant to live for the whole process; its CacheStats
belong to that instance only.

Author: System Architect
Date: 2025-12-10
"""

import asyncio
import inspect
import time
from collections.abc import Callable
from typing import Any

from adfatigue.core.config.constants import CacheSource
from adfatigue.core.config.settings import Settings, get_settings
from adfatigue.core.exceptions import (
    CacheConnectionError,
    CacheError,
    FatigueServiceError,
    OriginAuthInvalidError,
    OriginError,
    OriginMalformedError,
    OriginNetworkError,
    OriginRateLimitedError,
    OriginTimeoutError,
    SerializationError,
)
from adfatigue.core.interfaces import OriginFetcher
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.core.resilience.retry import create_retry_decorator
from adfatigue.infrastructure.cache import serialization
from adfatigue.infrastructure.cache.memory_tier import MemoryTier
from adfatigue.infrastructure.cache.persistent_tier import PersistentTier
from adfatigue.infrastructure.cache.single_flight import SingleFlight
from adfatigue.infrastructure.monitoring.metrics_collector import get_metrics_collector
from adfatigue.models.cache import CacheEntry, CacheStats, ResolveOptions, ResolveResult, utc_now

logger = get_logger(__name__)

_OUTCOMES = {
    OriginRateLimitedError: "rate_limited",
    OriginAuthInvalidError: "auth_invalid",
    OriginNetworkError: "network",
    OriginMalformedError: "malformed",
}


class CacheOrchestrator:
    """
    Resolves cache keys through memory, persistent storage and the origin.

    Usage:
        orchestrator = CacheOrchestrator(MemoryTier(), PersistentTier(redis))
        orchestrator.start()

        result = await orchestrator.resolve(key, fetch_insights)
        result.data, result.source, result.stats.hit_rate

        await orchestrator.stop()
    """

    def __init__(
        self,
        memory: MemoryTier | None = None,
        persistent: PersistentTier | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize orchestrator.

        STAGE-CACHE.0: Orchestrator initialization

        Args:
            memory: Memory tier (None disables it)
            persistent: Persistent tier (None disables it)
            settings: Settings override (tests)
        """
        self._settings = settings or get_settings()
        self._memory = memory
        self._persistent = persistent
        self._flights = SingleFlight()
        self._metrics = get_metrics_collector()
        self._stats = CacheStats()

        origin = self._settings.origin
        self._retry = create_retry_decorator(
            max_attempts=origin.ORIGIN_MAX_NETWORK_RETRIES,
            base_delay=origin.ORIGIN_RETRY_BASE_DELAY,
            max_delay=origin.ORIGIN_RETRY_MAX_DELAY,
        )

        self._background: set[asyncio.Task] = set()
        self._pending_retries: set[str] = set()
        # key -> monotonic time before which background refreshes are skipped
        self._refresh_not_before: dict[str, float] = {}
        self._sweeper: asyncio.Task | None = None

        logger.info(
            "Cache orchestrator initialized",
            stage="CACHE.0",
            memory_tier=memory is not None,
            persistent_tier=persistent is not None,
        )

    @property
    def memory(self) -> MemoryTier | None:
        return self._memory

    @property
    def persistent(self) -> PersistentTier | None:
        return self._persistent

    # -------------------------------------------------------------------------
    # Resolve
    # -------------------------------------------------------------------------

    async def resolve(
        self, key: str, fetcher: OriginFetcher, options: ResolveOptions | None = None
    ) -> ResolveResult:
        """
        Return data for key from the fastest tier that has it.

        Args:
            key: Cache key (see build_cache_key)
            fetcher: Async callable fetching the payload from the origin
            options: Per-call options

        Returns:
            ResolveResult with data, source, stale flag and a stats snapshot

        Raises:
            OriginAuthInvalidError: Token rejected (never retried)
            OriginNetworkError: Retries exhausted
            OriginRateLimitedError: Rate limited and nothing cached
            OriginTimeoutError: Timed out and nothing cached
            OriginMalformedError: Unparseable origin payload
        """
        options = options or ResolveOptions()
        self._stats.total_requests += 1

        if not options.force_refresh:
            if self._memory_enabled(options):
                data = await self._memory.get(key)
                if data is not None:
                    self._stats.memory_hits += 1
                    self._metrics.record_cache_hit(CacheSource.MEMORY.value)
                    log_stage(logger, "CACHE.1", "Memory tier hit", cache_key=key)
                    await self._invoke(options.on_cache_hit, key, CacheSource.MEMORY)
                    return self._result(data, CacheSource.MEMORY)

            if self._persistent_enabled(options):
                entry, stale = await self._read_persistent(key)
                if entry is not None and not stale:
                    self._stats.persistent_hits += 1
                    self._metrics.record_cache_hit(CacheSource.PERSISTENT.value)
                    log_stage(logger, "CACHE.2", "Persistent tier hit", cache_key=key)
                    if self._memory_enabled(options):
                        await self._write_memory(key, entry.data, options)
                    await self._invoke(options.on_cache_hit, key, CacheSource.PERSISTENT)
                    return self._result(entry.data, CacheSource.PERSISTENT)

                if entry is not None:
                    log_stage(logger, "CACHE.2", "Serving stale entry, revalidating", cache_key=key)
                    self._schedule_refresh(key, fetcher, options)
                    await self._invoke(options.on_cache_hit, key, CacheSource.PERSISTENT)
                    return self._stale_result(entry.data, "stale")

        self._metrics.record_cache_miss()
        await self._invoke(options.on_cache_miss, key)
        timeout = options.timeout_seconds or self._settings.origin.ORIGIN_TIMEOUT_SECONDS

        try:
            data = await self._fetch_shared(key, fetcher, options, timeout)
        except TimeoutError:
            fallback = await self._find_fallback(key, options)
            if fallback is not None:
                log_stage(logger, "CACHE.3", "Origin timed out, serving cached data", level="warning", cache_key=key)
                return self._stale_result(fallback, "timeout")

            self._stats.errors += 1
            self._metrics.record_origin_call("timeout")
            error = OriginTimeoutError(
                f"Origin fetch exceeded {timeout}s", details={"cache_key": key, "timeout_seconds": timeout}
            )
            await self._invoke(options.on_error, key, error)
            raise error
        except OriginRateLimitedError as e:
            fallback = await self._find_fallback(key, options)
            delay = min(e.retry_after_seconds, self._settings.origin.ORIGIN_MAX_RATE_LIMIT_WAIT_SECONDS)
            if fallback is not None:
                log_stage(
                    logger, "CACHE.3", "Origin rate limited, serving cached data",
                    level="warning", cache_key=key, retry_after_seconds=delay,
                )
                self._schedule_refresh(key, fetcher, options, delay=delay)
                return self._stale_result(fallback, "rate_limited")

            self._stats.errors += 1
            await self._invoke(options.on_error, key, e)
            raise
        except OriginError as e:
            self._stats.errors += 1
            log_stage(
                logger, "CACHE.3", "Origin fetch failed", level="error",
                cache_key=key, error_type=type(e).__name__, error=e.message,
            )
            await self._invoke(options.on_error, key, e)
            raise

        return self._result(data, CacheSource.ORIGIN)

    # -------------------------------------------------------------------------
    # Origin fetch
    # -------------------------------------------------------------------------

    async def _fetch_shared(
        self, key: str, fetcher: OriginFetcher, options: ResolveOptions, timeout: float
    ) -> Any:
        task, leader = self._flights.start_or_join(
            key, lambda: self._fetch_and_store(key, fetcher, options)
        )
        if not leader:
            self._stats.coalesced += 1
            self._metrics.record_coalesced()
            log_stage(logger, "CACHE.3", "Joined in-flight origin fetch", level="debug", cache_key=key)

        return await asyncio.wait_for(asyncio.shield(task), timeout)

    async def _fetch_and_store(self, key: str, fetcher: OriginFetcher, options: ResolveOptions) -> Any:
        fetch = self._retry(self._fetch_once)
        data = serialization.to_jsonable(await fetch(key, fetcher))
        self._refresh_not_before.pop(key, None)
        await self._write_back(key, data, options)
        return data

    async def _fetch_once(self, key: str, fetcher: OriginFetcher) -> Any:
        self._stats.api_calls += 1
        log_stage(logger, "CACHE.3", "Fetching from origin", cache_key=key)
        started = time.perf_counter()
        try:
            data = await fetcher(key)
        except OriginError as e:
            self._metrics.record_origin_call(_OUTCOMES.get(type(e), "error"), time.perf_counter() - started)
            raise
        self._metrics.record_origin_call("success", time.perf_counter() - started)
        return data

    def _schedule_refresh(
        self, key: str, fetcher: OriginFetcher, options: ResolveOptions, delay: float = 0.0
    ) -> None:
        if key in self._pending_retries:
            return
        not_before = self._refresh_not_before.get(key)
        if not_before is not None:
            if time.monotonic() < not_before:
                log_stage(
                    logger, "CACHE.3", "Refresh held off, origin rate limited",
                    level="debug", cache_key=key,
                )
                return
            del self._refresh_not_before[key]
        self._pending_retries.add(key)

        async def refresh():
            try:
                if delay > 0:
                    await asyncio.sleep(delay)
                await self._flights.do(key, lambda: self._fetch_and_store(key, fetcher, options))
                log_stage(logger, "CACHE.3", "Background refresh complete", cache_key=key)
            except OriginRateLimitedError as e:
                wait = min(e.retry_after_seconds, self._settings.origin.ORIGIN_MAX_RATE_LIMIT_WAIT_SECONDS)
                self._refresh_not_before[key] = time.monotonic() + wait
                logger.warning(
                    "Background refresh rate limited",
                    stage="CACHE.3",
                    cache_key=key,
                    retry_after_seconds=wait,
                )
            except FatigueServiceError as e:
                logger.warning(
                    "Background refresh failed",
                    stage="CACHE.3",
                    cache_key=key,
                    error_type=type(e).__name__,
                    error=e.message,
                )
            except Exception as e:
                logger.error(
                    "Background refresh crashed",
                    stage="CACHE.3",
                    cache_key=key,
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
            finally:
                self._pending_retries.discard(key)

        task = asyncio.create_task(refresh(), name=f"refresh:{key}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # -------------------------------------------------------------------------
    # Tier helpers
    # -------------------------------------------------------------------------

    def _memory_enabled(self, options: ResolveOptions) -> bool:
        return (
            self._memory is not None
            and self._settings.ENABLE_MEMORY_CACHE
            and options.enable_memory_cache
        )

    def _persistent_enabled(self, options: ResolveOptions) -> bool:
        return (
            self._persistent is not None
            and self._settings.ENABLE_PERSISTENT_CACHE
            and options.enable_persistent_cache
        )

    async def _read_persistent(self, key: str) -> tuple[CacheEntry | None, bool]:
        """Return (entry, stale); a backend failure reads as a miss."""
        try:
            entry = await self._persistent.get_by_key(key)
            if entry is None:
                return None, False
            freshness = await self._persistent.get_freshness(key)
            if self._persistent.is_stale(entry, freshness):
                return entry, True
            entry = await self._persistent.maybe_auto_extend(key, entry, freshness)
            return entry, False
        except CacheError as e:
            logger.warning("Persistent tier read failed", stage="CACHE.2", cache_key=key, error=str(e))
            return None, False

    async def _find_fallback(self, key: str, options: ResolveOptions) -> Any | None:
        if self._memory_enabled(options):
            data = await self._memory.get(key)
            if data is not None:
                return data
        if self._persistent_enabled(options):
            try:
                entry = await self._persistent.get_by_key(key)
            except CacheError:
                return None
            if entry is not None:
                return entry.data
        return None

    async def _write_memory(self, key: str, data: Any, options: ResolveOptions) -> None:
        try:
            await self._memory.set(key, data, options.ttl_hours)
        except SerializationError as e:
            logger.warning(
                "Memory tier write skipped",
                stage="CACHE.4",
                cache_key=key,
                error=e.message,
                size_bytes=e.details.get("size_bytes"),
            )

    async def _write_back(self, key: str, data: Any, options: ResolveOptions) -> None:
        """
        STAGE-CACHE.4: Write-back

        Best effort: failures are logged and never fail the resolve.
        """
        if self._memory_enabled(options):
            await self._write_memory(key, data, options)

        if self._persistent_enabled(options):
            try:
                await self._persistent.put(key, data, options.ttl_hours)
                await self._persistent.increment_api_calls(key)
            except CacheError as e:
                logger.warning("Persistent tier write failed", stage="CACHE.4", cache_key=key, error=str(e))

        log_stage(logger, "CACHE.4", "Write-back complete", cache_key=key)

    async def _invoke(self, callback: Callable | None, *args: Any) -> None:
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    def _result(self, data: Any, source: CacheSource) -> ResolveResult:
        self._stats.last_updated = utc_now()
        return ResolveResult(data=data, source=source, stats=self.get_stats())

    def _stale_result(self, data: Any, reason: str) -> ResolveResult:
        self._stats.stale_served += 1
        self._metrics.record_stale_served(reason)
        result = self._result(data, CacheSource.PERSISTENT)
        result.stale = True
        return result

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def warm(self, keys: list[str]) -> int:
        """
        Copy fresh persistent entries into the memory tier.

        Returns:
            Number of keys warmed
        """
        if self._memory is None or self._persistent is None:
            return 0

        warmed = 0
        for key in keys:
            entry, stale = await self._read_persistent(key)
            if entry is None or stale:
                continue
            try:
                await self._memory.set(key, entry.data)
                warmed += 1
            except SerializationError as e:
                logger.warning("Warm skipped oversized entry", stage="CACHE.WARM", cache_key=key, error=e.message)

        logger.info("Cache warmed", stage="CACHE.WARM", requested=len(keys), warmed=warmed)
        return warmed

    async def invalidate(self, key: str) -> bool:
        """Remove key from both tiers. Returns True if either tier held it."""
        removed = False
        if self._memory is not None:
            removed = await self._memory.delete(key) or removed
        if self._persistent is not None:
            removed = await self._persistent.remove(key) or removed
        log_stage(logger, "CACHE.4", "Cache invalidated", cache_key=key, removed=removed)
        return removed

    async def clear(self) -> None:
        """Wipe both tiers (freshness records included) and reset stats."""
        if self._memory is not None:
            await self._memory.clear()
        if self._persistent is not None:
            await self._persistent.clear()
        self._refresh_not_before.clear()
        self._stats = CacheStats()
        logger.info("Cache cleared", stage="CACHE.4")

    def get_stats(self) -> CacheStats:
        """Snapshot of this orchestrator's counters."""
        return self._stats.model_copy()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic memory expiry sweep (needs a running loop)."""
        if self._memory is None or self.sweeper_running:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="cache-sweeper")
        logger.info(
            "Cache sweeper started",
            stage="CACHE.SWEEP",
            interval_seconds=self._settings.cache.CACHE_SWEEP_INTERVAL_SECONDS,
        )

    async def stop(self) -> None:
        """Stop the sweeper and cancel background refreshes and fetches."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            await asyncio.gather(self._sweeper, return_exceptions=True)
            self._sweeper = None

        background = list(self._background)
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        await self._flights.cancel_all()
        logger.info("Cache orchestrator stopped", stage="CACHE.0")

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_loop(self) -> None:
        interval = self._settings.cache.CACHE_SWEEP_INTERVAL_SECONDS
        while True:
            await asyncio.sleep(interval)
            await self._memory.evict_expired()

    async def wait_background(self) -> None:
        """Wait until every scheduled background refresh has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def health_check(self) -> dict[str, Any]:
        """
        Report tier health, in-flight fetches and sweeper state.

        Returns:
            Dict with overall status ("healthy" or "degraded")
        """
        health: dict[str, Any] = {
            "status": "healthy",
            "memory": None,
            "persistent": None,
            "in_flight": self._flights.in_flight(),
            "background_refreshes": len(self._background),
            "sweeper_running": self.sweeper_running,
            "stats": self.get_stats().model_dump(mode="json"),
        }

        if self._memory is not None:
            health["memory"] = self._memory.health()
            if health["memory"]["status"] != "healthy":
                health["status"] = "degraded"

        if self._persistent is not None:
            try:
                reachable = await self._persistent.ping()
            except CacheError:
                reachable = False
            health["persistent"] = {"status": "healthy" if reachable else "unreachable"}
            if not reachable:
                health["status"] = "degraded"

        return health


# =============================================================================
# GLOBAL INSTANCE (SINGLETON PATTERN)
# =============================================================================

_orchestrator: CacheOrchestrator | None = None


def get_cache_orchestrator() -> CacheOrchestrator:
    """
    Get the global orchestrator (memory tier only until init_cache_orchestrator runs).

    Returns:
        CacheOrchestrator: Process-wide instance
    """
    global _orchestrator

    if _orchestrator is None:
        _orchestrator = CacheOrchestrator(memory=MemoryTier())

    return _orchestrator


async def init_cache_orchestrator() -> CacheOrchestrator:
    """
    Build the global orchestrator with both tiers and start its sweeper.

    If Redis cannot be reached the orchestrator runs memory-only.
    """
    global _orchestrator
    from adfatigue.infrastructure.cache.redis_client import init_redis

    settings = get_settings()
    memory = MemoryTier() if settings.ENABLE_MEMORY_CACHE else None
    persistent = None

    if settings.ENABLE_PERSISTENT_CACHE:
        try:
            persistent = PersistentTier(await init_redis())
        except CacheConnectionError as e:
            logger.warning("Persistent tier unavailable, running memory-only", stage="CACHE.0", error=e.message)

    _orchestrator = CacheOrchestrator(memory=memory, persistent=persistent)
    _orchestrator.start()
    return _orchestrator


async def close_cache_orchestrator() -> None:
    """Stop the global orchestrator and close Redis."""
    global _orchestrator
    from adfatigue.infrastructure.cache.redis_client import close_redis

    if _orchestrator:
        await _orchestrator.stop()
        _orchestrator = None
    await close_redis()
