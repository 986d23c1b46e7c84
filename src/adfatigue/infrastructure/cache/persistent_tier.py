#!/usr/bin/env python3
"""
Persistent Tier - Durable Cache with Freshness Tracking

STAGE-CACHE.2: Persistent tier

Stores cache entries and one freshness record per key in a key/value
backend (Redis in production). Survives process restarts.

Storage Layout:
    adfatigue:entry:<key>      JSON CacheEntry, Redis TTL = expiry + grace
    adfatigue:freshness:<key>  JSON FreshnessRecord, no TTL
    adfatigue:index            hash of every cached key

Staleness:
    An entry is stale when ANY of these hold:
    - now > entry.expires_at
    - now > freshness.next_update_at
    - freshness.data_completeness < CACHE_MIN_COMPLETENESS
    Stale entries are still readable so the orchestrator can serve them
    while revalidating.

Freshness state machine:
    realtime -> neartime -> stabilizing -> finalized
    Status only advances as data ages; a refresh resets it to realtime.

Change notifications:
    subscribe(callback) registers sync or async callbacks receiving a
    CacheChangeEvent for every create/update/remove/extend/clear. Events
    are also published on a Redis channel.

Author: System Architect
Date: 2025-12-10
"""

import asyncio
import inspect
import math
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from adfatigue.core.config.constants import (
    FRESHNESS_MAX_TRANSITIONS,
    FRESHNESS_ORDER,
    FRESHNESS_REFRESH_INTERVAL_HOURS,
    FRESHNESS_TRANSITION_REASONS,
    FRESHNESS_UPDATE_PRIORITY,
    REDIS_CHANNEL_CACHE_EVENTS,
    REDIS_KEY_CACHE_ENTRY,
    REDIS_KEY_FRESHNESS,
    REDIS_KEY_INDEX,
    CacheChangeKind,
    FreshnessStatus,
)
from adfatigue.core.config.settings import Settings, get_settings
from adfatigue.core.exceptions import (
    CacheError,
    CacheKeyError,
    PersistentWriteError,
    ValidationError,
)
from adfatigue.core.interfaces import KeyValueBackend
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.infrastructure.cache import serialization
from adfatigue.models.cache import (
    CacheChangeEvent,
    CacheEntry,
    FreshnessRecord,
    FreshnessTransition,
    utc_now,
)

logger = get_logger(__name__)

ChangeCallback = Callable[[CacheChangeEvent], Any]


def evaluate_freshness_status(age: timedelta, settings: Settings | None = None) -> FreshnessStatus:
    """
    Classify data by age since its last update.

    Windows are cumulative: with the default 5/30/120 minute windows,
    data is realtime for 5 minutes, neartime until 35, stabilizing until
    155 and finalized afterwards.
    """
    freshness = (settings or get_settings()).freshness
    minutes = age.total_seconds() / 60

    boundary = freshness.FRESHNESS_REALTIME_MINUTES
    if minutes < boundary:
        return FreshnessStatus.REALTIME
    boundary += freshness.FRESHNESS_NEARTIME_MINUTES
    if minutes < boundary:
        return FreshnessStatus.NEARTIME
    boundary += freshness.FRESHNESS_STABILIZING_MINUTES
    if minutes < boundary:
        return FreshnessStatus.STABILIZING
    return FreshnessStatus.FINALIZED


def extract_completeness(data: Any) -> float:
    """Read data_completeness from a metrics payload; anything else counts as complete."""
    if isinstance(data, dict):
        value = data.get("data_completeness")
        if isinstance(value, (int, float)):
            return max(0.0, min(100.0, float(value)))
    return 100.0


def extract_record_count(data: Any) -> int:
    if isinstance(data, dict) and isinstance(data.get("points"), list):
        return len(data["points"])
    if isinstance(data, list):
        return len(data)
    return 1


class PersistentTier:
    """
    Durable cache tier over a KeyValueBackend.

    All read-modify-write sequences run under one asyncio.Lock.

    Usage:
        tier = PersistentTier(await init_redis())
        await tier.create(key, payload, ttl_hours=24)
        entry = await tier.get_by_key(key)
        freshness = await tier.get_freshness(key)
        if tier.is_stale(entry, freshness):
            ...
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._backend = backend
        self._settings = settings or get_settings()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._subscribers: list[ChangeCallback] = []

    # -------------------------------------------------------------------------
    # Storage keys
    # -------------------------------------------------------------------------

    @staticmethod
    def _entry_key(key: str) -> str:
        return f"{REDIS_KEY_CACHE_ENTRY}:{key}"

    @staticmethod
    def _freshness_key(key: str) -> str:
        return f"{REDIS_KEY_FRESHNESS}:{key}"

    def _backend_ttl(self, entry: CacheEntry) -> int:
        grace = self._settings.cache.CACHE_STALE_GRACE_HOURS * 3600
        remaining = entry.remaining_seconds(self._clock()) + grace
        return max(1, math.ceil(remaining))

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    async def get_by_key(self, key: str) -> CacheEntry | None:
        """
        Read an entry, counting the access.

        Expired entries are returned too; callers decide with is_stale().

        Returns:
            CacheEntry or None if the key was never cached (or fully expired
            from the backend)
        """
        async with self._lock:
            entry = await self._load_entry(key)
            if entry is None:
                return None
            entry.access_count += 1
            await self._store_entry(key, entry)
            return entry

    async def create(
        self,
        key: str,
        data: Any,
        ttl_hours: float | None = None,
        data_completeness: float | None = None,
    ) -> CacheEntry:
        """
        Store a new entry and start (or restart) its freshness record.

        Raises:
            PersistentWriteError: If the backend rejects the write
        """
        async with self._lock:
            entry = self._build_entry(data, ttl_hours)
            await self._write(key, entry, data, data_completeness)

        log_stage(logger, "CACHE.4", "Persistent entry created", cache_key=key, size_bytes=entry.size_bytes)
        await self._notify(key, CacheChangeKind.CREATED)
        return entry

    async def update(
        self,
        key: str,
        data: Any,
        ttl_hours: float | None = None,
        data_completeness: float | None = None,
    ) -> CacheEntry:
        """
        Replace the data of an existing entry and reset freshness to realtime.

        created_at and access_count are kept.

        Raises:
            CacheKeyError: If the key is not cached
            PersistentWriteError: If the backend rejects the write
        """
        async with self._lock:
            existing = await self._load_entry(key)
            if existing is None:
                raise CacheKeyError(f"No persistent entry for {key}", details={"cache_key": key})

            entry = self._build_entry(data, ttl_hours)
            entry.created_at = min(existing.created_at, entry.created_at)
            entry.access_count = existing.access_count
            await self._write(key, entry, data, data_completeness)

        log_stage(logger, "CACHE.4", "Persistent entry updated", cache_key=key, size_bytes=entry.size_bytes)
        await self._notify(key, CacheChangeKind.UPDATED)
        return entry

    async def put(
        self,
        key: str,
        data: Any,
        ttl_hours: float | None = None,
        data_completeness: float | None = None,
    ) -> CacheEntry:
        """Create or update, whichever applies."""
        try:
            return await self.update(key, data, ttl_hours, data_completeness)
        except CacheKeyError:
            return await self.create(key, data, ttl_hours, data_completeness)

    async def remove(self, key: str) -> bool:
        """
        Delete an entry. The freshness record is kept; only clear() drops it.

        Returns:
            True if an entry was deleted
        """
        async with self._lock:
            try:
                deleted = await self._backend.delete(self._entry_key(key))
                await self._backend.hdel(REDIS_KEY_INDEX, key)
            except CacheError as e:
                raise PersistentWriteError.from_exception(e, cache_key=key)

        if deleted:
            await self._notify(key, CacheChangeKind.REMOVED)
        return bool(deleted)

    async def extend_expiry(self, key: str, additional_hours: float) -> CacheEntry | None:
        """
        Push expires_at back by additional_hours.

        Returns:
            Updated entry, or None if the key is not cached
        """
        async with self._lock:
            entry = await self._load_entry(key)
            if entry is None:
                return None
            entry.expires_at = entry.expires_at + timedelta(hours=additional_hours)
            await self._store_entry(key, entry)

        log_stage(
            logger, "CACHE.2", "Persistent expiry extended",
            cache_key=key, expires_at=entry.expires_at.isoformat(),
        )
        await self._notify(key, CacheChangeKind.EXTENDED)
        return entry

    # -------------------------------------------------------------------------
    # Staleness
    # -------------------------------------------------------------------------

    def is_stale(self, entry: CacheEntry, freshness: FreshnessRecord | None) -> bool:
        """
        True when the entry is expired, overdue for refresh, or incomplete.

        An entry without a freshness record cannot be vouched for and is
        treated as stale.
        """
        now = self._clock()
        if entry.is_expired(now):
            return True
        if freshness is None:
            return True
        if now > freshness.next_update_at:
            return True
        return freshness.data_completeness < self._settings.cache.CACHE_MIN_COMPLETENESS

    async def maybe_auto_extend(
        self, key: str, entry: CacheEntry, freshness: FreshnessRecord | None
    ) -> CacheEntry:
        """
        Extend a fresh entry whose remaining TTL dropped under the threshold.

        Returns:
            The (possibly extended) entry
        """
        cache_settings = self._settings.cache
        if self.is_stale(entry, freshness):
            return entry

        threshold = cache_settings.CACHE_AUTO_EXTEND_THRESHOLD_HOURS * 3600
        if entry.remaining_seconds(self._clock()) >= threshold:
            return entry

        extended = await self.extend_expiry(key, cache_settings.CACHE_AUTO_EXTEND_HOURS)
        return extended or entry

    # -------------------------------------------------------------------------
    # Freshness
    # -------------------------------------------------------------------------

    async def get_freshness(self, key: str) -> FreshnessRecord | None:
        raw = await self._backend.get(self._freshness_key(key))
        if raw is None:
            return None
        return FreshnessRecord.model_validate(serialization.loads(raw))

    def evaluate_status(self, last_updated: datetime) -> FreshnessStatus:
        """Status that data last updated at last_updated has aged into."""
        return evaluate_freshness_status(self._clock() - last_updated, self._settings)

    async def advance_freshness(self, key: str) -> FreshnessRecord | None:
        """
        Move a record forward to the status its age calls for.

        Never moves backward. next_update_at and update_priority follow the
        new status.

        Returns:
            The record (changed or not), or None if the key has no record
        """
        async with self._lock:
            record = await self.get_freshness(key)
            if record is None:
                return None

            target = self.evaluate_status(record.last_updated)
            if target.rank <= record.status.rank:
                return record

            previous = record.status
            self._transition(record, target)
            await self._store_freshness(record)

        log_stage(
            logger, "CACHE.2", "Freshness advanced",
            cache_key=key, from_status=previous.value, to_status=target.value,
        )
        return record

    async def update_freshness(
        self, key: str, status: FreshnessStatus, data_completeness: float | None = None
    ) -> FreshnessRecord | None:
        """
        Set a record's status explicitly.

        Only forward moves and resets to realtime are accepted.

        Raises:
            ValidationError: On a backward move to anything but realtime
        """
        status = FreshnessStatus(status)
        async with self._lock:
            record = await self.get_freshness(key)
            if record is None:
                return None

            if status.rank < record.status.rank and status != FreshnessStatus.REALTIME:
                raise ValidationError(
                    f"Freshness cannot move from {record.status.value} back to {status.value}",
                    details={"cache_key": key},
                )

            if status != record.status:
                self._transition(record, status)
                if status == FreshnessStatus.REALTIME:
                    record.last_updated = self._clock()
            if data_completeness is not None:
                record.data_completeness = max(0.0, min(100.0, data_completeness))
            await self._store_freshness(record)
            return record

    async def increment_api_calls(self, key: str) -> FreshnessRecord | None:
        """Count one origin call for key (total and per UTC day)."""
        async with self._lock:
            record = await self.get_freshness(key)
            if record is None:
                return None

            now = self._clock()
            if record.last_api_call_at is None or record.last_api_call_at.date() != now.date():
                record.api_calls_today = 0
            record.api_call_count += 1
            record.api_calls_today += 1
            record.last_api_call_at = now
            await self._store_freshness(record)
            return record

    async def get_entries_needing_update(self, limit: int = 50) -> list[FreshnessRecord]:
        """
        Records whose next_update_at has passed, highest priority first.

        Args:
            limit: Maximum number of records returned
        """
        now = self._clock()
        due = []
        for key in await self.keys():
            record = await self.get_freshness(key)
            if record is not None and record.next_update_at <= now:
                due.append(record)

        due.sort(key=lambda r: (-r.update_priority, r.next_update_at))
        return due[:limit]

    def _transition(self, record: FreshnessRecord, target: FreshnessStatus) -> None:
        now = self._clock()
        reason = FRESHNESS_TRANSITION_REASONS.get(
            (record.status.value, target.value), "status change"
        )
        record.transitions.append(
            FreshnessTransition(from_status=record.status, to_status=target, at=now, reason=reason)
        )
        del record.transitions[:-FRESHNESS_MAX_TRANSITIONS]
        record.status = target
        record.update_priority = FRESHNESS_UPDATE_PRIORITY[target]
        record.next_update_at = now + timedelta(hours=FRESHNESS_REFRESH_INTERVAL_HOURS[target])

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    async def keys(self) -> list[str]:
        index = await self._backend.hgetall(REDIS_KEY_INDEX)
        return sorted(index)

    async def get_stats(self) -> dict[str, Any]:
        """
        Entry count, total bytes, oldest/newest creation time and
        freshness status counts.
        """
        total_bytes = 0
        created = []
        by_status = {status.value: 0 for status in FRESHNESS_ORDER}

        for key in await self.keys():
            entry = await self._load_entry(key)
            if entry is not None:
                total_bytes += entry.size_bytes
                created.append(entry.created_at)
            record = await self.get_freshness(key)
            if record is not None:
                by_status[record.status.value] += 1

        return {
            "entries": len(created),
            "size_bytes": total_bytes,
            "oldest": min(created) if created else None,
            "newest": max(created) if created else None,
            "by_status": by_status,
        }

    async def clear(self) -> int:
        """
        Delete every entry AND its freshness record.

        Returns:
            Number of keys cleared
        """
        async with self._lock:
            keys = await self.keys()
            storage_keys = [self._entry_key(k) for k in keys] + [self._freshness_key(k) for k in keys]
            try:
                if storage_keys:
                    await self._backend.delete(*storage_keys)
                await self._backend.delete(REDIS_KEY_INDEX)
            except CacheError as e:
                raise PersistentWriteError.from_exception(e)

        log_stage(logger, "CACHE.4", "Persistent tier cleared", cleared=len(keys))
        await self._notify(None, CacheChangeKind.CLEARED)
        return len(keys)

    async def ping(self) -> bool:
        return await self._backend.ping()

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def subscribe(self, callback: ChangeCallback) -> ChangeCallback:
        """
        Register a sync or async callback for change events.

        Returns:
            The callback, so it can be used as a decorator
        """
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: ChangeCallback) -> bool:
        try:
            self._subscribers.remove(callback)
            return True
        except ValueError:
            return False

    async def _notify(self, key: str | None, kind: CacheChangeKind) -> None:
        event = CacheChangeEvent(key=key, kind=kind, at=self._clock())

        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Cache change subscriber failed",
                    stage="CACHE.NOTIFY",
                    cache_key=key,
                    kind=kind.value,
                    error=str(e),
                )

        try:
            await self._backend.publish(REDIS_CHANNEL_CACHE_EVENTS, event.model_dump_json())
        except CacheError as e:
            logger.warning("Cache change publish failed", stage="CACHE.NOTIFY", error=str(e))

    # -------------------------------------------------------------------------
    # Internals (caller holds the lock)
    # -------------------------------------------------------------------------

    def _build_entry(self, data: Any, ttl_hours: float | None) -> CacheEntry:
        ttl_hours = ttl_hours or self._settings.cache.CACHE_DEFAULT_TTL_HOURS
        raw = serialization.dumps(data)
        now = self._clock()
        return CacheEntry(
            data=serialization.to_jsonable(data),
            created_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
            size_bytes=len(raw),
            checksum=serialization.checksum(raw),
            record_count=extract_record_count(serialization.to_jsonable(data)),
        )

    async def _write(
        self, key: str, entry: CacheEntry, data: Any, data_completeness: float | None
    ) -> None:
        if data_completeness is None:
            data_completeness = extract_completeness(serialization.to_jsonable(data))

        try:
            await self._store_entry(key, entry)
            await self._backend.hset(REDIS_KEY_INDEX, key, entry.created_at.isoformat())
            await self._refresh_freshness(key, data_completeness)
        except CacheError as e:
            logger.error("Persistent write failed", stage="CACHE.4", cache_key=key, error=str(e))
            raise PersistentWriteError.from_exception(e, cache_key=key)

    async def _refresh_freshness(self, key: str, data_completeness: float) -> None:
        now = self._clock()
        record = await self.get_freshness(key)

        if record is None:
            record = FreshnessRecord(
                key=key,
                status=FreshnessStatus.REALTIME,
                last_updated=now,
                next_update_at=now + timedelta(
                    hours=FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.REALTIME]
                ),
                data_completeness=data_completeness,
                update_priority=FRESHNESS_UPDATE_PRIORITY[FreshnessStatus.REALTIME],
            )
        else:
            if record.status != FreshnessStatus.REALTIME:
                self._transition(record, FreshnessStatus.REALTIME)
            record.next_update_at = now + timedelta(
                hours=FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.REALTIME]
            )
            record.last_updated = now
            record.data_completeness = data_completeness
            record.update_count += 1

        await self._store_freshness(record)

    async def _load_entry(self, key: str) -> CacheEntry | None:
        raw = await self._backend.get(self._entry_key(key))
        if raw is None:
            return None
        return CacheEntry.model_validate(serialization.loads(raw))

    async def _store_entry(self, key: str, entry: CacheEntry) -> None:
        await self._backend.set(
            self._entry_key(key),
            entry.model_dump_json(),
            ttl=self._backend_ttl(entry),
        )

    async def _store_freshness(self, record: FreshnessRecord) -> None:
        await self._backend.set(self._freshness_key(record.key), record.model_dump_json())
