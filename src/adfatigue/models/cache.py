"""
Cache Models

Data structures shared by the memory tier, the persistent tier and the
cache orchestrator.

This module defines:
- CacheEntry: A cached payload plus its bookkeeping
- FreshnessRecord / FreshnessTransition: Persistent freshness state per key
- ResolveOptions: Typed per-call options for CacheOrchestrator.resolve()
- CacheStats: Hit/miss counters owned by one orchestrator instance
- ResolveResult: What resolve() returns
- CacheChangeEvent: Notification pushed to persistent tier subscribers

Author: System Architect
Date: 2025-12-09
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from adfatigue.core.config.constants import CacheChangeKind, CacheSource, FreshnessStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENTRIES
# ============================================================================


class CacheEntry(BaseModel):
    """
    A cached payload.

    size_bytes is the serialized size at insertion time; the memory tier
    keeps its running total consistent with it.
    """

    data: Any
    created_at: datetime
    expires_at: datetime
    access_count: int = Field(default=0, ge=0)
    size_bytes: int = Field(default=0, ge=0)
    checksum: str | None = None
    record_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_expiry_after_creation(self):
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def remaining_seconds(self, now: datetime) -> float:
        return (self.expires_at - now).total_seconds()


# ============================================================================
# FRESHNESS
# ============================================================================


class FreshnessTransition(BaseModel):
    """One status change of a freshness record."""

    from_status: FreshnessStatus
    to_status: FreshnessStatus
    at: datetime
    reason: str


class FreshnessRecord(BaseModel):
    """
    How settled the cached data for a key is.

    Status only moves forward as data ages
    (realtime -> neartime -> stabilizing -> finalized); a refresh resets it
    to realtime.
    """

    key: str
    status: FreshnessStatus = FreshnessStatus.REALTIME
    last_updated: datetime
    next_update_at: datetime
    data_completeness: float = Field(default=100.0, ge=0, le=100)
    api_call_count: int = Field(default=0, ge=0)
    api_calls_today: int = Field(default=0, ge=0)
    last_api_call_at: datetime | None = None
    update_priority: int = 100
    update_count: int = Field(default=0, ge=0)
    transitions: list[FreshnessTransition] = Field(default_factory=list)


# ============================================================================
# ORCHESTRATOR OPTIONS / RESULTS
# ============================================================================


class ResolveOptions(BaseModel):
    """
    Per-call options for CacheOrchestrator.resolve().

    Attributes:
        force_refresh: Skip both tiers and go straight to the origin
        ttl_hours: Entry TTL for write-back (None = CACHE_DEFAULT_TTL_HOURS)
        enable_memory_cache: Read and write the memory tier
        enable_persistent_cache: Read and write the persistent tier
        timeout_seconds: Origin timeout (None = ORIGIN_TIMEOUT_SECONDS);
            on timeout stale data is served when present
        on_cache_hit: Called with (key, source) when a tier satisfies the call
        on_cache_miss: Called with (key) when the origin has to be asked
        on_error: Called with (key, exc) when the origin fails
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    force_refresh: bool = False
    ttl_hours: float | None = Field(default=None, gt=0)
    enable_memory_cache: bool = True
    enable_persistent_cache: bool = True
    timeout_seconds: float | None = Field(default=None, gt=0)
    on_cache_hit: Callable[[str, CacheSource], Any] | None = None
    on_cache_miss: Callable[[str], Any] | None = None
    on_error: Callable[[str, Exception], Any] | None = None


class CacheStats(BaseModel):
    """
    Hit/miss counters owned by one orchestrator.

    hit_rate = (memory_hits + persistent_hits) / total_requests
    """

    memory_hits: int = 0
    persistent_hits: int = 0
    api_calls: int = 0
    total_requests: int = 0
    stale_served: int = 0
    coalesced: int = 0
    errors: int = 0
    last_updated: datetime | None = None

    @computed_field
    @property
    def hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return (self.memory_hits + self.persistent_hits) / self.total_requests


class ResolveResult(BaseModel):
    """Outcome of one resolve() call."""

    data: Any
    source: CacheSource
    stale: bool = False
    stats: CacheStats


# ============================================================================
# CHANGE NOTIFICATIONS
# ============================================================================


class CacheChangeEvent(BaseModel):
    """
    Pushed to persistent tier subscribers on every change.

    key is None for CLEARED events.
    """

    key: str | None
    kind: CacheChangeKind
    at: datetime = Field(default_factory=utc_now)
