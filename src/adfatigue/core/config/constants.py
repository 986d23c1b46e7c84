"""
System-wide Constants and Enums

This module holds the immutable values shared by the cache tiers and the
scoring engine: type-safe enums for tier sources and freshness states,
Redis key prefixes, and the fixed breakpoints of the fatigue curves.

Anything an operator may want to tune lives in settings.py instead.

Author: System Architect
Date: 2025-12-05
"""

from enum import Enum


# =============================================================================
# Cache Enums
# =============================================================================


class CacheSource(str, Enum):
    """
    Tier that satisfied a resolve() call.

    MEMORY: In-process LRU (fastest, lost on restart)
    PERSISTENT: Durable tier (Redis), survives restarts
    ORIGIN: Ad platform API call
    NONE: Nothing could be served
    """

    MEMORY = "memory"
    PERSISTENT = "persistent"
    ORIGIN = "origin"
    NONE = "none"


class FreshnessStatus(str, Enum):
    """
    How settled the ad platform's numbers are for a cached range.

    Platform metrics keep changing for hours after delivery (late
    attribution, deduplication). Status only advances forward as data
    ages, unless an explicit refresh resets it to REALTIME.
    """

    REALTIME = "realtime"
    NEARTIME = "neartime"
    STABILIZING = "stabilizing"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return FRESHNESS_ORDER.index(self)


FRESHNESS_ORDER = (
    FreshnessStatus.REALTIME,
    FreshnessStatus.NEARTIME,
    FreshnessStatus.STABILIZING,
    FreshnessStatus.FINALIZED,
)


class CacheChangeKind(str, Enum):
    """Kinds of change published by the persistent tier."""

    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"
    EXTENDED = "extended"
    CLEARED = "cleared"


# =============================================================================
# Scoring Enums
# =============================================================================


class FatigueStatus(str, Enum):
    """Overall risk band for a fatigue score."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of fatigue over a time series."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


# =============================================================================
# Freshness Scheduling
# =============================================================================

# Hours until the next refresh is due, per status
FRESHNESS_REFRESH_INTERVAL_HOURS = {
    FreshnessStatus.REALTIME: 3,
    FreshnessStatus.NEARTIME: 6,
    FreshnessStatus.STABILIZING: 24,
    FreshnessStatus.FINALIZED: 7 * 24,
}

# Higher value = refresh first
FRESHNESS_UPDATE_PRIORITY = {
    FreshnessStatus.REALTIME: 100,
    FreshnessStatus.NEARTIME: 75,
    FreshnessStatus.STABILIZING: 50,
    FreshnessStatus.FINALIZED: 10,
}

FRESHNESS_TRANSITION_REASONS = {
    ("realtime", "neartime"): "realtime window elapsed",
    ("neartime", "stabilizing"): "data entering stabilization",
    ("stabilizing", "finalized"): "data finalized",
    ("finalized", "realtime"): "new data fetched",
    ("neartime", "realtime"): "manual refresh",
    ("stabilizing", "realtime"): "forced refresh",
}

FRESHNESS_MAX_TRANSITIONS = 10  # Transitions kept per key

# =============================================================================
# Fatigue Curve Breakpoints
# =============================================================================

# Creative (CTR decline %)
CREATIVE_MINOR_DECLINE = 10
CREATIVE_CURVE_PIVOT = 25  # offset of the 60-point band
CREATIVE_SEVERE_DECLINE = 50

# Audience (absolute frequency)
AUDIENCE_HEALTHY_FREQUENCY = 1
AUDIENCE_GOOD_FREQUENCY = 2
AUDIENCE_SATURATED_FREQUENCY = 5

# Algorithm (CPM increase %)
ALGORITHM_MINOR_INCREASE = 10
ALGORITHM_CURVE_PIVOT = 20  # offset of the 50-point band
ALGORITHM_SEVERE_INCREASE = 40

# Status bands (inclusive upper bounds)
STATUS_HEALTHY_MAX = 30
STATUS_WARNING_MAX = 60

# Recommendation thresholds
RECOMMEND_SUBSCORE_HIGH = 60
RECOMMEND_SUBSCORE_MEDIUM = 30
RECOMMEND_CTR_DECLINE_SEVERE = 40
RECOMMEND_FREQUENCY_CAP = 5
RECOMMEND_CPM_INCREASE_SEVERE = 30
RECOMMEND_URGENT_TOTAL = 70
RECOMMEND_PROMPT_TOTAL = 50

# Trend
TREND_CHANGE_THRESHOLD = 10
TREND_PROJECTION_DAYS = 7

# =============================================================================
# Redis Key Prefixes
# =============================================================================

REDIS_KEY_CACHE_ENTRY = "adfatigue:entry"
REDIS_KEY_FRESHNESS = "adfatigue:freshness"
REDIS_KEY_INDEX = "adfatigue:index"
REDIS_CHANNEL_CACHE_EVENTS = "adfatigue:events"

# =============================================================================
# HTTP Headers
# =============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_RETRY_AFTER = "Retry-After"
