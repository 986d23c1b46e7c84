"""
Models Package

Pydantic models for cache entries, freshness records, metrics payloads and
fatigue scores.

ORGANIZATION:
-------------
- cache.py: Cache entries, freshness, resolve options/results, stats
- date_range.py: Canonical date ranges and cache key construction
- metrics.py: Ad metrics, payloads and baselines
- fatigue.py: Fatigue scores, trends and assessments
"""

from adfatigue.models.cache import (
    CacheChangeEvent,
    CacheEntry,
    CacheStats,
    FreshnessRecord,
    FreshnessTransition,
    ResolveOptions,
    ResolveResult,
)
from adfatigue.models.date_range import DatePreset, DateRange, build_cache_key, normalize_account_id
from adfatigue.models.fatigue import (
    FatigueAssessment,
    FatigueDetails,
    FatigueScore,
    FatigueSubScores,
    TrendAnalysis,
)
from adfatigue.models.metrics import AdMetrics, BaselineMetrics, MetricsPayload, MetricsPoint

__all__ = [
    # Cache
    "CacheChangeEvent",
    "CacheEntry",
    "CacheStats",
    "FreshnessRecord",
    "FreshnessTransition",
    "ResolveOptions",
    "ResolveResult",
    # Date ranges
    "DatePreset",
    "DateRange",
    "build_cache_key",
    "normalize_account_id",
    # Metrics
    "AdMetrics",
    "BaselineMetrics",
    "MetricsPayload",
    "MetricsPoint",
    # Fatigue
    "FatigueAssessment",
    "FatigueDetails",
    "FatigueScore",
    "FatigueSubScores",
    "TrendAnalysis",
]
