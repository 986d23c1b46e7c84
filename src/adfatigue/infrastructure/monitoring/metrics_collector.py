#!/usr/bin/env python3
"""
Metrics Collector with Prometheus Integration

This module provides metrics collection for the cache and scoring service:
- Cache hits per tier and full misses
- Origin call outcomes and latency
- Single-flight coalescing
- Memory tier evictions, size and entry count
- Fatigue scores computed, by status

Per-orchestrator hit-rate statistics live on CacheStats; these metrics are
process-wide and only feed the /metrics endpoint.

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Histogram buckets for latency percentiles

Author: Senior Solution Architect
Date: 2025-12-05
"""


from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from adfatigue.core.config.settings import get_settings
from adfatigue.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

# Cache metrics
CACHE_HITS = Counter(
    'adfatigue_cache_hits_total',
    'Total cache hits',
    ['tier']  # memory or persistent
)

CACHE_MISSES = Counter(
    'adfatigue_cache_misses_total',
    'Total full cache misses (origin consulted)'
)

STALE_SERVED = Counter(
    'adfatigue_stale_served_total',
    'Stale entries served while revalidating',
    ['reason']  # stale, timeout, rate_limited
)

SINGLEFLIGHT_COALESCED = Counter(
    'adfatigue_singleflight_coalesced_total',
    'Resolves that joined an in-flight origin fetch'
)

# Memory tier metrics
MEMORY_EVICTIONS = Counter(
    'adfatigue_memory_evictions_total',
    'Memory tier evictions',
    ['reason']  # lru, expired
)

MEMORY_ENTRIES = Gauge(
    'adfatigue_memory_entries',
    'Entries currently held by the memory tier'
)

MEMORY_BYTES = Gauge(
    'adfatigue_memory_bytes',
    'Serialized bytes currently held by the memory tier'
)

# Origin metrics
ORIGIN_CALLS = Counter(
    'adfatigue_origin_calls_total',
    'Origin fetch attempts by outcome',
    ['outcome']  # success, rate_limited, auth_invalid, network, malformed, timeout
)

ORIGIN_LATENCY = Histogram(
    'adfatigue_origin_latency_seconds',
    'Origin fetch latency',
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
)

# Scoring metrics
FATIGUE_SCORES = Counter(
    'adfatigue_scores_total',
    'Fatigue scores computed',
    ['status']
)

# Error metrics
ERRORS = Counter(
    'adfatigue_errors_total',
    'Errors surfaced to API clients',
    ['error_type', 'component']
)

# App info
APP_INFO = Info(
    'adfatigue_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = get_metrics_collector()
        metrics.record_cache_hit("memory")
        metrics.record_origin_call("success", 0.42)
        output = metrics.get_prometheus_metrics()
    """

    def __init__(self):
        """Initialize metrics collector."""
        self.settings = get_settings()

        APP_INFO.info({
            'version': self.settings.app.APP_VERSION,
            'environment': self.settings.app.ENVIRONMENT,
            'app_name': self.settings.app.APP_NAME
        })

        logger.info("Metrics collector initialized", stage="M.0")

    # =========================================================================
    # Cache Metrics
    # =========================================================================

    def record_cache_hit(self, tier: str) -> None:
        """Record cache hit."""
        CACHE_HITS.labels(tier=tier).inc()

    def record_cache_miss(self) -> None:
        """Record a full miss."""
        CACHE_MISSES.inc()

    def record_stale_served(self, reason: str) -> None:
        """Record a stale-while-revalidate response."""
        STALE_SERVED.labels(reason=reason).inc()

    def record_coalesced(self) -> None:
        """Record a resolve that joined an in-flight fetch."""
        SINGLEFLIGHT_COALESCED.inc()

    # =========================================================================
    # Memory Tier Metrics
    # =========================================================================

    def record_eviction(self, reason: str, count: int = 1) -> None:
        """Record memory tier evictions."""
        if count > 0:
            MEMORY_EVICTIONS.labels(reason=reason).inc(count)

    def set_memory_usage(self, entries: int, size_bytes: int) -> None:
        """Set memory tier gauges."""
        MEMORY_ENTRIES.set(entries)
        MEMORY_BYTES.set(size_bytes)

    # =========================================================================
    # Origin Metrics
    # =========================================================================

    def record_origin_call(self, outcome: str, duration_seconds: float | None = None) -> None:
        """Record an origin fetch attempt."""
        ORIGIN_CALLS.labels(outcome=outcome).inc()
        if duration_seconds is not None:
            ORIGIN_LATENCY.observe(duration_seconds)

    # =========================================================================
    # Scoring Metrics
    # =========================================================================

    def record_score(self, status: str) -> None:
        """Record a computed fatigue score."""
        FATIGUE_SCORES.labels(status=status).inc()

    # =========================================================================
    # Error Metrics
    # =========================================================================

    def record_error(self, error_type: str, component: str) -> None:
        """Record an error returned to a client."""
        ERRORS.labels(error_type=error_type, component=component).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """
        Get Prometheus metrics output.

        Returns:
            bytes: Prometheus text format metrics
        """
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST


# Global metrics collector
_metrics: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
