"""
Unit Tests for Configuration Constants

Tests enum ordering and the freshness scheduling tables.
"""

import pytest

from adfatigue.core.config.constants import (
    FRESHNESS_ORDER,
    FRESHNESS_REFRESH_INTERVAL_HOURS,
    FRESHNESS_TRANSITION_REASONS,
    FRESHNESS_UPDATE_PRIORITY,
    REDIS_CHANNEL_CACHE_EVENTS,
    REDIS_KEY_CACHE_ENTRY,
    REDIS_KEY_FRESHNESS,
    REDIS_KEY_INDEX,
    CacheSource,
    FreshnessStatus,
)


@pytest.mark.unit
class TestFreshnessStatus:
    """Test freshness status ordering."""

    def test_rank_follows_lifecycle(self):
        """realtime < neartime < stabilizing < finalized."""
        ranks = [status.rank for status in FRESHNESS_ORDER]
        assert ranks == [0, 1, 2, 3]
        assert FreshnessStatus.FINALIZED.rank > FreshnessStatus.REALTIME.rank

    def test_statuses_are_strings(self):
        """str-enums serialize as their value."""
        assert FreshnessStatus.NEARTIME == "neartime"
        assert CacheSource.MEMORY == "memory"


@pytest.mark.unit
class TestFreshnessTables:
    """Test the per-status refresh interval and priority tables."""

    def test_every_status_has_interval_and_priority(self):
        for status in FreshnessStatus:
            assert status in FRESHNESS_REFRESH_INTERVAL_HOURS
            assert status in FRESHNESS_UPDATE_PRIORITY

    def test_refresh_intervals(self):
        assert FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.REALTIME] == 3
        assert FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.NEARTIME] == 6
        assert FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.STABILIZING] == 24
        assert FRESHNESS_REFRESH_INTERVAL_HOURS[FreshnessStatus.FINALIZED] == 168

    def test_priority_decreases_as_data_settles(self):
        priorities = [FRESHNESS_UPDATE_PRIORITY[status] for status in FRESHNESS_ORDER]
        assert priorities == [100, 75, 50, 10]

    def test_transition_reasons_are_keyed_by_values(self):
        assert FRESHNESS_TRANSITION_REASONS[("realtime", "neartime")] == "realtime window elapsed"
        assert FRESHNESS_TRANSITION_REASONS[("finalized", "realtime")] == "new data fetched"


@pytest.mark.unit
class TestRedisKeys:
    """Test Redis key prefixes."""

    def test_prefixes_share_namespace(self):
        for prefix in (REDIS_KEY_CACHE_ENTRY, REDIS_KEY_FRESHNESS, REDIS_KEY_INDEX, REDIS_CHANNEL_CACHE_EVENTS):
            assert prefix.startswith("adfatigue:")

    def test_prefixes_are_unique(self):
        prefixes = [REDIS_KEY_CACHE_ENTRY, REDIS_KEY_FRESHNESS, REDIS_KEY_INDEX, REDIS_CHANNEL_CACHE_EVENTS]
        assert len(set(prefixes)) == len(prefixes)
