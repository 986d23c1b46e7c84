"""
Unit Tests for Configuration Settings

Tests settings defaults, environment overrides and validation.
"""

import pydantic
import pytest

from adfatigue.core.config.settings import (
    CacheSettings,
    LoggingSettings,
    OriginSettings,
    Settings,
    get_settings,
    reset_settings,
)


@pytest.mark.unit
class TestSettingsDefaults:
    """Test that settings ship with the documented defaults."""

    def test_cache_defaults(self):
        """Memory tier is bounded at 50 MiB / 1000 entries with a 24h TTL."""
        settings = Settings()

        assert settings.cache.CACHE_MEMORY_MAX_BYTES == 50 * 1024 * 1024
        assert settings.cache.CACHE_MEMORY_MAX_ENTRIES == 1000
        assert settings.cache.CACHE_DEFAULT_TTL_HOURS == 24
        assert settings.cache.CACHE_AUTO_EXTEND_THRESHOLD_HOURS == 1
        assert settings.cache.CACHE_AUTO_EXTEND_HOURS == 24
        assert settings.cache.CACHE_MIN_COMPLETENESS == 80

    def test_freshness_windows(self):
        """Freshness windows are 5 / 30 / 120 minutes."""
        settings = Settings()

        assert settings.freshness.FRESHNESS_REALTIME_MINUTES == 5
        assert settings.freshness.FRESHNESS_NEARTIME_MINUTES == 30
        assert settings.freshness.FRESHNESS_STABILIZING_MINUTES == 120

    def test_fatigue_defaults(self):
        """Default weights sum to 1.0 and danger frequency is 3.5."""
        settings = Settings()
        fatigue = settings.fatigue

        assert fatigue.FATIGUE_FREQUENCY_DANGER_LEVEL == 3.5
        total = (
            fatigue.FATIGUE_WEIGHT_CREATIVE
            + fatigue.FATIGUE_WEIGHT_AUDIENCE
            + fatigue.FATIGUE_WEIGHT_ALGORITHM
        )
        assert total == pytest.approx(1.0)

    def test_both_tiers_enabled_by_default(self):
        settings = Settings()

        assert settings.ENABLE_MEMORY_CACHE is True
        assert settings.ENABLE_PERSISTENT_CACHE is True

    def test_environment_comes_from_env(self):
        """The autouse fixture pins ENVIRONMENT=test."""
        assert Settings().app.ENVIRONMENT == "test"


@pytest.mark.unit
class TestSettingsLoading:
    """Test settings loading from environment variables."""

    def test_settings_load_from_env_vars(self, monkeypatch):
        """Test that settings can be overridden from environment variables."""
        monkeypatch.setenv("CACHE_MEMORY_MAX_ENTRIES", "25")
        monkeypatch.setenv("REDIS_HOST", "redis.internal")
        monkeypatch.setenv("FATIGUE_FREQUENCY_DANGER_LEVEL", "4.5")
        monkeypatch.setenv("ENABLE_MEMORY_CACHE", "false")

        settings = Settings()

        assert settings.cache.CACHE_MEMORY_MAX_ENTRIES == 25
        assert settings.redis.REDIS_HOST == "redis.internal"
        assert settings.fatigue.FATIGUE_FREQUENCY_DANGER_LEVEL == 4.5
        assert settings.ENABLE_MEMORY_CACHE is False

    def test_non_numeric_env_value_is_rejected(self, monkeypatch):
        """Pydantic fails fast on values that cannot be parsed."""
        monkeypatch.setenv("CACHE_MEMORY_MAX_BYTES", "lots")

        with pytest.raises(pydantic.ValidationError):
            Settings()


@pytest.mark.unit
class TestSettingsValidation:
    """Test settings validation and edge cases."""

    def test_log_level_is_uppercased(self):
        assert LoggingSettings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_unknown_log_level_is_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            LoggingSettings(LOG_LEVEL="verbose")

    def test_memory_bounds_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            CacheSettings(CACHE_MEMORY_MAX_ENTRIES=0)

    def test_min_completeness_is_a_percentage(self):
        with pytest.raises(pydantic.ValidationError):
            CacheSettings(CACHE_MIN_COMPLETENESS=120)

    def test_retry_ceiling_below_base_delay_is_rejected(self):
        """ORIGIN_RETRY_MAX_DELAY must be >= ORIGIN_RETRY_BASE_DELAY."""
        with pytest.raises(pydantic.ValidationError):
            Settings(origin=OriginSettings(ORIGIN_RETRY_BASE_DELAY=5, ORIGIN_RETRY_MAX_DELAY=1))


@pytest.mark.unit
class TestGetSettingsFunction:
    """Test the get_settings() singleton."""

    def test_get_settings_returns_settings_instance(self):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_settings_rereads_environment(self, monkeypatch):
        """A new instance picks up environment changes made after the first load."""
        first = get_settings()
        monkeypatch.setenv("CACHE_KEY_PREFIX", "reloaded")

        second = reset_settings()

        assert second is not first
        assert second.cache.CACHE_KEY_PREFIX == "reloaded"
        assert get_settings() is second
