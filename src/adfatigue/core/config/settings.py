#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
ad fatigue cache and scoring service. Every tunable of the cache tiers,
the origin fetch policy and the fatigue curves is declared here.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- IDE autocomplete for all settings
- Easy testing with reset_settings()

Author: System Architect
Date: 2025-12-05
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis configuration for the persistent cache tier.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class CacheSettings(BaseSettings):
    """
    Multi-tier cache configuration.

    STAGE-CACHE: Memory bounds, TTLs and expiry extension

    The memory tier is bounded both by bytes and by entry count; whichever
    bound is hit first triggers LRU eviction.
    """

    CACHE_MEMORY_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, gt=0, description="Memory tier byte budget (50 MiB)"
    )
    CACHE_MEMORY_MAX_ENTRIES: int = Field(default=1000, gt=0, description="Memory tier max entries")
    CACHE_DEFAULT_TTL_HOURS: float = Field(default=24, gt=0, description="Default entry TTL (hours)")
    CACHE_SWEEP_INTERVAL_SECONDS: float = Field(
        default=60, gt=0, description="Expired-entry sweep interval"
    )
    CACHE_AUTO_EXTEND_THRESHOLD_HOURS: float = Field(
        default=1, description="Extend persistent entries expiring sooner than this"
    )
    CACHE_AUTO_EXTEND_HOURS: float = Field(default=24, description="Hours added by auto-extension")
    CACHE_MIN_COMPLETENESS: float = Field(
        default=80, ge=0, le=100, description="Below this completeness an entry is stale"
    )
    CACHE_STALE_GRACE_HOURS: float = Field(
        default=24, ge=0, description="Keep the Redis copy this long past expiry for stale serving"
    )
    CACHE_KEY_PREFIX: str = Field(default="insights", description="Cache key namespace")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class FreshnessSettings(BaseSettings):
    """
    Freshness state machine windows.

    STAGE-FRESH: Age windows (minutes) for each status

    Windows are cumulative: realtime lasts FRESHNESS_REALTIME_MINUTES after
    the last update, neartime the following FRESHNESS_NEARTIME_MINUTES, and
    so on. Anything older is finalized.
    """

    FRESHNESS_REALTIME_MINUTES: float = Field(default=5, gt=0)
    FRESHNESS_NEARTIME_MINUTES: float = Field(default=30, gt=0)
    FRESHNESS_STABILIZING_MINUTES: float = Field(default=120, gt=0)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class OriginSettings(BaseSettings):
    """
    Origin (ad platform API) fetch policy.

    STAGE-ORIGIN: Timeouts and retries

    Architectural Decision: tenacity for network retries
    - Exponential backoff with jitter
    - Auth and malformed-payload errors are never retried
    """

    ORIGIN_TIMEOUT_SECONDS: float = Field(default=30, gt=0, description="Per-resolve origin timeout")
    ORIGIN_MAX_NETWORK_RETRIES: int = Field(default=3, ge=1, description="Attempts on network errors")
    ORIGIN_RETRY_BASE_DELAY: float = Field(default=0.5, ge=0, description="Initial backoff (seconds)")
    ORIGIN_RETRY_MAX_DELAY: float = Field(default=8.0, ge=0, description="Backoff ceiling (seconds)")
    ORIGIN_MAX_RATE_LIMIT_WAIT_SECONDS: float = Field(
        default=300, ge=0, description="Cap on honoured Retry-After hints"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class FatigueSettings(BaseSettings):
    """
    Fatigue scoring thresholds and weights.

    STAGE-SCORE: Scoring configuration
    """

    FATIGUE_CTR_DECLINE_THRESHOLD: float = Field(default=25, gt=0, description="CTR decline warning (%)")
    FATIGUE_FREQUENCY_DANGER_LEVEL: float = Field(default=3.5, gt=0, description="Frequency danger level")
    FATIGUE_CPM_INCREASE_THRESHOLD: float = Field(default=20, gt=0, description="CPM increase warning (%)")
    FATIGUE_WEIGHT_CREATIVE: float = Field(default=0.4, ge=0)
    FATIGUE_WEIGHT_AUDIENCE: float = Field(default=0.3, ge=0)
    FATIGUE_WEIGHT_ALGORITHM: float = Field(default=0.3, ge=0)
    FATIGUE_NORMALIZE_WEIGHTS: bool = Field(
        default=True, description="Rescale weights that do not sum to 1.0"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Ad Fatigue Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for every API route")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True, extra="ignore")


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from adfatigue.core.config.settings import get_settings

        settings = get_settings()
        max_bytes = settings.cache.CACHE_MEMORY_MAX_BYTES
        danger = settings.fatigue.FATIGUE_FREQUENCY_DANGER_LEVEL
    """

    ENABLE_MEMORY_CACHE: bool = Field(default=True, description="Use the in-process LRU tier")
    ENABLE_PERSISTENT_CACHE: bool = Field(default=True, description="Use the durable tier")

    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    freshness: FreshnessSettings = Field(default_factory=FreshnessSettings)
    origin: OriginSettings = Field(default_factory=OriginSettings)
    fatigue: FatigueSettings = Field(default_factory=FatigueSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    app: ApplicationSettings = Field(default_factory=ApplicationSettings)

    @model_validator(mode="after")
    def validate_retry_window(self):
        """Backoff ceiling must not be below the initial delay."""
        if self.origin.ORIGIN_RETRY_MAX_DELAY < self.origin.ORIGIN_RETRY_BASE_DELAY:
            raise ValueError("ORIGIN_RETRY_MAX_DELAY must be >= ORIGIN_RETRY_BASE_DELAY")
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reset_settings() -> Settings:
    """
    Reload settings from the environment (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
