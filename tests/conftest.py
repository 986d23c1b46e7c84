"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

from datetime import datetime, timedelta, timezone

import pytest

from adfatigue.core.config.settings import (
    CacheSettings,
    OriginSettings,
    Settings,
    reset_settings,
)
from adfatigue.core.exceptions import CacheKeyError
from adfatigue.core.interfaces import KeyValueBackend
from tests.test_fixtures.fetcher_factory import CountingFetcher
from tests.test_fixtures.metrics_factory import MetricsFactory

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (see pyproject.toml)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Reload the settings singleton from a clean environment for every test."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    reset_settings()
    yield
    monkeypatch.undo()
    reset_settings()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Settings with zero retry backoff and a short origin timeout.

    Real tenacity and asyncio timing is used; only the delays are shrunk.
    """
    return Settings(
        cache=CacheSettings(CACHE_SWEEP_INTERVAL_SECONDS=0.01),
        origin=OriginSettings(
            ORIGIN_TIMEOUT_SECONDS=2,
            ORIGIN_RETRY_BASE_DELAY=0,
            ORIGIN_RETRY_MAX_DELAY=0,
            ORIGIN_MAX_RATE_LIMIT_WAIT_SECONDS=0.01,
        ),
    )


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 12, 9, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()


# ============================================================================
# In-Memory Backend (Redis stand-in)
# ============================================================================


class InMemoryBackend(KeyValueBackend):
    """
    In-memory KeyValueBackend for testing.

    TTLs are recorded in `ttls` but not enforced; staleness is decided by
    the persistent tier from the entry timestamps, not by key expiry.
    Set fail_reads / fail_writes to simulate an unhealthy Redis.
    """

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.published: list[tuple[str, str]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.reachable = True

    def _check_read(self):
        if self.fail_reads:
            raise CacheKeyError("Simulated read failure")

    def _check_write(self):
        if self.fail_writes:
            raise CacheKeyError("Simulated write failure")

    async def get(self, key):
        self._check_read()
        return self.data.get(key)

    async def set(self, key, value, ttl=None):
        self._check_write()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        self._check_write()
        deleted = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                deleted += 1
            if key in self.hashes:
                del self.hashes[key]
                deleted += 1
        return deleted

    async def expire(self, key, ttl):
        self._check_write()
        if key not in self.data:
            return False
        self.ttls[key] = ttl
        return True

    async def hset(self, name, key, value):
        self._check_write()
        fields = self.hashes.setdefault(name, {})
        created = key not in fields
        fields[key] = value
        return int(created)

    async def hgetall(self, name):
        self._check_read()
        return dict(self.hashes.get(name, {}))

    async def hdel(self, name, *keys):
        self._check_write()
        fields = self.hashes.get(name, {})
        return sum(1 for key in keys if fields.pop(key, None) is not None)

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 0

    async def ping(self):
        return self.reachable


@pytest.fixture
def in_memory_backend():
    return InMemoryBackend()


# ============================================================================
# Origin Fetcher / Sample Data Fixtures
# ============================================================================


@pytest.fixture
def counting_fetcher():
    """Origin fetcher that counts calls and returns {"key": ..., "call": n}."""
    return CountingFetcher()


@pytest.fixture
def metrics_factory():
    return MetricsFactory


@pytest.fixture
def sample_metrics():
    """A week of steadily fatiguing metrics (CTR falling, frequency and CPM rising)."""
    return MetricsFactory.payload(
        account_id="123",
        ctrs=[2.0, 2.0, 1.9, 1.8, 1.5, 1.2, 1.0],
        cpms=[10.0, 10.0, 10.5, 11.0, 12.0, 13.0, 14.0],
        frequencies=[1.2, 1.5, 1.9, 2.4, 3.0, 3.6, 4.0],
    )
