"""
Unit Tests for the Persistent Tier

Runs against the InMemoryBackend fixture with a fake clock, so TTLs,
staleness and freshness windows are checked deterministically.
"""

from datetime import timedelta

import orjson
import pytest

from adfatigue.core.config.constants import (
    REDIS_CHANNEL_CACHE_EVENTS,
    REDIS_KEY_INDEX,
    CacheChangeKind,
    FreshnessStatus,
)
from adfatigue.core.exceptions import CacheKeyError, PersistentWriteError, ValidationError
from adfatigue.infrastructure.cache.persistent_tier import (
    PersistentTier,
    evaluate_freshness_status,
)

KEY = "insights:123:2025-12-01_2025-12-07"


@pytest.fixture
def tier(in_memory_backend, fake_clock):
    return PersistentTier(in_memory_backend, clock=fake_clock)


@pytest.mark.unit
@pytest.mark.asyncio
class TestPersistentEntries:
    """Test entry CRUD."""

    async def test_create_and_read(self, tier, sample_metrics):
        await tier.create(KEY, sample_metrics)

        entry = await tier.get_by_key(KEY)

        assert entry.data["account_id"] == "123"
        assert entry.record_count == 7
        assert len(entry.checksum) == 64  # sha256 hex digest
        assert entry.access_count == 1

    async def test_reads_count_accesses(self, tier):
        await tier.create(KEY, {"v": 1})
        await tier.get_by_key(KEY)

        entry = await tier.get_by_key(KEY)

        assert entry.access_count == 2

    async def test_missing_key(self, tier):
        assert await tier.get_by_key("nope") is None

    async def test_backend_ttl_includes_grace(self, tier, in_memory_backend):
        """24h TTL plus the default 24h stale grace."""
        await tier.create(KEY, {"v": 1}, ttl_hours=24)

        assert in_memory_backend.ttls[f"adfatigue:entry:{KEY}"] == 172800
        assert KEY in in_memory_backend.hashes[REDIS_KEY_INDEX]

    async def test_update_keeps_creation_time_and_accesses(self, tier, fake_clock):
        created = await tier.create(KEY, {"v": 1})
        await tier.get_by_key(KEY)
        fake_clock.advance(hours=2)

        updated = await tier.update(KEY, {"v": 2})

        assert updated.data == {"v": 2}
        assert updated.created_at == created.created_at
        assert updated.access_count == 1
        assert updated.expires_at == fake_clock.now + timedelta(hours=24)

    async def test_update_missing_key(self, tier):
        with pytest.raises(CacheKeyError):
            await tier.update("nope", {"v": 1})

    async def test_put_creates_then_updates(self, tier):
        await tier.put(KEY, {"v": 1})
        await tier.put(KEY, {"v": 2})

        entry = await tier.get_by_key(KEY)
        freshness = await tier.get_freshness(KEY)

        assert entry.data == {"v": 2}
        assert freshness.update_count == 1

    async def test_remove_keeps_freshness(self, tier):
        await tier.create(KEY, {"v": 1})

        assert await tier.remove(KEY) is True
        assert await tier.remove(KEY) is False
        assert await tier.get_by_key(KEY) is None
        assert await tier.get_freshness(KEY) is not None
        assert await tier.keys() == []

    async def test_clear_drops_entries_and_freshness(self, tier):
        await tier.create("a", {"v": 1})
        await tier.create("b", {"v": 2})

        assert await tier.clear() == 2
        assert await tier.keys() == []
        assert await tier.get_freshness("a") is None
        assert await tier.get_by_key("b") is None

    async def test_write_failure_raises_persistent_write_error(self, tier, in_memory_backend):
        in_memory_backend.fail_writes = True

        with pytest.raises(PersistentWriteError) as exc_info:
            await tier.create(KEY, {"v": 1})

        assert exc_info.value.details["cache_key"] == KEY

    async def test_stats(self, tier, fake_clock):
        await tier.create("a", "x" * 100)
        fake_clock.advance(minutes=1)
        await tier.create("b", "x" * 100)
        await tier.update_freshness("b", FreshnessStatus.FINALIZED)

        stats = await tier.get_stats()

        assert stats["entries"] == 2
        assert stats["size_bytes"] == 204
        assert stats["oldest"] < stats["newest"]
        assert stats["by_status"] == {
            "realtime": 1,
            "neartime": 0,
            "stabilizing": 0,
            "finalized": 1,
        }


@pytest.mark.unit
@pytest.mark.asyncio
class TestStaleness:
    """Test is_stale() and auto-extension."""

    async def test_fresh_entry(self, tier):
        await tier.create(KEY, {"v": 1})
        entry = await tier.get_by_key(KEY)

        assert tier.is_stale(entry, await tier.get_freshness(KEY)) is False

    async def test_stale_when_refresh_is_due(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1}, ttl_hours=24)
        fake_clock.advance(hours=3, seconds=1)
        entry = await tier.get_by_key(KEY)

        assert tier.is_stale(entry, await tier.get_freshness(KEY)) is True

    async def test_stale_when_expired(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1}, ttl_hours=1)
        await tier.update_freshness(KEY, FreshnessStatus.FINALIZED)  # refresh due in 7 days
        fake_clock.advance(hours=2)
        entry = await tier.get_by_key(KEY)

        assert tier.is_stale(entry, await tier.get_freshness(KEY)) is True

    async def test_stale_when_incomplete(self, tier, metrics_factory):
        payload = metrics_factory.payload(ctrs=[2.0] * 7, days=10)  # 70% complete
        await tier.create(KEY, payload)
        entry = await tier.get_by_key(KEY)
        freshness = await tier.get_freshness(KEY)

        assert freshness.data_completeness == 70.0
        assert tier.is_stale(entry, freshness) is True

    async def test_stale_without_freshness_record(self, tier):
        await tier.create(KEY, {"v": 1})
        entry = await tier.get_by_key(KEY)

        assert tier.is_stale(entry, None) is True

    async def test_auto_extend_near_expiry(self, tier, fake_clock):
        created = await tier.create(KEY, {"v": 1}, ttl_hours=1.5)
        fake_clock.advance(minutes=45)
        entry = await tier.get_by_key(KEY)

        extended = await tier.maybe_auto_extend(KEY, entry, await tier.get_freshness(KEY))

        assert extended.expires_at == created.expires_at + timedelta(hours=24)
        assert (await tier.get_by_key(KEY)).expires_at == extended.expires_at

    async def test_no_extension_with_time_to_spare(self, tier):
        created = await tier.create(KEY, {"v": 1}, ttl_hours=24)
        entry = await tier.get_by_key(KEY)

        unchanged = await tier.maybe_auto_extend(KEY, entry, await tier.get_freshness(KEY))

        assert unchanged.expires_at == created.expires_at

    async def test_stale_entry_is_not_extended(self, tier, fake_clock):
        created = await tier.create(KEY, {"v": 1}, ttl_hours=1)
        fake_clock.advance(hours=2)
        entry = await tier.get_by_key(KEY)

        result = await tier.maybe_auto_extend(KEY, entry, await tier.get_freshness(KEY))

        assert result.expires_at == created.expires_at


@pytest.mark.unit
class TestEvaluateFreshnessStatus:
    """Test the cumulative 5 / 30 / 120 minute windows."""

    @pytest.mark.parametrize(
        "age, expected",
        [
            (timedelta(0), FreshnessStatus.REALTIME),
            (timedelta(minutes=4, seconds=59), FreshnessStatus.REALTIME),
            (timedelta(minutes=5), FreshnessStatus.NEARTIME),
            (timedelta(minutes=34, seconds=59), FreshnessStatus.NEARTIME),
            (timedelta(minutes=35), FreshnessStatus.STABILIZING),
            (timedelta(minutes=154), FreshnessStatus.STABILIZING),
            (timedelta(minutes=155), FreshnessStatus.FINALIZED),
            (timedelta(days=30), FreshnessStatus.FINALIZED),
        ],
    )
    def test_windows(self, age, expected):
        assert evaluate_freshness_status(age) == expected


@pytest.mark.unit
@pytest.mark.asyncio
class TestFreshnessStateMachine:
    """Test forward-only freshness transitions."""

    async def test_new_record_is_realtime(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})

        record = await tier.get_freshness(KEY)

        assert record.status == FreshnessStatus.REALTIME
        assert record.update_priority == 100
        assert record.next_update_at == fake_clock.now + timedelta(hours=3)
        assert record.transitions == []

    async def test_advance_follows_age(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        fake_clock.advance(minutes=40)

        record = await tier.advance_freshness(KEY)

        assert record.status == FreshnessStatus.STABILIZING
        assert record.update_priority == 50
        assert record.next_update_at == fake_clock.now + timedelta(hours=24)
        assert record.transitions[-1].from_status == FreshnessStatus.REALTIME
        assert record.transitions[-1].reason == "status change"

    async def test_advance_is_idempotent(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        fake_clock.advance(minutes=10)
        await tier.advance_freshness(KEY)

        record = await tier.advance_freshness(KEY)

        assert record.status == FreshnessStatus.NEARTIME
        assert len(record.transitions) == 1
        assert record.transitions[0].reason == "realtime window elapsed"

    async def test_advance_never_moves_backward(self, tier):
        await tier.create(KEY, {"v": 1})
        await tier.update_freshness(KEY, FreshnessStatus.FINALIZED)

        record = await tier.advance_freshness(KEY)

        assert record.status == FreshnessStatus.FINALIZED

    async def test_advance_missing_record(self, tier):
        assert await tier.advance_freshness("nope") is None

    async def test_backward_update_is_rejected(self, tier):
        await tier.create(KEY, {"v": 1})
        await tier.update_freshness(KEY, FreshnessStatus.STABILIZING)

        with pytest.raises(ValidationError):
            await tier.update_freshness(KEY, FreshnessStatus.NEARTIME)

    async def test_reset_to_realtime(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        await tier.update_freshness(KEY, FreshnessStatus.FINALIZED)
        fake_clock.advance(hours=5)

        record = await tier.update_freshness(KEY, FreshnessStatus.REALTIME, data_completeness=90)

        assert record.status == FreshnessStatus.REALTIME
        assert record.last_updated == fake_clock.now
        assert record.data_completeness == 90
        assert record.transitions[-1].reason == "new data fetched"

    async def test_refresh_resets_status(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        await tier.update_freshness(KEY, FreshnessStatus.STABILIZING)
        fake_clock.advance(hours=1)

        await tier.put(KEY, {"v": 2})
        record = await tier.get_freshness(KEY)

        assert record.status == FreshnessStatus.REALTIME
        assert record.last_updated == fake_clock.now
        assert record.transitions[-1].reason == "forced refresh"

    async def test_transition_history_is_capped(self, tier):
        await tier.create(KEY, {"v": 1})
        for _ in range(6):
            await tier.update_freshness(KEY, FreshnessStatus.FINALIZED)
            await tier.update_freshness(KEY, FreshnessStatus.REALTIME)

        record = await tier.get_freshness(KEY)

        assert len(record.transitions) == 10
        assert record.transitions[-1].to_status == FreshnessStatus.REALTIME


@pytest.mark.unit
@pytest.mark.asyncio
class TestRefreshScheduling:
    """Test API call accounting and the refresh queue."""

    async def test_increment_api_calls(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        await tier.increment_api_calls(KEY)
        record = await tier.increment_api_calls(KEY)

        assert record.api_call_count == 2
        assert record.api_calls_today == 2
        assert record.last_api_call_at == fake_clock.now

    async def test_daily_counter_resets_on_new_day(self, tier, fake_clock):
        await tier.create(KEY, {"v": 1})
        await tier.increment_api_calls(KEY)
        fake_clock.advance(days=1)

        record = await tier.increment_api_calls(KEY)

        assert record.api_call_count == 2
        assert record.api_calls_today == 1

    async def test_increment_missing_record(self, tier):
        assert await tier.increment_api_calls("nope") is None

    async def test_entries_needing_update_by_priority(self, tier, fake_clock):
        await tier.create("a", {"v": 1})
        await tier.create("b", {"v": 2})
        await tier.update_freshness("b", FreshnessStatus.NEARTIME)  # due in 6h, priority 75
        await tier.create("c", {"v": 3})
        await tier.update_freshness("c", FreshnessStatus.FINALIZED)  # due in 7 days
        fake_clock.advance(hours=7)

        due = await tier.get_entries_needing_update()

        assert [record.key for record in due] == ["a", "b"]
        assert [record.key for record in await tier.get_entries_needing_update(limit=1)] == ["a"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestChangeNotifications:
    """Test subscribers and the Redis events channel."""

    async def test_sync_and_async_subscribers(self, tier):
        received = []

        tier.subscribe(lambda event: received.append(("sync", event.kind)))

        @tier.subscribe
        async def on_change(event):
            received.append(("async", event.kind))

        await tier.create(KEY, {"v": 1})

        assert received == [("sync", CacheChangeKind.CREATED), ("async", CacheChangeKind.CREATED)]

    async def test_failing_subscriber_does_not_block_others(self, tier):
        received = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        tier.subscribe(broken)
        tier.subscribe(received.append)

        await tier.create(KEY, {"v": 1})

        assert [event.kind for event in received] == [CacheChangeKind.CREATED]

    async def test_unsubscribe(self, tier):
        received = []
        tier.subscribe(received.append)

        assert tier.unsubscribe(received.append) is True
        assert tier.unsubscribe(received.append) is False

        await tier.create(KEY, {"v": 1})
        assert received == []

    async def test_event_kinds(self, tier, in_memory_backend):
        await tier.create(KEY, {"v": 1})
        await tier.update(KEY, {"v": 2})
        await tier.extend_expiry(KEY, 1)
        await tier.remove(KEY)
        await tier.clear()

        events = [orjson.loads(message) for channel, message in in_memory_backend.published]

        assert {channel for channel, _ in in_memory_backend.published} == {REDIS_CHANNEL_CACHE_EVENTS}
        assert [event["kind"] for event in events] == [
            "created",
            "updated",
            "extended",
            "removed",
            "cleared",
        ]
        assert events[-1]["key"] is None

    async def test_ping(self, tier, in_memory_backend):
        assert await tier.ping() is True
        in_memory_backend.reachable = False
        assert await tier.ping() is False
