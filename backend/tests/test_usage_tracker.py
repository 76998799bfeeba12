"""Tests for per-source daily budgets."""

import asyncio
from datetime import datetime, timedelta, timezone

from promofinder.services.usage_tracker import UsageTracker


class TestUsageTracker:

    def test_unknown_source_uses_default_limit(self, tracker):
        stats = tracker.stats_for("rapidapi")

        assert stats["daily_limit"] == 100
        assert stats["requests_today"] == 0
        assert stats["requests_remaining"] == 100

    def test_configured_limit(self, clock):
        tracker = UsageTracker(limits={"rainforest": 5}, default_limit=100, clock=clock)

        assert tracker.stats_for("rainforest")["daily_limit"] == 5

    def test_exhaustion(self, clock):
        tracker = UsageTracker(default_limit=2, clock=clock)

        assert tracker.try_acquire("feed") is True
        assert tracker.try_acquire("feed") is True
        assert tracker.try_acquire("feed") is False
        assert tracker.may_query("feed") is False

        stats = tracker.stats_for("feed")
        assert stats["requests_today"] == 2
        assert stats["requests_remaining"] == 0

    def test_sum_invariant(self, tracker):
        for _ in range(7):
            tracker.record_query("rapidapi")

        stats = tracker.stats_for("rapidapi")
        assert stats["requests_today"] + stats["requests_remaining"] == stats["daily_limit"]
        assert stats["last_request_at"] is not None

    def test_resets_at_utc_midnight(self, clock):
        tracker = UsageTracker(default_limit=1, clock=clock)
        tracker.record_query("rapidapi")
        tracker.record_failure("rapidapi")
        assert tracker.may_query("rapidapi") is False

        clock.now = datetime(2026, 3, 15, 0, 0, 1, tzinfo=timezone.utc)

        assert tracker.may_query("rapidapi") is True
        assert tracker.stats_for("rapidapi")["failures_today"] == 0

    def test_midnight_is_utc_not_local(self, clock):
        tracker = UsageTracker(default_limit=1, clock=clock)
        tracker.record_query("rapidapi")

        # 23:30 at UTC-5 is already the next UTC day
        clock.now = datetime(2026, 3, 14, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

        assert tracker.may_query("rapidapi") is True

    def test_seconds_until_reset(self, tracker, clock):
        assert tracker.seconds_until_reset() == 12 * 3600

    def test_reset(self, tracker):
        tracker.record_query("a")
        tracker.record_query("b")

        tracker.reset("a")
        assert tracker.stats_for("a")["requests_today"] == 0
        assert tracker.stats_for("b")["requests_today"] == 1

        tracker.reset()
        assert tracker.all_stats() == {}

    async def test_concurrent_acquire_never_overruns(self, clock):
        tracker = UsageTracker(default_limit=10, clock=clock)

        async def attempt():
            await asyncio.sleep(0)
            return await asyncio.to_thread(tracker.try_acquire, "rapidapi")

        results = await asyncio.gather(*(attempt() for _ in range(50)))

        assert sum(results) == 10
        assert tracker.stats_for("rapidapi")["requests_today"] == 10

    def test_sum_invariant_past_the_limit(self, clock):
        tracker = UsageTracker(default_limit=100, clock=clock)
        for _ in range(101):
            tracker.record_query("rapidapi")

        stats = tracker.stats_for("rapidapi")
        assert stats["requests_today"] == 100
        assert stats["requests_remaining"] == 0
        assert stats["requests_today"] + stats["requests_remaining"] == stats["daily_limit"]

    def test_negative_limit_treated_as_zero(self, clock):
        tracker = UsageTracker(limits={"feed": -5}, default_limit=100, clock=clock)
        tracker.record_query("feed")

        stats = tracker.stats_for("feed")
        assert stats["daily_limit"] == 0
        assert stats["requests_today"] + stats["requests_remaining"] == 0
        assert tracker.may_query("feed") is False
