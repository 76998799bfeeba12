"""Tests for the refresh scheduler."""

from decimal import Decimal

import pytest

from promofinder.core.exceptions import AggregationConfigError
from promofinder.services.aggregator import OfferAggregator
from promofinder.services.repository import InMemoryOfferRepository
from promofinder.services.scheduler import RefreshScheduler
from tests.conftest import FakeSource, make_candidate


def make_scheduler(tracker, sources=None) -> RefreshScheduler:
    if sources is None:
        sources = [
            FakeSource("shop", [
                make_candidate(source="shop"),
                make_candidate(
                    name="Nike Pegasus 40", source="shop", sale_price=Decimal("50"),
                    product_url="https://shop.example.com/p/pegasus",
                ),
            ])
        ]
    aggregator = OfferAggregator(
        sources=sources, tracker=tracker, repository=InMemoryOfferRepository(), timeout=1.0
    )
    return RefreshScheduler(aggregator, interval_minutes=30)


class TestRefreshScheduler:

    async def test_run_refresh_saves_offers(self, tracker):
        scheduler = make_scheduler(tracker)

        first = await scheduler.run_refresh("nike")
        second = await scheduler.run_refresh("nike")

        assert first == {"created": 2, "updated": 0}
        assert second == {"created": 0, "updated": 2}
        stored = await scheduler.aggregator.repository.count_offers()
        assert stored["totalProducts"] == 2

    async def test_wrapper_swallows_failures(self, tracker):
        scheduler = make_scheduler(tracker, sources=[])

        # No sources: the job logs and returns instead of raising
        await scheduler._run_refresh_wrapper("nike")

    async def test_run_refresh_propagates_config_error(self, tracker):
        scheduler = make_scheduler(tracker, sources=[])

        with pytest.raises(AggregationConfigError):
            await scheduler.run_refresh("nike")

    def test_jobs_are_unique_per_query(self, tracker):
        scheduler = make_scheduler(tracker)

        assert scheduler.load_queries(["nike", "adidas", "nike"]) == 2
        assert scheduler.add_query_job("adidas") is None
        assert set(scheduler.get_jobs_status()) == {"nike", "adidas"}

    def test_remove_job(self, tracker):
        scheduler = make_scheduler(tracker)
        scheduler.add_query_job("nike")

        assert scheduler.remove_query_job("nike") is True
        assert scheduler.remove_query_job("nike") is False
        assert scheduler.get_jobs_status() == {}

    async def test_start_and_stop(self, tracker):
        scheduler = make_scheduler(tracker)
        scheduler.add_query_job("nike")

        scheduler.start()
        assert scheduler.is_running()
        status = scheduler.get_jobs_status()
        assert status["nike"]["next_run"] is not None

        scheduler.stop()
        assert not scheduler.is_running()
