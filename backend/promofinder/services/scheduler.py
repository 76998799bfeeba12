"""APScheduler-based refresh scheduler.

Periodically runs the configured refresh queries through the aggregator
and hands the resulting offers to the repository, so stored offers are
never older than the refresh interval.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from promofinder.core.exceptions import AggregationConfigError
from promofinder.services.aggregator import OfferAggregator

logger = structlog.get_logger(__name__)

# Delay between the first runs of consecutive refresh queries
STAGGER_SECONDS = 30


class RefreshScheduler:
    """Manages periodic refresh jobs, one per refresh query."""

    def __init__(self, aggregator: OfferAggregator, interval_minutes: int = 60):
        """Initialize refresh scheduler.

        Args:
            aggregator: Aggregator used to run queries and save offers
            interval_minutes: How often each query is refreshed
        """
        self.aggregator = aggregator
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="refresh_scheduler")
        self._job_ids: Dict[str, str] = {}

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started")
        else:
            self.logger.warning("scheduler_already_running")

    def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")

    def load_queries(self, queries: List[str]) -> int:
        """Schedule a refresh job for every query, staggering first runs.

        Returns:
            Number of jobs scheduled
        """
        added = 0
        for idx, query in enumerate(queries):
            if self.add_query_job(query, offset_seconds=idx * STAGGER_SECONDS):
                added += 1

        self.logger.info("refresh_jobs_loaded", count=added)
        return added

    def add_query_job(self, query: str, offset_seconds: int = 0) -> Optional[Job]:
        """Add a periodic refresh job for one query.

        Args:
            query: Free-text query to refresh
            offset_seconds: Delay before the first run

        Returns:
            APScheduler Job, or None if the query is already scheduled
        """
        if query in self._job_ids:
            self.logger.warning("job_already_exists", query=query)
            return None

        first_run = datetime.now(timezone.utc) + timedelta(seconds=offset_seconds)
        trigger = IntervalTrigger(
            minutes=self.interval_minutes,
            start_date=first_run,
            timezone="UTC",
        )

        job = self.scheduler.add_job(
            func=self._run_refresh_wrapper,
            trigger=trigger,
            args=[query],
            id=f"refresh_{query}",
            name=f"Refresh {query}",
            replace_existing=True,
            max_instances=1,
        )
        self._job_ids[query] = job.id

        self.logger.info(
            "refresh_job_added",
            query=query,
            interval_minutes=self.interval_minutes,
            offset_seconds=offset_seconds,
        )
        return job

    def remove_query_job(self, query: str) -> bool:
        job_id = self._job_ids.pop(query, None)
        if not job_id:
            self.logger.warning("job_not_found", query=query)
            return False

        self.scheduler.remove_job(job_id)
        self.logger.info("refresh_job_removed", query=query)
        return True

    async def _run_refresh_wrapper(self, query: str) -> None:
        """Entry point called by APScheduler; a failed run must not stop the scheduler."""
        try:
            await self.run_refresh(query)
        except AggregationConfigError as e:
            self.logger.error("refresh_job_misconfigured", query=query, error=e.message)
        except Exception as e:
            self.logger.error(
                "refresh_job_failed",
                query=query,
                error=str(e),
                exc_info=True,
            )

    async def run_refresh(self, query: str) -> Dict[str, int]:
        """Run one refresh: search, then hand every offer to the repository.

        Returns:
            Upsert counts from the repository
        """
        started = datetime.now(timezone.utc)
        self.logger.info("refresh_started", query=query)

        result = await self.aggregator.search(query)
        counts = await self.aggregator.save_offers(result.offers)

        self.logger.info(
            "refresh_completed",
            query=query,
            sources=result.sources,
            offers=len(result.offers),
            duration_seconds=round((datetime.now(timezone.utc) - started).total_seconds(), 2),
            **counts,
        )
        return counts

    def get_jobs_status(self) -> Dict[str, dict]:
        jobs = {}
        for query, job_id in self._job_ids.items():
            job = self.scheduler.get_job(job_id)
            if job:
                # Pending jobs (scheduler not started) have no next_run_time yet
                next_run = getattr(job, "next_run_time", None)
                jobs[query] = {
                    "job_id": job_id,
                    "next_run": next_run.isoformat() if next_run else None,
                    "trigger": str(job.trigger),
                }
        return jobs

    def is_running(self) -> bool:
        return self.scheduler.running
