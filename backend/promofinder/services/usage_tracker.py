"""Per-source daily request budgets.

Every outbound source attempt is counted against that source's daily
limit. Counters reset at UTC midnight; the clock is injectable so the
rollover can be tested without waiting for a day.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import structlog

from promofinder.config import settings

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UsageRecord:
    """Usage counters of one source for one UTC day."""

    source: str
    daily_limit: int
    day: str
    requests_today: int = 0
    failures_today: int = 0
    last_request_at: Optional[datetime] = None

    @property
    def requests_remaining(self) -> int:
        return max(0, self.daily_limit - self.requests_today)


class UsageTracker:
    """Tracks per-source request counts against daily limits.

    Counters are the only state shared between concurrent aggregate
    calls; every mutation happens under the source's own lock.
    """

    def __init__(
        self,
        limits: Optional[Dict[str, int]] = None,
        default_limit: Optional[int] = None,
        clock: Clock = utc_now,
    ):
        """Initialize tracker.

        Args:
            limits: Daily limit per source name
            default_limit: Limit for sources not in limits (default API_RATE_LIMIT)
            clock: Returns the current timezone-aware datetime
        """
        self.limits = dict(limits or {})
        self.default_limit = (
            settings.API_RATE_LIMIT if default_limit is None else default_limit
        )
        self._clock = clock
        self._records: Dict[str, UsageRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.logger = logger.bind(service="usage_tracker")

    def _today(self) -> str:
        return self._clock().astimezone(timezone.utc).date().isoformat()

    def _lock_for(self, source: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(source)
            if lock is None:
                lock = self._locks[source] = threading.Lock()
            return lock

    def _record(self, source: str) -> UsageRecord:
        """Current-day record for a source. Caller holds the source lock."""
        today = self._today()
        record = self._records.get(source)
        if record is None or record.day != today:
            if record is not None:
                self.logger.info(
                    "usage_day_rollover",
                    source=source,
                    previous_day=record.day,
                    requests=record.requests_today,
                )
            record = UsageRecord(
                source=source,
                daily_limit=max(0, self.limits.get(source, self.default_limit)),
                day=today,
            )
            self._records[source] = record
        return record

    def may_query(self, source: str) -> bool:
        """True if the source still has budget left today."""
        with self._lock_for(source):
            return self._record(source).requests_remaining > 0

    def record_query(self, source: str) -> None:
        """Count one outbound attempt; the count never exceeds the daily limit."""
        with self._lock_for(source):
            record = self._record(source)
            record.requests_today = min(record.requests_today + 1, record.daily_limit)
            record.last_request_at = self._clock()

    def try_acquire(self, source: str) -> bool:
        """Atomically check the budget and count one attempt.

        Returns:
            True if the attempt was counted, False if the budget is exhausted
        """
        with self._lock_for(source):
            record = self._record(source)
            if record.requests_remaining <= 0:
                self.logger.warning(
                    "source_budget_exhausted",
                    source=source,
                    daily_limit=record.daily_limit,
                )
                return False
            record.requests_today += 1
            record.last_request_at = self._clock()
            return True

    def record_failure(self, source: str) -> None:
        with self._lock_for(source):
            self._record(source).failures_today += 1

    def stats_for(self, source: str) -> Dict[str, object]:
        """Usage snapshot for one source.

        Returns:
            Dict with requests_today, requests_remaining, daily_limit,
            failures_today and last_request_at
        """
        with self._lock_for(source):
            record = self._record(source)
            return {
                "requests_today": record.requests_today,
                "requests_remaining": record.requests_remaining,
                "daily_limit": record.daily_limit,
                "failures_today": record.failures_today,
                "last_request_at": record.last_request_at,
            }

    def all_stats(self, sources: Optional[List[str]] = None) -> Dict[str, Dict[str, object]]:
        """Snapshots for the given sources, or every source seen so far."""
        names = list(sources) if sources is not None else list(self._records)
        return {name: self.stats_for(name) for name in names}

    def reset(self, source: Optional[str] = None) -> None:
        """Clear counters for one source, or for all of them."""
        if source is None:
            for name in list(self._records):
                self.reset(name)
            return
        with self._lock_for(source):
            self._records.pop(source, None)
        self.logger.info("usage_reset", source=source)

    def seconds_until_reset(self) -> int:
        """Seconds until the next UTC midnight."""
        now = self._clock().astimezone(timezone.utc)
        tomorrow = (now + timedelta(days=1)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        return int((tomorrow - now).total_seconds())


# Global tracker instance
_tracker_instance: Optional[UsageTracker] = None


def get_usage_tracker() -> UsageTracker:
    """Get or create the process-wide usage tracker."""
    global _tracker_instance

    if _tracker_instance is None:
        _tracker_instance = UsageTracker(limits=settings.get_daily_limits())
        logger.info("usage_tracker_initialized", default_limit=settings.API_RATE_LIMIT)

    return _tracker_instance
