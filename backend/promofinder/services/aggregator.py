"""Offer aggregation across all configured sources.

One search call:

1. selects the sources that still have daily budget,
2. queries them concurrently, each under its own timeout,
3. validates and scores every candidate, counting rejections,
4. concatenates the survivors in source-query order,
5. deduplicates across sources,
6. applies the caller's filters,
7. sorts, and
8. truncates to the requested limit.

A failing source only removes its own offers from the result.
"""

import asyncio
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

import structlog

from promofinder.config import settings
from promofinder.core.exceptions import AggregationConfigError
from promofinder.services.cache_service import get_cache_service
from promofinder.services.deduplicator import canonical_id, dedup_key, dedupe
from promofinder.services.offers import ValidatedOffer
from promofinder.services.repository import OfferRepository, get_offer_repository
from promofinder.services.result_cache import SourceResultCache
from promofinder.services.scoring import ConfidenceScorer
from promofinder.services.usage_tracker import (
    Clock,
    UsageTracker,
    get_usage_tracker,
    utc_now,
)
from promofinder.services.validator import DiscountValidator
from promofinder.sources.base import (
    BaseSource,
    SourceFailureKind,
    SourceQuery,
    SourceResult,
)
from promofinder.sources.factory import get_source_registry

logger = structlog.get_logger(__name__)

# Failure kinds that still count as an answered query
ANSWERED_FAILURES = {SourceFailureKind.NO_RESULTS_FOUND}


class SortField(str, Enum):
    PRICE = "price"
    DISCOUNT = "discount"
    POPULARITY = "popularity"
    DATE = "date"
    RELEVANCE = "relevance"


@dataclass
class SearchFilters:
    """Caller-side filters, sort order and page size for one search."""

    brand: Optional[str] = None
    category: Optional[str] = None
    max_price: Optional[Decimal] = None
    min_discount: Optional[int] = None
    sort_by: SortField = SortField.DISCOUNT
    page: int = 1
    limit: int = 20


@dataclass
class SourceOutcome:
    """What happened to one source during one search call."""

    source: str
    status: str  # "ok", "failed" or "skipped"
    failure: Optional[SourceFailureKind] = None
    message: Optional[str] = None
    raw_count: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    elapsed_ms: int = 0
    from_cache: bool = False


@dataclass
class SearchResult:
    """Merged result of one search call.

    Attributes:
        offers: Offers after dedup, filtering, sorting and truncation
        sources: Sources that answered (possibly with zero offers)
        total_results: Offer count after filtering, before truncation
        outcomes: Per-source diagnostics in source-query order
    """

    query: str
    offers: List[ValidatedOffer]
    sources: List[str]
    total_results: int
    outcomes: List[SourceOutcome] = field(default_factory=list)


def _sort_key(sort_by: SortField):
    if sort_by == SortField.PRICE:
        return lambda o: (o.sale_price, -o.confidence_score)
    if sort_by == SortField.POPULARITY:
        return lambda o: (-(o.review_count or 0), -(o.rating or 0.0))
    if sort_by == SortField.DATE:
        return lambda o: -o.scraped_at.timestamp()
    if sort_by == SortField.RELEVANCE:
        return lambda o: (-o.confidence_score, -o.discount_percentage)
    return lambda o: (-o.discount_percentage, -o.confidence_score)


def sort_offers(offers: List[ValidatedOffer], sort_by: SortField) -> List[ValidatedOffer]:
    """Stable sort; equal keys keep source-query order."""
    return sorted(offers, key=_sort_key(sort_by))


def apply_filters(offers: List[ValidatedOffer], filters: SearchFilters) -> List[ValidatedOffer]:
    result = offers
    if filters.brand:
        brand = filters.brand.lower()
        result = [o for o in result if (o.brand or "").lower() == brand]
    if filters.category:
        result = [o for o in result if o.category == filters.category]
    if filters.max_price is not None:
        result = [o for o in result if o.sale_price <= filters.max_price]
    if filters.min_discount is not None:
        result = [o for o in result if o.discount_percentage >= filters.min_discount]
    return result


class OfferAggregator:
    """Queries sources concurrently and merges their validated offers."""

    def __init__(
        self,
        sources: List[BaseSource],
        tracker: UsageTracker,
        validator: Optional[DiscountValidator] = None,
        scorer: Optional[ConfidenceScorer] = None,
        result_cache: Optional[SourceResultCache] = None,
        repository: Optional[OfferRepository] = None,
        timeout: Optional[float] = None,
        clock: Clock = utc_now,
    ):
        """Initialize aggregator.

        Args:
            sources: Sources in query order
            tracker: Shared usage tracker
            validator: Discount validator (default bounds from settings)
            scorer: Confidence scorer
            result_cache: Optional per-source result cache
            repository: Optional storage hand-off for save_offers()
            timeout: Per-source query timeout in seconds
            clock: Timestamp source for scraped_at
        """
        self.sources = list(sources)
        self.tracker = tracker
        self.validator = validator or DiscountValidator()
        self.scorer = scorer or ConfidenceScorer()
        self.result_cache = result_cache
        self.repository = repository
        self.timeout = settings.SOURCE_QUERY_TIMEOUT_SECONDS if timeout is None else timeout
        self._clock = clock
        self.rejections: Counter = Counter()
        self.logger = logger.bind(service="aggregator")

    async def search(
        self, query: str, filters: Optional[SearchFilters] = None
    ) -> SearchResult:
        """Run one aggregate search.

        Args:
            query: Free-text query
            filters: Filters, sort order and limit

        Returns:
            SearchResult

        Raises:
            AggregationConfigError: If no sources are configured
        """
        if not self.sources:
            raise AggregationConfigError("No offer sources configured")

        filters = filters or SearchFilters()
        source_query = SourceQuery(
            query=query,
            brand=filters.brand,
            category=filters.category,
            max_price=filters.max_price,
            page=filters.page,
            limit=filters.limit,
        )

        self.logger.info(
            "search_started",
            query=query,
            brand=filters.brand,
            category=filters.category,
            sort_by=filters.sort_by.value,
        )

        outcomes: Dict[str, SourceOutcome] = {}
        eligible = []
        for source in self.sources:
            if self.tracker.may_query(source.name):
                eligible.append(source)
            else:
                outcomes[source.name] = SourceOutcome(
                    source=source.name,
                    status="skipped",
                    failure=SourceFailureKind.BUDGET_EXHAUSTED,
                )

        # gather() keeps task order, so results stay in source-query order
        results = await asyncio.gather(
            *(self._query_source(source, source_query) for source in eligible)
        )

        merged: List[ValidatedOffer] = []
        answered: List[str] = []
        for source, (result, outcome) in zip(eligible, results):
            outcomes[source.name] = outcome
            if result.succeeded or result.failure in ANSWERED_FAILURES:
                answered.append(source.name)
            if result.succeeded:
                merged.extend(self._process_candidates(source, result, outcome, filters))

        deduped = dedupe(merged)
        filtered = apply_filters(deduped, filters)
        ordered = sort_offers(filtered, filters.sort_by)
        offers = ordered[: filters.limit]

        self.logger.info(
            "search_completed",
            query=query,
            sources=answered,
            merged=len(merged),
            deduped=len(deduped),
            total_results=len(filtered),
            returned=len(offers),
        )

        return SearchResult(
            query=query,
            offers=offers,
            sources=answered,
            total_results=len(filtered),
            outcomes=[outcomes[s.name] for s in self.sources],
        )

    async def _query_source(self, source: BaseSource, query: SourceQuery):
        """Query one source. Never raises; failures come back as values."""
        started = time.perf_counter()

        def elapsed() -> int:
            return int((time.perf_counter() - started) * 1000)

        if self.result_cache is not None:
            cached = await self.result_cache.get(source.name, query)
            if cached is not None:
                self.logger.debug("source_result_cache_hit", source=source.name)
                return SourceResult.ok(source.name, cached), SourceOutcome(
                    source=source.name,
                    status="ok",
                    raw_count=len(cached),
                    elapsed_ms=elapsed(),
                    from_cache=True,
                )

        if not self.tracker.try_acquire(source.name):
            result = SourceResult.failed(
                source.name, SourceFailureKind.BUDGET_EXHAUSTED, "daily budget exhausted"
            )
            return result, self._failed_outcome(result, elapsed())

        try:
            result = await asyncio.wait_for(source.query(query), timeout=self.timeout)
        except asyncio.TimeoutError:
            result = SourceResult.failed(
                source.name,
                SourceFailureKind.TIMEOUT,
                f"no answer within {self.timeout}s",
            )
        except Exception as e:
            self.logger.error(
                "source_query_crashed",
                source=source.name,
                error=str(e),
                exc_info=True,
            )
            result = SourceResult.failed(
                source.name, SourceFailureKind.UNEXPECTED_ERROR, str(e)
            )

        if not result.succeeded:
            if result.failure not in ANSWERED_FAILURES:
                self.tracker.record_failure(source.name)
            self.logger.warning(
                "source_failed",
                source=source.name,
                failure=result.failure.value,
                message=result.message,
            )
            return result, self._failed_outcome(result, elapsed())

        if self.result_cache is not None:
            await self.result_cache.set(source.name, query, result.candidates)

        return result, SourceOutcome(
            source=source.name,
            status="ok",
            raw_count=len(result.candidates),
            elapsed_ms=elapsed(),
        )

    @staticmethod
    def _failed_outcome(result: SourceResult, elapsed_ms: int) -> SourceOutcome:
        return SourceOutcome(
            source=result.source,
            status="failed",
            failure=result.failure,
            message=result.message,
            elapsed_ms=elapsed_ms,
        )

    def _process_candidates(
        self,
        source: BaseSource,
        result: SourceResult,
        outcome: SourceOutcome,
        filters: SearchFilters,
    ) -> List[ValidatedOffer]:
        """Validate and score one source's candidates, keeping their order."""
        scraped_at: datetime = self._clock()
        offers = []

        for candidate in result.candidates:
            validation = self.validator.validate(
                candidate.original_price, candidate.sale_price
            )
            if not validation.valid:
                self.rejections[validation.reason.value] += 1
                outcome.rejected_count += 1
                self.logger.debug(
                    "candidate_rejected",
                    source=source.name,
                    reason=validation.reason.value,
                    name=candidate.name,
                )
                continue

            scored = self.scorer.score(candidate, source.reliability, filters.brand)
            if not scored.accepted:
                self.rejections["low_confidence"] += 1
                outcome.rejected_count += 1
                self.logger.debug(
                    "candidate_quarantined",
                    source=source.name,
                    raw_score=scored.raw_score,
                    name=candidate.name,
                )
                continue

            key = dedup_key(
                candidate.product_url, candidate.brand, candidate.name, candidate.sale_price
            )
            offers.append(
                ValidatedOffer.from_candidate(
                    candidate,
                    offer_id=canonical_id(key),
                    dedup_key=key,
                    discount_percentage=validation.discount_percentage,
                    confidence_score=scored.score,
                    scraped_at=scraped_at,
                )
            )

        outcome.accepted_count = len(offers)
        if outcome.rejected_count:
            self.logger.info(
                "candidates_rejected",
                source=source.name,
                rejected=outcome.rejected_count,
                accepted=outcome.accepted_count,
            )
        return offers

    async def save_offers(self, offers: List[ValidatedOffer]) -> Dict[str, int]:
        """Hand offers to the storage collaborator for upsert."""
        if self.repository is None:
            self.logger.warning("save_offers_skipped", reason="no_repository")
            return {"created": 0, "updated": 0}
        return await self.repository.upsert_offers(offers)

    async def search_by_brand(self, brand: str, **kwargs) -> SearchResult:
        return await self.search(brand, SearchFilters(brand=brand, **kwargs))

    async def search_by_category(self, category: str, **kwargs) -> SearchResult:
        return await self.search(category, SearchFilters(category=category, **kwargs))

    async def search_deals(self, min_discount: int = 30, **kwargs) -> SearchResult:
        """Best discounts across all sources, regardless of product."""
        return await self.search("sale", SearchFilters(min_discount=min_discount, **kwargs))

    async def get_usage_stats(self) -> Dict[str, object]:
        """Read-only snapshot of budgets, caches and stored offers.

        Returns:
            Dict with "providers", "cache", "database" and "validation"
        """
        providers = []
        for source in self.sources:
            stats = self.tracker.stats_for(source.name)
            providers.append(
                {
                    "provider": source.name,
                    "requestsToday": stats["requests_today"],
                    "requestsRemaining": stats["requests_remaining"],
                    "dailyLimit": stats["daily_limit"],
                    "failuresToday": stats["failures_today"],
                }
            )

        cache: Dict[str, object] = {"enabled": self.result_cache is not None}
        if self.result_cache is not None:
            cache.update(self.result_cache.cache.stats())
            cache["cachedResults"] = await self.result_cache.count()
            cache["ttlSeconds"] = self.result_cache.ttl

        if self.repository is not None:
            database = await self.repository.count_offers()
        else:
            database = {"totalProducts": 0, "productsBySource": {}}

        return {
            "providers": providers,
            "resetsInSeconds": self.tracker.seconds_until_reset(),
            "cache": cache,
            "database": database,
            "validation": {"rejections": dict(self.rejections)},
        }


# Global aggregator instance
_aggregator_instance: Optional[OfferAggregator] = None


def build_aggregator() -> OfferAggregator:
    """Build an aggregator from settings and the source registry."""
    sources = get_source_registry().build_sources(settings.get_enabled_sources())
    result_cache = None
    if settings.RESULT_CACHE_ENABLED:
        result_cache = SourceResultCache(get_cache_service(), ttl=settings.API_CACHE_TTL)

    logger.info("aggregator_built", sources=[s.name for s in sources])
    return OfferAggregator(
        sources=sources,
        tracker=get_usage_tracker(),
        result_cache=result_cache,
        repository=get_offer_repository(),
    )


def get_aggregator() -> OfferAggregator:
    """Get or create the global aggregator instance."""
    global _aggregator_instance

    if _aggregator_instance is None:
        _aggregator_instance = build_aggregator()

    return _aggregator_instance
