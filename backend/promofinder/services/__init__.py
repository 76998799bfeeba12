"""Aggregation pipeline services: validation, scoring, dedup, budgets and caching."""

from promofinder.services.aggregator import (
    OfferAggregator,
    SearchFilters,
    SearchResult,
    SortField,
    SourceOutcome,
    get_aggregator,
)
from promofinder.services.deduplicator import dedupe
from promofinder.services.offers import ValidatedOffer
from promofinder.services.scoring import ConfidenceScorer, ScoreResult
from promofinder.services.usage_tracker import UsageTracker, get_usage_tracker
from promofinder.services.validator import (
    DiscountValidator,
    RejectionReason,
    ValidationResult,
)

__all__ = [
    "OfferAggregator",
    "SearchFilters",
    "SearchResult",
    "SortField",
    "SourceOutcome",
    "get_aggregator",
    "dedupe",
    "ValidatedOffer",
    "ConfidenceScorer",
    "ScoreResult",
    "UsageTracker",
    "get_usage_tracker",
    "DiscountValidator",
    "RejectionReason",
    "ValidationResult",
]
