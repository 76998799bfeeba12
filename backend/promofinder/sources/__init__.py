"""Offer sources: structured product-data APIs and scraper feeds."""

from promofinder.sources.base import (
    BaseAPISource,
    BaseScraperSource,
    BaseSource,
    RawCandidate,
    SourceFailureKind,
    SourceQuery,
    SourceReliability,
    SourceResult,
)
from promofinder.sources.factory import SourceRegistry, get_source_registry

__all__ = [
    "BaseAPISource",
    "BaseScraperSource",
    "BaseSource",
    "RawCandidate",
    "SourceFailureKind",
    "SourceQuery",
    "SourceReliability",
    "SourceResult",
    "SourceRegistry",
    "get_source_registry",
]
