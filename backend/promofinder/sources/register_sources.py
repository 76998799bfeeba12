"""Register all offer sources with the registry.

Called during application startup, before the aggregator is built.
"""

import structlog

from promofinder.config import settings
from promofinder.sources.factory import get_source_registry
from promofinder.sources.feed import FeedSource
from promofinder.sources.rainforest import RainforestSource
from promofinder.sources.rapidapi import RapidApiSource

logger = structlog.get_logger(__name__)


def register_all_sources() -> None:
    """Register every known source with its settings-derived arguments."""
    registry = get_source_registry()
    timeout = settings.SOURCE_QUERY_TIMEOUT_SECONDS

    sources = [
        # Structured product-data APIs
        ("rapidapi", RapidApiSource, {"api_key": settings.RAPIDAPI_KEY, "timeout": timeout}),
        ("rainforest", RainforestSource, {"api_key": settings.RAINFOREST_API_KEY, "timeout": timeout}),
        # Headless scraper exports
        ("feed", FeedSource, {"feed_dir": settings.FEED_DIR}),
    ]

    for name, source_class, kwargs in sources:
        try:
            registry.register_source(name, source_class, **kwargs)
        except ValueError as e:
            logger.error("source_registration_failed", name=name, error=str(e))

    logger.info(
        "all_sources_registered",
        count=len(registry.get_registered_sources()),
        sources=registry.get_registered_sources(),
    )
