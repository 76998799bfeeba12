"""FastAPI dependency injection providers.

Each provider returns the process-wide service instance; tests swap them
through app.dependency_overrides.
"""

from promofinder.services.aggregator import OfferAggregator, get_aggregator
from promofinder.services.cache_service import CacheService, get_cache_service
from promofinder.translation.translator import Translator, get_translator


async def get_offer_aggregator() -> OfferAggregator:
    """Aggregator built from the source registry and settings.

    Usage:
        @router.get("/search")
        async def search(aggregator: OfferAggregator = Depends(get_offer_aggregator)):
            ...
    """
    return get_aggregator()


async def get_translation_service() -> Translator:
    return get_translator()


async def get_cache() -> CacheService:
    return get_cache_service()
