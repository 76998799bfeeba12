"""Health check endpoint."""

from fastapi import APIRouter, Depends

from promofinder.dependencies import get_cache, get_offer_aggregator, get_translation_service
from promofinder.schemas import HealthCheckResponse
from promofinder.services.aggregator import OfferAggregator
from promofinder.services.cache_service import CacheService
from promofinder.translation.translator import Translator

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    cache: CacheService = Depends(get_cache),
    aggregator: OfferAggregator = Depends(get_offer_aggregator),
    translator: Translator = Depends(get_translation_service),
):
    """Return service health status.

    Redis being down only degrades the service (caches become misses);
    having no usable source at all does too.
    """
    redis_status = "ok" if await cache.health_check() else "error: ping failed"

    sources = {}
    for source in aggregator.sources:
        sources[source.name] = (
            "ok" if aggregator.tracker.may_query(source.name) else "budget_exhausted"
        )

    healthy = redis_status == "ok" and bool(sources)
    return HealthCheckResponse(
        status="ok" if healthy else "degraded",
        redis=redis_status,
        sources=sources,
        translation_provider=translator.provider_name,
    )
