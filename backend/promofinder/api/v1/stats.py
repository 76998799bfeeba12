"""Usage statistics endpoint."""

from fastapi import APIRouter, Depends

from promofinder.dependencies import get_offer_aggregator
from promofinder.schemas import UsageStatsResponse
from promofinder.services.aggregator import OfferAggregator

router = APIRouter()


@router.get("/usage", response_model=UsageStatsResponse)
async def usage_stats(aggregator: OfferAggregator = Depends(get_offer_aggregator)):
    """Per-source budget usage, result cache and stored offer counts."""
    return await aggregator.get_usage_stats()
