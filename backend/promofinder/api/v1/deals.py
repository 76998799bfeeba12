"""Deal search endpoints backed by the offer aggregator."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from promofinder.dependencies import get_offer_aggregator
from promofinder.schemas import (
    ApiResponse,
    OfferResponse,
    SearchMeta,
    SearchResponseData,
    SourceOutcomeResponse,
)
from promofinder.services.aggregator import (
    OfferAggregator,
    SearchFilters,
    SearchResult,
    SortField,
)

router = APIRouter()


def _to_response(result: SearchResult, page: int, limit: int) -> ApiResponse[SearchResponseData]:
    total = result.total_results
    return ApiResponse(
        status="success",
        data=SearchResponseData(
            query=result.query,
            offers=[OfferResponse.model_validate(o) for o in result.offers],
            sources=result.sources,
            total_results=total,
            outcomes=[SourceOutcomeResponse.model_validate(o) for o in result.outcomes],
        ),
        meta=SearchMeta(
            source_page=page,
            limit=limit,
            total=total,
            returned=len(result.offers),
        ),
    )


@router.get("/search", response_model=ApiResponse[SearchResponseData])
async def search_deals(
    q: str = Query(..., min_length=1, description="Search query"),
    brand: Optional[str] = Query(None, description="Filter by brand"),
    category: Optional[str] = Query(None, description="Filter by category"),
    max_price: Optional[Decimal] = Query(None, gt=0, description="Maximum sale price"),
    min_discount: Optional[int] = Query(None, ge=0, le=100, description="Minimum discount %"),
    sort_by: SortField = Query(SortField.DISCOUNT, description="Sort field"),
    page: int = Query(1, ge=1, description="Page requested from each source (not a page of the merged result)"),
    limit: int = Query(20, ge=1, le=100, description="Maximum offers returned"),
    aggregator: OfferAggregator = Depends(get_offer_aggregator),
):
    """Search every configured source and return merged, validated offers.

    Sort options:
    - discount: Highest discount first, ties by confidence (default)
    - price: Lowest sale price first
    - popularity: Most reviewed first, then best rated
    - date: Most recently scraped first
    - relevance: Highest confidence first
    """
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query 'q' cannot be empty")

    filters = SearchFilters(
        brand=brand,
        category=category,
        max_price=max_price,
        min_discount=min_discount,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    result = await aggregator.search(q.strip(), filters)
    return _to_response(result, page, limit)


@router.get("/top", response_model=ApiResponse[SearchResponseData])
async def top_deals(
    min_discount: int = Query(30, ge=0, le=100, description="Minimum discount %"),
    limit: int = Query(20, ge=1, le=100),
    aggregator: OfferAggregator = Depends(get_offer_aggregator),
):
    """Deepest discounts across all sources."""
    result = await aggregator.search_deals(min_discount=min_discount, limit=limit)
    return _to_response(result, 1, limit)


@router.get("/brand/{brand}", response_model=ApiResponse[SearchResponseData])
async def deals_by_brand(
    brand: str,
    limit: int = Query(20, ge=1, le=100),
    aggregator: OfferAggregator = Depends(get_offer_aggregator),
):
    result = await aggregator.search_by_brand(brand, limit=limit)
    return _to_response(result, 1, limit)


@router.get("/category/{category}", response_model=ApiResponse[SearchResponseData])
async def deals_by_category(
    category: str,
    limit: int = Query(20, ge=1, le=100),
    aggregator: OfferAggregator = Depends(get_offer_aggregator),
):
    result = await aggregator.search_by_category(category, limit=limit)
    return _to_response(result, 1, limit)
