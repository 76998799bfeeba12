"""Offer and search result schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from promofinder.sources.base import SourceFailureKind


class OfferResponse(BaseModel):
    """Validated offer as returned by the search endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    original_price: Decimal
    sale_price: Decimal
    discount_percentage: int
    currency: Optional[str] = None
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    source: str
    description: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    confidence_score: int
    scraped_at: datetime


class SourceOutcomeResponse(BaseModel):
    """Per-source diagnostics of one search."""

    model_config = ConfigDict(from_attributes=True)

    source: str
    status: str
    failure: Optional[SourceFailureKind] = None
    raw_count: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    elapsed_ms: int = 0
    from_cache: bool = False


class SearchResponseData(BaseModel):
    query: str
    offers: List[OfferResponse]
    sources: List[str]
    total_results: int
    outcomes: List[SourceOutcomeResponse] = []
