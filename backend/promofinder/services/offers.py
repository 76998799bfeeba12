"""Validated offer record produced by the aggregation pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from promofinder.sources.base import RawCandidate
from promofinder.sources.utils.normalizer import normalize_name


@dataclass
class ValidatedOffer:
    """A candidate that passed validation and scoring.

    Invariants (checked in __post_init__): sale_price < original_price,
    discount_percentage within 0..100, confidence_score within 0..99.
    """

    id: str
    dedup_key: str
    name: str
    source: str
    original_price: Decimal
    sale_price: Decimal
    discount_percentage: int
    confidence_score: int
    brand: Optional[str] = None
    category: Optional[str] = None
    currency: Optional[str] = None
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    external_id: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.sale_price >= self.original_price:
            raise ValueError("sale_price must be below original_price")
        if not 0 <= self.discount_percentage <= 100:
            raise ValueError(f"discount_percentage out of range: {self.discount_percentage}")
        if not 0 <= self.confidence_score <= 99:
            raise ValueError(f"confidence_score out of range: {self.confidence_score}")

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def savings(self) -> Decimal:
        return self.original_price - self.sale_price

    @classmethod
    def from_candidate(
        cls,
        candidate: RawCandidate,
        *,
        offer_id: str,
        dedup_key: str,
        discount_percentage: int,
        confidence_score: int,
        scraped_at: Optional[datetime] = None,
    ) -> "ValidatedOffer":
        """Build an offer from a candidate whose prices have been validated."""
        now = scraped_at or datetime.now(timezone.utc)
        return cls(
            id=offer_id,
            dedup_key=dedup_key,
            name=candidate.name.strip(),
            source=candidate.source,
            original_price=candidate.original_price,
            sale_price=candidate.sale_price,
            discount_percentage=discount_percentage,
            confidence_score=confidence_score,
            brand=candidate.brand,
            category=candidate.category,
            currency=candidate.currency,
            image_url=candidate.image_url,
            product_url=candidate.product_url,
            external_id=candidate.external_id,
            description=candidate.description,
            rating=candidate.rating,
            review_count=candidate.review_count,
            scraped_at=now,
            created_at=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and storage hand-off."""
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "original_price": self.original_price,
            "sale_price": self.sale_price,
            "discount_percentage": self.discount_percentage,
            "currency": self.currency,
            "image_url": self.image_url,
            "product_url": self.product_url,
            "source": self.source,
            "external_id": self.external_id,
            "description": self.description,
            "rating": self.rating,
            "review_count": self.review_count,
            "confidence_score": self.confidence_score,
            "scraped_at": self.scraped_at,
            "created_at": self.created_at,
        }
