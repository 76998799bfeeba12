"""Storage hand-off for validated offers.

The relational store lives outside this service; the aggregator only
hands offers over through OfferRepository. Each offer carries its
product URL and (brand, normalized name, source) so the store can
upsert idempotently.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Optional, Tuple, Union

import structlog

from promofinder.services.offers import ValidatedOffer

logger = structlog.get_logger(__name__)

UpsertKey = Union[str, Tuple[str, str, str]]


def upsert_key(offer: ValidatedOffer) -> UpsertKey:
    """Unique constraint an offer is stored under."""
    if offer.product_url:
        return offer.product_url
    return ((offer.brand or "").lower(), offer.normalized_name, offer.source)


class OfferRepository(ABC):
    """Storage collaborator that receives validated offers."""

    @abstractmethod
    async def upsert_offers(self, offers: List[ValidatedOffer]) -> Dict[str, int]:
        """Insert or update offers.

        Returns:
            Dict with "created" and "updated" counts
        """

    @abstractmethod
    async def count_offers(self) -> Dict[str, object]:
        """Stored offer counts: totalProducts and productsBySource."""


class InMemoryOfferRepository(OfferRepository):
    """Process-local repository used for stats and tests."""

    def __init__(self):
        self._offers: Dict[UpsertKey, ValidatedOffer] = {}
        self.logger = logger.bind(service="offer_repository")

    async def upsert_offers(self, offers: List[ValidatedOffer]) -> Dict[str, int]:
        created = updated = 0
        for offer in offers:
            key = upsert_key(offer)
            existing = self._offers.get(key)
            if existing is None:
                created += 1
            else:
                updated += 1
                offer.created_at = existing.created_at
            self._offers[key] = offer

        self.logger.info("offers_upserted", created=created, updated=updated)
        return {"created": created, "updated": updated}

    async def count_offers(self) -> Dict[str, object]:
        by_source = Counter(offer.source for offer in self._offers.values())
        return {
            "totalProducts": len(self._offers),
            "productsBySource": dict(by_source),
        }

    async def get(self, key: UpsertKey) -> Optional[ValidatedOffer]:
        return self._offers.get(key)


# Global repository instance
_repository_instance: Optional[OfferRepository] = None


def get_offer_repository() -> OfferRepository:
    """Get or create the global offer repository."""
    global _repository_instance

    if _repository_instance is None:
        _repository_instance = InMemoryOfferRepository()

    return _repository_instance
