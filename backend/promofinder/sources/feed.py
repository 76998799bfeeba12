"""Scraper feed source.

The headless-browser scrapers run outside this service and export the
products they find as JSON files. This source reads those exports and
answers queries against them, so scraped listings flow through the same
validation, scoring and dedup pipeline as API results.

Accepted file layouts (``<feed_dir>/*.json``)::

    [{"name": ..., "salePrice": ..., ...}, ...]
    {"source": "asos", "products": [{...}, ...]}

Both camelCase (scraper exports) and snake_case keys are accepted.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from promofinder.core.exceptions import SourceError
from promofinder.sources.base import (
    BaseScraperSource,
    RawCandidate,
    SourceFailureKind,
    SourceQuery,
)
from promofinder.sources.utils.normalizer import (
    CategoryClassifier,
    PriceNormalizer,
    extract_brand,
    normalize_name,
)


FIELD_ALIASES = {
    "name": ("name", "title", "productName"),
    "brand": ("brand",),
    "category": ("category",),
    "original_price": ("originalPrice", "original_price", "regularPrice"),
    "sale_price": ("salePrice", "sale_price", "price"),
    "currency": ("currency",),
    "image_url": ("imageUrl", "image_url", "image"),
    "product_url": ("productUrl", "product_url", "url", "link"),
    "external_id": ("externalId", "external_id", "sku"),
    "description": ("description",),
    "reported_discount": ("discountPercentage", "discount_percentage", "discount"),
}


def _pick(record: Dict[str, Any], field_name: str) -> Any:
    for key in FIELD_ALIASES[field_name]:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


class FeedSource(BaseScraperSource):
    """Serves candidates from scraper JSON exports in a directory."""

    name = "feed"
    display_name = "Scraper feeds"

    def __init__(self, feed_dir: str, name: Optional[str] = None):
        """Initialize feed source.

        Args:
            feed_dir: Directory containing *.json scraper exports
            name: Optional source identifier override (one per scraper fleet)
        """
        if name:
            self.name = name
        super().__init__()
        self.feed_dir = Path(feed_dir)

    async def fetch_candidates(self, query: SourceQuery) -> List[RawCandidate]:
        records = await asyncio.to_thread(self._load_records)

        candidates = []
        for record in records:
            candidate = self._normalize_record(record)
            if candidate and self._matches(candidate, query):
                candidates.append(candidate)

        start = max(query.page - 1, 0) * query.limit
        return candidates[start:start + query.limit]

    def _load_records(self) -> List[Dict[str, Any]]:
        """Read every export file. A missing directory means no results."""
        if not self.feed_dir.is_dir():
            self.logger.info("feed_dir_missing", feed_dir=str(self.feed_dir))
            return []

        records: List[Dict[str, Any]] = []
        for path in sorted(self.feed_dir.glob("*.json")):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise SourceError(
                    self.name,
                    SourceFailureKind.MALFORMED_RESPONSE.value,
                    f"{path.name}: {e}",
                ) from e

            if isinstance(payload, dict):
                items = payload.get("products")
            else:
                items = payload
            if not isinstance(items, list):
                raise SourceError(
                    self.name,
                    SourceFailureKind.MALFORMED_RESPONSE.value,
                    f"{path.name}: expected a list of products",
                )
            records.extend(item for item in items if isinstance(item, dict))

        return records

    def _normalize_record(self, record: Dict[str, Any]) -> Optional[RawCandidate]:
        name = _pick(record, "name")
        if not name or not str(name).strip():
            return None
        name = str(name).strip()

        return RawCandidate(
            name=name,
            source=self.name,
            product_url=_pick(record, "product_url"),
            brand=_pick(record, "brand") or extract_brand(name),
            category=CategoryClassifier.classify(name, _pick(record, "category")),
            original_price=PriceNormalizer.clean_price_string(_pick(record, "original_price")),
            sale_price=PriceNormalizer.clean_price_string(_pick(record, "sale_price")),
            currency=_pick(record, "currency") or "EUR",
            image_url=_pick(record, "image_url"),
            external_id=_pick(record, "external_id"),
            description=_pick(record, "description"),
            reported_discount=PriceNormalizer.clean_price_string(
                _pick(record, "reported_discount")
            ),
        )

    @staticmethod
    def _matches(candidate: RawCandidate, query: SourceQuery) -> bool:
        """Every query term must appear in the name, brand or category."""
        haystack = normalize_name(
            " ".join(filter(None, [candidate.name, candidate.brand, candidate.category]))
        )
        terms = normalize_name(query.query).split()
        if not all(term in haystack for term in terms):
            return False
        if query.brand and (candidate.brand or "").lower() != query.brand.lower():
            return False
        if query.category and candidate.category != query.category:
            return False
        if (
            query.max_price is not None
            and candidate.sale_price is not None
            and candidate.sale_price > query.max_price
        ):
            return False
        return True
