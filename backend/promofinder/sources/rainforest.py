"""Rainforest API source (Amazon product data).

Documentation: https://docs.trajectdata.com/rainforestapi
"""

from typing import Any, Dict, List, Optional

from promofinder.core.exceptions import SourceError
from promofinder.sources.base import (
    BaseAPISource,
    RawCandidate,
    SourceFailureKind,
    SourceQuery,
    to_decimal,
)
from promofinder.sources.utils.normalizer import (
    CategoryClassifier,
    extract_brand,
    parse_count,
    parse_rating,
)


class RainforestSource(BaseAPISource):
    """Amazon search results through the Rainforest API.

    The original ("was") price comes from price_upper or the highest
    secondary price. Listings without one are returned with no original
    price and are rejected by the validator; the price is never estimated.
    """

    name = "rainforest"
    display_name = "Rainforest API"

    API_BASE_URL = "https://api.rainforestapi.com"

    def __init__(self, api_key: str = "", timeout: float = 10.0, amazon_domain: str = "amazon.com"):
        super().__init__(api_key=api_key, timeout=timeout)
        self.amazon_domain = amazon_domain

    async def fetch_candidates(self, query: SourceQuery) -> List[RawCandidate]:
        self._require_key()

        search_term = query.query.strip()
        if query.brand and query.brand.lower() not in search_term.lower():
            search_term = f"{query.brand} {search_term}"

        params: Dict[str, Any] = {
            "api_key": self.api_key,
            "type": "search",
            "amazon_domain": self.amazon_domain,
            "search_term": search_term,
            "page": query.page,
            "output": "json",
        }
        if query.max_price is not None:
            params["max_price"] = str(query.max_price)

        async with self._client(base_url=self.API_BASE_URL) as client:
            response = await client.get("/request", params=params)
            response.raise_for_status()
            payload = response.json()

        request_info = payload.get("request_info") or {}
        if request_info.get("success") is False:
            message = request_info.get("message", "request failed")
            kind = (
                SourceFailureKind.BLOCKED_BY_TARGET
                if "credit" in message.lower() or "limit" in message.lower()
                else SourceFailureKind.UPSTREAM_ERROR
            )
            raise SourceError(self.name, kind.value, message)

        items = (
            payload.get("search_results")
            or payload.get("bestsellers")
            or payload.get("category_results")
            or []
        )
        if not isinstance(items, list):
            raise SourceError(
                self.name, SourceFailureKind.MALFORMED_RESPONSE.value, "results is not a list"
            )

        candidates = [c for c in (self._normalize_item(i) for i in items) if c]
        return candidates[: query.limit]

    def _normalize_item(self, item: Dict[str, Any]) -> Optional[RawCandidate]:
        title = (item.get("title") or "").strip()
        sale_price = self._extract_sale_price(item)
        if not title or sale_price is None:
            return None

        categories = item.get("categories") or []
        category_label = categories[0].get("name") if categories else None
        images = item.get("images") or []

        return RawCandidate(
            name=title,
            source=self.name,
            product_url=item.get("link"),
            brand=item.get("brand") or extract_brand(title),
            category=CategoryClassifier.classify(title, category_label),
            original_price=self._extract_original_price(item),
            sale_price=sale_price,
            currency=(item.get("price") or {}).get("currency") or "USD",
            image_url=item.get("image") or (images[0] if images else None),
            external_id=item.get("asin"),
            description=" ".join(item.get("feature_bullets") or []) or None,
            rating=parse_rating(item.get("rating")),
            review_count=parse_count(item.get("ratings_total")),
        )

    @staticmethod
    def _extract_sale_price(item: Dict[str, Any]):
        price = item.get("price") or {}
        if price.get("value"):
            return to_decimal(price["value"])
        for entry in item.get("prices") or []:
            if entry.get("is_primary"):
                return to_decimal(entry.get("value"))
        return None

    @staticmethod
    def _extract_original_price(item: Dict[str, Any]):
        upper = item.get("price_upper") or {}
        if upper.get("value"):
            return to_decimal(upper["value"])
        secondary = [
            to_decimal(p.get("value"))
            for p in item.get("prices") or []
            if not p.get("is_primary")
        ]
        secondary = [p for p in secondary if p is not None]
        return max(secondary) if secondary else None
