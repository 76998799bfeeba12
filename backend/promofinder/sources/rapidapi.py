"""RapidAPI real-time product search source.

Queries the "Real-Time Product Search" API hosted on RapidAPI.
Documentation: https://rapidapi.com/letscrape-6bRBa3QguO5/api/real-time-product-search
"""

from typing import Any, Dict, List, Optional

import structlog

from promofinder.core.exceptions import SourceError
from promofinder.sources.base import (
    BaseAPISource,
    RawCandidate,
    SourceFailureKind,
    SourceQuery,
)
from promofinder.sources.utils.normalizer import (
    CategoryClassifier,
    PriceNormalizer,
    extract_brand,
    parse_count,
    parse_rating,
)


logger = structlog.get_logger(__name__)


class RapidApiSource(BaseAPISource):
    """RapidAPI product search source.

    Requires RAPIDAPI_KEY. Returns every listing that carries a sale price;
    discount authenticity is decided later by the validator.
    """

    name = "rapidapi"
    display_name = "RapidAPI Product Search"

    API_HOST = "real-time-product-search.p.rapidapi.com"
    API_BASE_URL = f"https://{API_HOST}"

    # Upper bound accepted by the API per page
    MAX_PAGE_SIZE = 100

    def __init__(self, api_key: str = "", timeout: float = 10.0, country: str = "us"):
        super().__init__(api_key=api_key, timeout=timeout)
        self.country = country

    async def fetch_candidates(self, query: SourceQuery) -> List[RawCandidate]:
        """Search products and map them to RawCandidate records.

        Args:
            query: Query descriptor

        Returns:
            List of RawCandidate (possibly empty)
        """
        self._require_key()

        params: Dict[str, Any] = {
            "q": self._build_query(query),
            "country": self.country,
            "language": "en",
            "limit": min(query.limit, self.MAX_PAGE_SIZE),
            "page": query.page,
            "sort_by": "RELEVANCE",
        }
        if query.max_price is not None:
            params["max_price"] = str(query.max_price)

        headers = {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.API_HOST,
        }

        async with self._client(base_url=self.API_BASE_URL, headers=headers) as client:
            response = await client.get("/search", params=params)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict) or payload.get("status") not in (None, "OK"):
            raise SourceError(
                self.name,
                SourceFailureKind.MALFORMED_RESPONSE.value,
                f"unexpected status: {payload.get('status') if isinstance(payload, dict) else type(payload).__name__}",
            )

        data = payload.get("data") or {}
        items = data.get("products") if isinstance(data, dict) else data
        if items is None:
            raise SourceError(
                self.name, SourceFailureKind.MALFORMED_RESPONSE.value, "missing products"
            )

        candidates = []
        for item in items:
            candidate = self._normalize_item(item)
            if candidate:
                candidates.append(candidate)

        self.logger.info(
            "rapidapi_search_complete",
            query=params["q"],
            items=len(items),
            candidates=len(candidates),
        )
        return candidates

    def _build_query(self, query: SourceQuery) -> str:
        parts = [query.query.strip()]
        if query.brand and query.brand.lower() not in query.query.lower():
            parts.insert(0, query.brand)
        if query.category and query.category.lower() not in query.query.lower():
            parts.append(query.category)
        parts.append("sale")
        return " ".join(p for p in parts if p)

    def _normalize_item(self, item: Dict[str, Any]) -> Optional[RawCandidate]:
        """Map one API product to a RawCandidate; None when unusable.

        Args:
            item: Raw product dict from the API

        Returns:
            RawCandidate or None if the item has no title or sale price
        """
        title = (item.get("product_title") or "").strip()
        sale_price = PriceNormalizer.clean_price_string(item.get("product_price"))
        if not title or sale_price is None:
            logger.debug("rapidapi_item_skipped", product_id=item.get("product_id"))
            return None

        photos = item.get("product_photos") or []
        image_url = item.get("product_photo") or (photos[0] if photos else None)

        return RawCandidate(
            name=title,
            source=self.name,
            product_url=item.get("product_url"),
            brand=item.get("brand") or extract_brand(title),
            category=CategoryClassifier.classify(title, item.get("category")),
            original_price=PriceNormalizer.clean_price_string(
                item.get("product_original_price")
            ),
            sale_price=sale_price,
            currency=item.get("currency") or "USD",
            image_url=image_url,
            external_id=item.get("product_id"),
            description=item.get("product_description"),
            rating=parse_rating(item.get("product_rating")),
            review_count=parse_count(item.get("product_num_reviews")),
            reported_discount=PriceNormalizer.clean_price_string(
                item.get("product_discount")
            ),
            metadata={"availability": item.get("product_availability")},
        )
