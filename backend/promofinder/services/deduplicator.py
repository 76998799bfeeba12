"""Cross-source offer deduplication.

Two offers are the same when their product URLs normalize to the same
value; offers without a URL fall back to a fingerprint of brand,
normalized name and a coarse price bucket.
"""

import hashlib
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

import structlog

from promofinder.services.offers import ValidatedOffer
from promofinder.sources.utils.normalizer import normalize_name, normalize_url

logger = structlog.get_logger(__name__)

# Width of the price bucket used in URL-less fingerprints
PRICE_BUCKET_SIZE = Decimal("5")


def dedup_key(
    product_url: Optional[str],
    brand: Optional[str],
    name: str,
    sale_price: Optional[Decimal],
) -> str:
    """Compute the deduplication key for an offer.

    Args:
        product_url: Product page URL, if any
        brand: Brand name
        name: Product name
        sale_price: Sale price used for the price bucket

    Returns:
        "url:<normalized url>" or "fp:<sha1 fingerprint>"
    """
    if product_url and product_url.strip():
        return f"url:{normalize_url(product_url)}"

    bucket = int(sale_price // PRICE_BUCKET_SIZE) if sale_price is not None else -1
    raw = f"{(brand or '').strip().lower()}|{normalize_name(name)}|{bucket}"
    return f"fp:{hashlib.sha1(raw.encode('utf-8')).hexdigest()}"


def canonical_id(key: str) -> str:
    """Stable offer id derived from its dedup key."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, key))


def _better(candidate: ValidatedOffer, current: ValidatedOffer) -> bool:
    if candidate.confidence_score != current.confidence_score:
        return candidate.confidence_score > current.confidence_score
    return candidate.sale_price < current.sale_price


def dedupe(offers: List[ValidatedOffer]) -> List[ValidatedOffer]:
    """Keep one representative offer per dedup key.

    The representative has the highest confidence, then the lowest sale
    price, then was seen first. Representatives keep their input order,
    so the output is a subsequence of the input.

    Args:
        offers: Offers in source-query order

    Returns:
        Deduplicated offers
    """
    # Index of the winning offer per key
    best: Dict[str, int] = {}
    for idx, offer in enumerate(offers):
        current = best.get(offer.dedup_key)
        if current is None or _better(offer, offers[current]):
            best[offer.dedup_key] = idx

    result = [offers[idx] for idx in sorted(best.values())]

    if len(result) != len(offers):
        logger.debug("offers_deduplicated", before=len(offers), after=len(result))
    return result
