"""Confidence scoring for discount candidates.

Each candidate starts from the base score of its source's reliability
tier, then earns bonuses for identifying details and loses points for
missing or suspicious ones. Candidates whose raw score falls below the
quarantine threshold are dropped; accepted scores never exceed 99.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from promofinder.sources.base import RawCandidate, SourceReliability
from promofinder.sources.utils.normalizer import is_valid_http_url

# ---------------------------------------------------------------------------
# Score bounds
# ---------------------------------------------------------------------------
QUARANTINE_THRESHOLD = 70
MAX_CONFIDENCE = 99

BASE_SCORES = {
    SourceReliability.STRUCTURED_API: 85,
    SourceReliability.SCRAPED_HTML: 78,
}

# ---------------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------------
IMAGE_BONUS = 5
EXTERNAL_ID_BONUS = 5
PLAUSIBLE_PRICE_BONUS = 3

MISSING_BRAND_PENALTY = 10
MISSING_CATEGORY_PENALTY = 5
MISSING_CURRENCY_PENALTY = 3
SHORT_NAME_PENALTY = 10
INVALID_URL_PENALTY = 15
BRAND_MISMATCH_PENALTY = 10

MIN_NAME_LENGTH = 5
PLAUSIBLE_PRICE_RANGE: Tuple[Decimal, Decimal] = (Decimal("1"), Decimal("5000"))


@dataclass
class ScoreResult:
    """Confidence score for one candidate.

    Attributes:
        score: Final score (clamped to MAX_CONFIDENCE)
        raw_score: Score before clamping
        accepted: False when raw_score is below QUARANTINE_THRESHOLD
        adjustments: (label, delta) pairs applied to the base score
    """

    score: int
    raw_score: int
    accepted: bool
    adjustments: List[Tuple[str, int]] = field(default_factory=list)


class ConfidenceScorer:
    """Assigns a bounded trust score to a candidate."""

    def score(
        self,
        candidate: RawCandidate,
        reliability: SourceReliability,
        queried_brand: Optional[str] = None,
    ) -> ScoreResult:
        """Score a candidate.

        Args:
            candidate: Raw candidate from a source
            reliability: Reliability tier of the source
            queried_brand: Brand the caller searched for, if any

        Returns:
            ScoreResult
        """
        adjustments: List[Tuple[str, int]] = []

        if candidate.image_url:
            adjustments.append(("image", IMAGE_BONUS))
        if candidate.external_id:
            adjustments.append(("external_id", EXTERNAL_ID_BONUS))
        if self._plausible_price(candidate.sale_price):
            adjustments.append(("plausible_price", PLAUSIBLE_PRICE_BONUS))

        if not candidate.brand:
            adjustments.append(("missing_brand", -MISSING_BRAND_PENALTY))
        if not candidate.category:
            adjustments.append(("missing_category", -MISSING_CATEGORY_PENALTY))
        if not candidate.currency:
            adjustments.append(("missing_currency", -MISSING_CURRENCY_PENALTY))
        if len(candidate.name.strip()) < MIN_NAME_LENGTH:
            adjustments.append(("short_name", -SHORT_NAME_PENALTY))
        if not is_valid_http_url(candidate.product_url):
            adjustments.append(("invalid_url", -INVALID_URL_PENALTY))
        if queried_brand and queried_brand.lower() not in candidate.name.lower():
            adjustments.append(("brand_mismatch", -BRAND_MISMATCH_PENALTY))

        raw_score = BASE_SCORES[reliability] + sum(delta for _, delta in adjustments)

        return ScoreResult(
            score=min(raw_score, MAX_CONFIDENCE),
            raw_score=raw_score,
            accepted=raw_score >= QUARANTINE_THRESHOLD,
            adjustments=adjustments,
        )

    @staticmethod
    def _plausible_price(price: Optional[Decimal]) -> bool:
        if price is None:
            return False
        low, high = PLAUSIBLE_PRICE_RANGE
        return low <= price <= high
