"""Tests for confidence scoring."""

from decimal import Decimal

from promofinder.services import scoring
from promofinder.services.scoring import (
    MAX_CONFIDENCE,
    QUARANTINE_THRESHOLD,
    ConfidenceScorer,
)
from promofinder.sources.base import SourceReliability
from tests.conftest import make_candidate


class TestConfidenceScorer:

    def setup_method(self):
        self.scorer = ConfidenceScorer()

    def test_complete_api_candidate(self):
        result = self.scorer.score(make_candidate(), SourceReliability.STRUCTURED_API)

        # 85 base + image 5 + external id 5 + plausible price 3
        assert result.raw_score == 98
        assert result.score == 98
        assert result.accepted is True

    def test_complete_scraped_candidate(self):
        result = self.scorer.score(make_candidate(), SourceReliability.SCRAPED_HTML)

        assert result.score == 91

    def test_score_is_clamped(self, monkeypatch):
        monkeypatch.setitem(scoring.BASE_SCORES, SourceReliability.STRUCTURED_API, 95)

        result = self.scorer.score(make_candidate(), SourceReliability.STRUCTURED_API)

        assert result.raw_score == 108
        assert result.score == MAX_CONFIDENCE

    def test_missing_fields_penalized(self):
        candidate = make_candidate(brand=None, category=None, currency=None)
        result = self.scorer.score(candidate, SourceReliability.STRUCTURED_API)

        assert result.raw_score == 98 - 10 - 5 - 3
        labels = {label for label, _ in result.adjustments}
        assert {"missing_brand", "missing_category", "missing_currency"} <= labels

    def test_relative_url_penalized(self):
        result = self.scorer.score(
            make_candidate(product_url="/p/airmax-90"), SourceReliability.STRUCTURED_API
        )

        assert result.raw_score == 98 - 15

    def test_brand_mismatch_penalized(self):
        result = self.scorer.score(
            make_candidate(), SourceReliability.STRUCTURED_API, queried_brand="Adidas"
        )

        assert result.raw_score == 88

    def test_brand_match_is_case_insensitive(self):
        result = self.scorer.score(
            make_candidate(), SourceReliability.STRUCTURED_API, queried_brand="NIKE"
        )

        assert result.raw_score == 98

    def test_low_score_quarantined(self):
        candidate = make_candidate(
            name="Shoe",
            brand=None,
            image_url=None,
            external_id=None,
            product_url=None,
        )
        result = self.scorer.score(candidate, SourceReliability.SCRAPED_HTML)

        assert result.raw_score < QUARANTINE_THRESHOLD
        assert result.accepted is False

    def test_implausible_price_gets_no_bonus(self):
        result = self.scorer.score(
            make_candidate(original_price=Decimal("20000"), sale_price=Decimal("15000")),
            SourceReliability.STRUCTURED_API,
        )

        assert result.raw_score == 95
