"""Tests for source adapters and normalization helpers."""

import json
from decimal import Decimal

import httpx
import pytest

from promofinder.core.exceptions import SourceError
from promofinder.sources.base import SourceFailureKind, SourceQuery, to_decimal
from promofinder.sources.factory import SourceRegistry
from promofinder.sources.feed import FeedSource
from promofinder.sources.rainforest import RainforestSource
from promofinder.sources.rapidapi import RapidApiSource
from promofinder.sources.utils.normalizer import (
    CategoryClassifier,
    PriceNormalizer,
    extract_brand,
    is_valid_http_url,
    normalize_url,
    parse_count,
    parse_rating,
)


def mock_client(source, handler):
    """Route a source's HTTP client through an httpx.MockTransport."""
    transport = httpx.MockTransport(handler)
    source._client = lambda **kwargs: httpx.AsyncClient(transport=transport, **kwargs)
    return source


RAPIDAPI_PAYLOAD = {
    "status": "OK",
    "data": {
        "products": [
            {
                "product_id": "123",
                "product_title": "Adidas Ultraboost Light Running Shoes",
                "product_price": "$126.00",
                "product_original_price": "$180.00",
                "product_url": "https://shop.example.com/ultraboost?utm_source=x",
                "product_photo": "https://img.example.com/ub.jpg",
                "product_rating": 4.6,
                "product_num_reviews": 312,
                "product_discount": "30%",
            },
            {"product_id": "124", "product_title": "No price", "product_price": None},
        ]
    },
}


class TestRapidApiSource:

    async def test_maps_products(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["key"] = request.headers["X-RapidAPI-Key"]
            return httpx.Response(200, json=RAPIDAPI_PAYLOAD)

        source = mock_client(RapidApiSource(api_key="secret"), handler)
        result = await source.query(SourceQuery(query="running shoes", brand="Adidas", limit=5))

        assert result.succeeded
        assert len(result.candidates) == 1
        candidate = result.candidates[0]
        assert candidate.brand == "Adidas"
        assert candidate.category == "shoes"
        assert candidate.sale_price == Decimal("126.00")
        assert candidate.original_price == Decimal("180.00")
        assert candidate.external_id == "123"
        assert seen["params"]["q"] == "Adidas running shoes sale"
        assert seen["params"]["limit"] == "5"
        assert seen["key"] == "secret"

    async def test_rate_limited_is_blocked(self):
        source = mock_client(RapidApiSource(api_key="secret"), lambda r: httpx.Response(429))

        result = await source.query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.BLOCKED_BY_TARGET

    async def test_server_error_is_upstream(self):
        source = mock_client(RapidApiSource(api_key="secret"), lambda r: httpx.Response(502))

        result = await source.query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.UPSTREAM_ERROR

    async def test_malformed_payload(self):
        source = mock_client(
            RapidApiSource(api_key="secret"),
            lambda r: httpx.Response(200, json={"status": "ERROR"}),
        )

        result = await source.query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.MALFORMED_RESPONSE

    async def test_missing_key(self):
        result = await RapidApiSource(api_key="").query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.BLOCKED_BY_TARGET

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        source = mock_client(RapidApiSource(api_key="secret"), handler)
        result = await source.query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.TIMEOUT

    async def test_string_rating_and_reviews_are_coerced(self):
        payload = {"status": "OK", "data": {"products": [{
            "product_id": "9",
            "product_title": "Vans Old Skool Sneakers",
            "product_price": "$45.00",
            "product_original_price": "$70.00",
            "product_rating": "4.3",
            "product_num_reviews": "1,204 reviews",
        }]}}
        source = mock_client(
            RapidApiSource(api_key="secret"), lambda r: httpx.Response(200, json=payload)
        )

        result = await source.query(SourceQuery(query="vans"))

        candidate = result.candidates[0]
        assert candidate.rating == 4.3
        assert candidate.review_count == 1204


class TestRainforestSource:

    async def test_maps_results_without_estimating_original(self):
        payload = {
            "request_info": {"success": True},
            "search_results": [
                {
                    "asin": "B0TEST",
                    "title": "Puma Suede Classic Sneakers",
                    "link": "https://www.amazon.com/dp/B0TEST",
                    "image": "https://m.media-amazon.com/b0test.jpg",
                    "price": {"value": 45.0, "currency": "USD"},
                    "prices": [
                        {"value": 45.0, "is_primary": True},
                        {"value": 75.0, "is_primary": False},
                    ],
                    "rating": 4.4,
                    "ratings_total": 88,
                },
                {
                    "asin": "B0NOWAS",
                    "title": "Puma Smash Sneakers",
                    "price": {"value": 40.0},
                },
            ],
        }
        source = mock_client(
            RainforestSource(api_key="secret"), lambda r: httpx.Response(200, json=payload)
        )

        result = await source.query(SourceQuery(query="puma sneakers"))

        first, second = result.candidates
        assert first.original_price == Decimal("75.0")
        assert first.brand == "Puma"
        assert second.original_price is None

    async def test_out_of_credits_is_blocked(self):
        payload = {"request_info": {"success": False, "message": "You have run out of credits"}}
        source = mock_client(
            RainforestSource(api_key="secret"), lambda r: httpx.Response(200, json=payload)
        )

        result = await source.query(SourceQuery(query="shoes"))

        assert result.failure == SourceFailureKind.BLOCKED_BY_TARGET


class TestFeedSource:

    async def test_reads_and_filters_exports(self, tmp_path):
        (tmp_path / "asos.json").write_text(json.dumps({
            "source": "asos",
            "products": [
                {
                    "name": "Nike Air Zoom Pegasus Running Shoes",
                    "salePrice": "89,99 €",
                    "originalPrice": 129.99,
                    "productUrl": "https://asos.example.com/p/1",
                    "imageUrl": "https://img.example.com/p1.jpg",
                },
                {
                    "title": "Levi's 501 Jeans",
                    "sale_price": 40,
                    "original_price": 90,
                    "url": "https://asos.example.com/p/2",
                },
            ],
        }))
        (tmp_path / "zara.json").write_text(json.dumps([
            {"name": "Nike Tech Fleece Hoodie", "salePrice": 60, "originalPrice": 100},
        ]))
        source = FeedSource(str(tmp_path))

        result = await source.query(SourceQuery(query="nike"))

        assert [c.name for c in result.candidates] == [
            "Nike Air Zoom Pegasus Running Shoes",
            "Nike Tech Fleece Hoodie",
        ]
        first = result.candidates[0]
        assert first.sale_price == Decimal("89.99")
        assert first.brand == "Nike"
        assert first.category == "shoes"
        assert first.source == "feed"

    async def test_max_price_and_limit(self, tmp_path):
        items = [
            {"name": f"Nike Runner {i}", "salePrice": 10 * i, "originalPrice": 200}
            for i in range(1, 6)
        ]
        (tmp_path / "feed.json").write_text(json.dumps(items))
        source = FeedSource(str(tmp_path), name="eu-feed")

        result = await source.query(SourceQuery(query="nike", max_price=Decimal("40"), limit=2))

        assert [c.name for c in result.candidates] == ["Nike Runner 1", "Nike Runner 2"]
        assert result.source == "eu-feed"

    async def test_missing_dir_is_empty_success(self, tmp_path):
        result = await FeedSource(str(tmp_path / "nope")).query(SourceQuery(query="nike"))

        assert result.succeeded
        assert result.candidates == []

    async def test_invalid_json_is_malformed(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json")

        result = await FeedSource(str(tmp_path)).query(SourceQuery(query="nike"))

        assert result.failure == SourceFailureKind.MALFORMED_RESPONSE


class TestSourceRegistry:

    def test_skips_api_source_without_key(self, tmp_path):
        registry = SourceRegistry()
        registry.register_source("rapidapi", RapidApiSource, api_key="")
        registry.register_source("rainforest", RainforestSource, api_key="k")
        registry.register_source("feed", FeedSource, feed_dir=str(tmp_path))

        sources = registry.build_sources(["feed", "rapidapi", "unknown", "rainforest"])

        assert [s.name for s in sources] == ["feed", "rainforest"]

    def test_rejects_non_source(self):
        with pytest.raises(ValueError):
            SourceRegistry().register_source("x", dict)


class TestNormalizer:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("$1,234.56", Decimal("1234.56")),
            ("129,99 €", Decimal("129.99")),
            (49.5, Decimal("49.5")),
            ("free", None),
            (None, None),
        ],
    )
    def test_clean_price_string(self, raw, expected):
        assert PriceNormalizer.clean_price_string(raw) == expected

    def test_normalize_url(self):
        assert (
            normalize_url("HTTPS://Shop.Example.com/p/1/?utm_campaign=x&b=2&a=1#reviews")
            == "https://shop.example.com/p/1?a=1&b=2"
        )

    def test_is_valid_http_url(self):
        assert is_valid_http_url("https://shop.example.com/p/1")
        assert not is_valid_http_url("/p/1")
        assert not is_valid_http_url("ftp://shop.example.com/p/1")
        assert not is_valid_http_url(None)

    def test_classify_and_brand(self):
        assert CategoryClassifier.classify("Converse Chuck Taylor Sneakers") == "shoes"
        assert extract_brand("new balance 574 core") == "New Balance"
        assert extract_brand("Generic Tote") is None

    def test_source_error_carries_kind(self):
        error = SourceError("rapidapi", "timeout", "slow")

        assert error.kind == "timeout"
        assert "rapidapi" in error.message

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), Decimal("NaN"), "NaN", "Infinity"])
    def test_non_finite_prices_are_dropped(self, raw):
        assert PriceNormalizer.clean_price_string(raw) is None
        assert to_decimal(raw) is None

    def test_parse_rating_and_count(self):
        assert parse_rating("4.5") == 4.5
        assert parse_rating(4) == 4.0
        assert parse_rating("n/a") is None
        assert parse_count("1,234") == 1234
        assert parse_count(12.0) == 12
        assert parse_count(None) is None
