"""Data normalization utilities for prices, names, URLs and categories."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


# Keyword-based category classifier for fashion offers
CATEGORY_KEYWORDS = {
    "shoes": [
        "shoes", "shoe", "sneakers", "sneaker", "boots", "sandals", "heels",
        "flats", "loafers", "trainers", "footwear",
    ],
    "clothing": [
        "clothing", "apparel", "dress", "shirt", "pants", "jeans", "jacket",
        "coat", "t-shirt", "sweater", "hoodie", "shorts", "skirt", "leggings",
    ],
    "accessories": [
        "accessories", "belt", "scarf", "hat", "cap", "gloves", "tie", "wallet",
    ],
    "bags": [
        "bag", "backpack", "handbag", "purse", "tote", "clutch", "crossbody",
    ],
    "jewelry": [
        "jewelry", "necklace", "bracelet", "earrings", "pendant",
    ],
    "watches": [
        "watch", "watches", "timepiece", "smartwatch", "chronograph",
    ],
    "sunglasses": [
        "sunglasses", "eyewear", "shades",
    ],
}

# Brands recognized in product titles when a source omits the brand field
KNOWN_BRANDS = [
    "nike", "adidas", "zara", "h&m", "mango", "asos", "uniqlo", "pull&bear",
    "bershka", "stradivarius", "gap", "levi's", "tommy hilfiger",
    "calvin klein", "guess", "massimo dutti", "vans", "converse",
    "new balance", "puma", "reebok", "skechers", "asics",
]

TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "ref_",
    "tag",
    "source",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
}


class PriceNormalizer:
    """Price parsing utilities for the formats sources return."""

    @staticmethod
    def clean_price_string(raw) -> Optional[Decimal]:
        """Parse a price string and extract numeric value.

        Handles various formats:
        - "$1,234.56" -> 1234.56
        - "129,99 €" -> 129.99
        - "£12" -> 12
        - 49.5 (number) -> 49.5

        Args:
            raw: Raw price string or number

        Returns:
            Decimal price value, or None if parsing fails
        """
        if raw is None or raw == "":
            return None
        if isinstance(raw, (int, float, Decimal)):
            value = Decimal(str(raw))
            return value if value.is_finite() else None

        cleaned = re.sub(r"[^\d.,]", "", str(raw))
        if not cleaned:
            return None

        # A trailing ",dd" without any "." is a decimal comma (EU format)
        if "," in cleaned and "." not in cleaned and re.search(r",\d{1,2}$", cleaned):
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None

    @staticmethod
    def extract_price_from_text(text: str) -> Optional[Decimal]:
        """Extract the first positive price-like number from text."""
        if not text:
            return None

        for match in re.findall(r"\d[\d,.]*", text):
            price = PriceNormalizer.clean_price_string(match)
            if price and price > 0:
                return price

        return None


class CategoryClassifier:
    """Automatic category classification based on product title keywords."""

    @staticmethod
    def classify(title: str, source_category: Optional[str] = None) -> Optional[str]:
        """Classify a product into a category slug.

        The source's own category label is checked first, then the title.

        Args:
            title: Product title
            source_category: Optional category label reported by the source

        Returns:
            Category slug (e.g., "shoes") or None
        """
        for text in (source_category, title):
            if not text:
                continue
            words = set(re.findall(r"[a-z][a-z\-]*", text.lower()))
            scores = {}
            for cat_slug, keywords in CATEGORY_KEYWORDS.items():
                score = sum(1 for kw in keywords if kw in words)
                if score > 0:
                    scores[cat_slug] = score
            if scores:
                return max(scores, key=scores.get)

        return None


def extract_brand(title: str) -> Optional[str]:
    """Recognize a known brand in a product title, title-cased."""
    if not title:
        return None
    lowered = title.lower()
    for brand in KNOWN_BRANDS:
        if re.search(rf"(?<![a-z]){re.escape(brand)}(?![a-z])", lowered):
            return " ".join(w[:1].upper() + w[1:] for w in brand.split(" "))
    return None


def normalize_name(name: str) -> str:
    """Lowercase a product name, drop punctuation and collapse whitespace."""
    if not name:
        return ""
    cleaned = re.sub(r"[^\w\s]", " ", name.lower())
    return " ".join(cleaned.split())


def normalize_url(url: str) -> str:
    """Normalize a URL by removing tracking parameters.

    Also lowercases scheme and host, drops the fragment and any trailing
    slash on the path, and sorts the remaining query parameters so that
    equivalent links compare equal.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    parsed = urlparse(url.strip())
    query_params = parse_qs(parsed.query)

    filtered_params = {
        k: v for k, v in sorted(query_params.items()) if k.lower() not in TRACKING_PARAMS
    }
    new_query = urlencode(filtered_params, doseq=True)

    path = parsed.path.rstrip("/") or ""

    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, new_query, "")
    )


def is_valid_http_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_rating(value) -> Optional[float]:
    """Coerce a source rating ("4.5", 4) to a finite float."""
    if value is None or isinstance(value, bool):
        return None
    rating = PriceNormalizer.clean_price_string(value)
    return float(rating) if rating is not None else None


def parse_count(value) -> Optional[int]:
    """Coerce a review count ("1,234", "312 reviews", 12.0) to an int."""
    if value is None or isinstance(value, bool):
        return None
    count = PriceNormalizer.clean_price_string(value)
    return int(count) if count is not None else None
