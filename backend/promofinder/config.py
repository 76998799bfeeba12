"""Application configuration via Pydantic Settings."""

from typing import Dict, List
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Redis (translation cache + source result cache)
    REDIS_URL: str = "redis://localhost:6379/0"

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Discount validation bounds (percent)
    DISCOUNT_FLOOR: int = 10
    DISCOUNT_CEILING: int = 90

    # Source querying
    SOURCE_QUERY_TIMEOUT_SECONDS: float = 15.0
    API_RATE_LIMIT: int = 100  # default daily budget per source
    SOURCE_DAILY_LIMITS: str = ""  # e.g. "rapidapi=100,rainforest=50"
    ENABLED_SOURCES: str = "rapidapi,rainforest,feed"

    # RapidAPI real-time product search
    RAPIDAPI_KEY: str = ""

    # Rainforest API (Amazon product data)
    RAINFOREST_API_KEY: str = ""

    # Directory holding JSON exports written by the external headless scrapers
    FEED_DIR: str = "./data/feeds"

    # Per-source raw result cache
    RESULT_CACHE_ENABLED: bool = True
    API_CACHE_TTL: int = 6 * 60 * 60  # 6 hours

    # Translation
    DEEPL_API_KEY: str = ""
    DEEPL_FREE_API: bool = True
    TRANSLATION_TIMEOUT_SECONDS: float = 10.0
    TRANSLATION_CACHE_TTL: int = 24 * 60 * 60  # 24 hours

    # Background refresh
    REFRESH_INTERVAL_MINUTES: int = 60
    REFRESH_QUERIES: str = ""  # Comma-separated free-text queries

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    @model_validator(mode="after")
    def check_discount_bounds(self) -> "Settings":
        """Floor must not exceed ceiling, both within 0..100."""
        if not 0 <= self.DISCOUNT_FLOOR <= self.DISCOUNT_CEILING <= 100:
            raise ValueError(
                f"Invalid discount bounds: floor={self.DISCOUNT_FLOOR} "
                f"ceiling={self.DISCOUNT_CEILING}"
            )
        return self

    def get_enabled_sources(self) -> List[str]:
        """Parse ENABLED_SOURCES into a list of source identifiers.

        Returns:
            List of source names in configured (query) order
        """
        if not self.ENABLED_SOURCES:
            return []
        return [s.strip() for s in self.ENABLED_SOURCES.split(",") if s.strip()]

    def get_daily_limits(self) -> Dict[str, int]:
        """Parse SOURCE_DAILY_LIMITS ("name=limit,...") into a dict.

        Entries that are not of the form name=int, or whose limit is negative,
        are ignored.
        """
        limits: Dict[str, int] = {}
        for entry in self.SOURCE_DAILY_LIMITS.split(","):
            name, sep, value = entry.partition("=")
            if not sep:
                continue
            try:
                limit = int(value.strip())
            except ValueError:
                continue
            if limit >= 0:
                limits[name.strip()] = limit
        return limits

    def get_refresh_queries(self) -> List[str]:
        if not self.REFRESH_QUERIES:
            return []
        return [q.strip() for q in self.REFRESH_QUERIES.split(",") if q.strip()]


settings = Settings()
