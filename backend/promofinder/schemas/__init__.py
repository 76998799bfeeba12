"""Pydantic schemas for request/response validation."""

from promofinder.schemas.common import ApiResponse, ErrorDetail, ErrorResponse, SearchMeta
from promofinder.schemas.health import HealthCheckResponse
from promofinder.schemas.offer import OfferResponse, SearchResponseData, SourceOutcomeResponse
from promofinder.schemas.stats import ProviderUsage, UsageStatsResponse
from promofinder.schemas.translation import (
    BatchTranslateRequest,
    BatchTranslateResponse,
    TranslateRequest,
    TranslateResponse,
    TranslationCacheStats,
)

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "SearchMeta",
    "HealthCheckResponse",
    "OfferResponse",
    "SearchResponseData",
    "SourceOutcomeResponse",
    "ProviderUsage",
    "UsageStatsResponse",
    "BatchTranslateRequest",
    "BatchTranslateResponse",
    "TranslateRequest",
    "TranslateResponse",
    "TranslationCacheStats",
]
