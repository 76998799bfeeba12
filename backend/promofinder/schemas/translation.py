"""Translation request/response schemas."""

from typing import List

from pydantic import BaseModel, Field

from promofinder.translation.types import Language


class TranslateRequest(BaseModel):
    text: str = Field(..., max_length=5000)
    source_lang: Language = Language.EN
    target_lang: Language


class TranslateResponse(BaseModel):
    text: str
    translated_text: str
    source_lang: Language
    target_lang: Language


class BatchTranslateRequest(BaseModel):
    texts: List[str] = Field(..., min_length=1, max_length=100)
    source_lang: Language = Language.EN
    target_lang: Language


class BatchTranslateResponse(BaseModel):
    translations: List[str]
    source_lang: Language
    target_lang: Language


class TranslationCacheStats(BaseModel):
    hits: int
    misses: int
    totalKeys: int
    connected: bool
    ttlSeconds: int
    provider: str
