"""Translation endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from promofinder.core.exceptions import TranslationProviderError
from promofinder.dependencies import get_translation_service
from promofinder.schemas import (
    BatchTranslateRequest,
    BatchTranslateResponse,
    TranslateRequest,
    TranslateResponse,
    TranslationCacheStats,
)
from promofinder.translation.translator import Translator

router = APIRouter()


@router.post("", response_model=TranslateResponse)
async def translate_text(
    body: TranslateRequest,
    translator: Translator = Depends(get_translation_service),
):
    """Translate one string. Falls back to the original text when no provider can."""
    translated = await translator.translate(body.text, body.source_lang, body.target_lang)
    return TranslateResponse(
        text=body.text,
        translated_text=translated,
        source_lang=body.source_lang,
        target_lang=body.target_lang,
    )


@router.post("/batch", response_model=BatchTranslateResponse)
async def translate_batch(
    body: BatchTranslateRequest,
    translator: Translator = Depends(get_translation_service),
):
    translations = await translator.batch_translate(
        body.texts, body.source_lang, body.target_lang
    )
    return BatchTranslateResponse(
        translations=translations,
        source_lang=body.source_lang,
        target_lang=body.target_lang,
    )


@router.get("/cache/stats", response_model=TranslationCacheStats)
async def translation_cache_stats(translator: Translator = Depends(get_translation_service)):
    return await translator.get_cache_stats()


@router.delete("/cache")
async def clear_translation_cache(translator: Translator = Depends(get_translation_service)):
    deleted = await translator.clear_cache()
    return {"status": "success", "keys_deleted": deleted}


@router.get("/usage")
async def translation_usage(translator: Translator = Depends(get_translation_service)):
    """Character usage reported by the primary provider."""
    try:
        usage = await translator.get_provider_usage()
    except TranslationProviderError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"provider": translator.provider_name, "usage": usage}
