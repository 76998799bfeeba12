"""Translation service: cache lookup first, provider chain on miss.

Translations produced by a cacheable provider are written to the cache
before they are returned; pass-through output never is.
"""

from typing import Any, Dict, List, Optional, Union

import structlog

from promofinder.config import settings
from promofinder.core.exceptions import TranslationProviderError
from promofinder.services.cache_service import get_cache_service
from promofinder.services.offers import ValidatedOffer
from promofinder.translation.cache import TranslationCache
from promofinder.translation.chain import ProviderChain
from promofinder.translation.providers import DeepLProvider, PassThroughProvider
from promofinder.translation.types import Language

logger = structlog.get_logger(__name__)

LanguageLike = Union[Language, str]


def _is_blank(text: str) -> bool:
    return not text or not text.strip()


class Translator:
    """Translates product text with caching and provider fallback."""

    def __init__(self, cache: TranslationCache, chain: ProviderChain):
        """Initialize translator.

        Args:
            cache: Translation cache
            chain: Providers in fallback order, primary first
        """
        self.cache = cache
        self.chain = chain
        self.logger = logger.bind(service="translator")

    @property
    def provider_name(self) -> str:
        return self.chain.primary.name

    async def translate(
        self,
        text: str,
        source_lang: LanguageLike = Language.EN,
        target_lang: LanguageLike = Language.EN,
    ) -> str:
        """Translate one string.

        Args:
            text: Source text
            source_lang: Language of text
            target_lang: Desired language

        Returns:
            Translated text, or the input when no provider could translate it

        Raises:
            ValueError: If a language is not supported
        """
        source, target = Language(source_lang), Language(target_lang)
        if source == target or _is_blank(text):
            return text

        cached = await self.cache.get(text, source, target)
        if cached is not None:
            return cached

        try:
            result = await self.chain.batch_translate([text], source, target)
        except TranslationProviderError as e:
            self.logger.error("translation_failed", error=e.message)
            return text

        translated = result.texts[0]
        if result.cacheable:
            await self.cache.set(text, translated, source, target)
        return translated

    async def batch_translate(
        self,
        texts: List[str],
        source_lang: LanguageLike = Language.EN,
        target_lang: LanguageLike = Language.EN,
    ) -> List[str]:
        """Translate several strings with at most one provider call.

        Cached entries are served from the cache; the remaining distinct
        strings go to the provider chain together.

        Returns:
            Translations in input order
        """
        source, target = Language(source_lang), Language(target_lang)
        results = list(texts)
        if source == target:
            return results

        positions = [i for i, text in enumerate(texts) if not _is_blank(text)]
        if not positions:
            return results

        cached = await self.cache.get_many([texts[i] for i in positions], source, target)

        missing: List[str] = []
        for i, value in zip(positions, cached):
            if value is not None:
                results[i] = value
            elif texts[i] not in missing:
                missing.append(texts[i])

        self.logger.debug(
            "batch_translate",
            total=len(texts),
            cached=len(positions) - sum(1 for v in cached if v is None),
            to_translate=len(missing),
        )
        if not missing:
            return results

        try:
            result = await self.chain.batch_translate(missing, source, target)
        except TranslationProviderError as e:
            self.logger.error("batch_translation_failed", error=e.message)
            return results

        translated = dict(zip(missing, result.texts))
        if result.cacheable:
            await self.cache.set_many(translated, source, target)

        for i in positions:
            if texts[i] in translated:
                results[i] = translated[texts[i]]
        return results

    async def translate_offer(
        self,
        offer: ValidatedOffer,
        target_lang: LanguageLike,
        source_lang: LanguageLike = Language.EN,
    ) -> Dict[str, Any]:
        """Translate an offer's name and description in one batch."""
        name, description = await self.batch_translate(
            [offer.name, offer.description or ""], source_lang, target_lang
        )
        return {
            "id": offer.id,
            "name": name,
            "description": description,
            "language": Language(target_lang).value,
            "original_language": Language(source_lang).value,
        }

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Hit/miss counters, stored key count and backend connectivity."""
        connected = await self.cache.cache.health_check()
        counters = self.cache.cache.stats()
        return {
            "hits": counters["hits"],
            "misses": counters["misses"],
            "totalKeys": await self.cache.count() if connected else 0,
            "connected": connected,
            "ttlSeconds": self.cache.ttl,
            "provider": self.provider_name,
        }

    async def clear_cache(self) -> int:
        return await self.cache.clear()

    async def get_provider_usage(self) -> Optional[Dict[str, int]]:
        """Primary provider's billing usage, None when it does not report any."""
        provider = self.chain.primary
        if not isinstance(provider, DeepLProvider):
            return None
        return await provider.get_usage()


# Global translator instance
_translator_instance: Optional[Translator] = None


def get_translator() -> Translator:
    """Get or create the global translator.

    Without a DeepL key the chain holds only the pass-through provider.
    """
    global _translator_instance

    if _translator_instance is None:
        providers = []
        if settings.DEEPL_API_KEY:
            providers.append(
                DeepLProvider(
                    api_key=settings.DEEPL_API_KEY,
                    free_api=settings.DEEPL_FREE_API,
                    timeout=settings.TRANSLATION_TIMEOUT_SECONDS,
                )
            )
        else:
            logger.warning("deepl_disabled", reason="api_key_missing")
        providers.append(PassThroughProvider())

        _translator_instance = Translator(
            cache=TranslationCache(get_cache_service(), ttl=settings.TRANSLATION_CACHE_TTL),
            chain=ProviderChain(providers),
        )

    return _translator_instance
