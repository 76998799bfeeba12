"""Ordered translation provider fallback chain."""

from dataclasses import dataclass
from typing import List

import structlog

from promofinder.core.exceptions import TranslationProviderError
from promofinder.translation.providers import TranslationProvider
from promofinder.translation.types import Language

logger = structlog.get_logger(__name__)


@dataclass
class ChainResult:
    """Translations plus the provider that produced them."""

    texts: List[str]
    provider: str
    cacheable: bool


class ProviderChain:
    """Tries providers in order until one succeeds."""

    def __init__(self, providers: List[TranslationProvider]):
        if not providers:
            raise ValueError("ProviderChain needs at least one provider")
        self.providers = list(providers)

    @property
    def primary(self) -> TranslationProvider:
        return self.providers[0]

    async def batch_translate(
        self, texts: List[str], source_lang: Language, target_lang: Language
    ) -> ChainResult:
        """Translate with the first provider that does not fail.

        Raises:
            TranslationProviderError: If every provider failed
        """
        last_error = None
        for provider in self.providers:
            try:
                translated = await provider.batch_translate(texts, source_lang, target_lang)
            except TranslationProviderError as e:
                logger.warning(
                    "translation_provider_failed",
                    provider=provider.name,
                    error=e.message,
                )
                last_error = e
                continue
            return ChainResult(
                texts=translated, provider=provider.name, cacheable=provider.cacheable
            )

        raise last_error
