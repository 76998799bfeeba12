"""Translation providers.

Each provider either returns translations or raises
TranslationProviderError; the provider chain moves on to the next one.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

import httpx
import structlog

from promofinder.core.exceptions import TranslationProviderError
from promofinder.sources.utils.retry import connect_retry, http_retry
from promofinder.translation.types import (
    DEEPL_SOURCE_CODES,
    DEEPL_TARGET_CODES,
    Language,
)

logger = structlog.get_logger(__name__)


class TranslationProvider(ABC):
    """Capability interface for a translation backend."""

    name: str = ""
    # False for providers whose output must never be cached
    cacheable: bool = True

    async def translate(
        self, text: str, source_lang: Language, target_lang: Language
    ) -> str:
        return (await self.batch_translate([text], source_lang, target_lang))[0]

    @abstractmethod
    async def batch_translate(
        self, texts: List[str], source_lang: Language, target_lang: Language
    ) -> List[str]:
        """Translate texts in one call, returning results in input order.

        Raises:
            TranslationProviderError: If the backend cannot translate
        """


class DeepLProvider(TranslationProvider):
    """DeepL REST API provider.

    Documentation: https://developers.deepl.com/docs/api-reference/translate
    """

    name = "deepl"

    FREE_API_URL = "https://api-free.deepl.com/v2"
    PRO_API_URL = "https://api.deepl.com/v2"

    def __init__(self, api_key: str, free_api: bool = True, timeout: float = 10.0):
        self.api_key = api_key
        self.base_url = self.FREE_API_URL if free_api else self.PRO_API_URL
        self.timeout = timeout
        self.logger = logger.bind(provider=self.name)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"DeepL-Auth-Key {self.api_key}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    @connect_retry
    async def _post_translate(self, body: Dict[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post("/translate", json=body, headers=self._headers())
            response.raise_for_status()
            return response.json()

    async def batch_translate(
        self, texts: List[str], source_lang: Language, target_lang: Language
    ) -> List[str]:
        if not texts:
            return []
        if not self.api_key:
            raise TranslationProviderError(self.name, "API key not configured")

        body = {
            "text": texts,
            "source_lang": DEEPL_SOURCE_CODES[source_lang],
            "target_lang": DEEPL_TARGET_CODES[target_lang],
            "preserve_formatting": True,
        }

        try:
            payload = await self._post_translate(body)
            translated = [item["text"] for item in payload["translations"]]
        except httpx.HTTPError as e:
            raise TranslationProviderError(self.name, str(e)) from e
        except (KeyError, TypeError, ValueError) as e:
            raise TranslationProviderError(self.name, f"malformed response: {e}") from e

        if len(translated) != len(texts):
            raise TranslationProviderError(
                self.name,
                f"expected {len(texts)} translations, got {len(translated)}",
            )

        self.logger.debug(
            "deepl_translated",
            count=len(texts),
            source_lang=source_lang.value,
            target_lang=target_lang.value,
        )
        return translated

    @http_retry
    async def _get_usage(self) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get("/usage", headers=self._headers())
            response.raise_for_status()
            return response.json()

    async def get_usage(self) -> Dict[str, int]:
        """Character usage for the current billing period.

        Raises:
            TranslationProviderError: If usage cannot be read
        """
        if not self.api_key:
            raise TranslationProviderError(self.name, "API key not configured")
        try:
            payload = await self._get_usage()
            return {
                "characterCount": int(payload["character_count"]),
                "characterLimit": int(payload["character_limit"]),
            }
        except httpx.HTTPError as e:
            raise TranslationProviderError(self.name, str(e)) from e
        except (KeyError, TypeError, ValueError) as e:
            raise TranslationProviderError(self.name, f"malformed response: {e}") from e


class PassThroughProvider(TranslationProvider):
    """Last resort: returns the input unchanged. Never cached."""

    name = "passthrough"
    cacheable = False

    async def batch_translate(
        self, texts: List[str], source_lang: Language, target_lang: Language
    ) -> List[str]:
        logger.warning(
            "translation_passthrough",
            count=len(texts),
            source_lang=source_lang.value,
            target_lang=target_lang.value,
        )
        return list(texts)
