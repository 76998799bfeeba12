"""Redis-backed translation cache.

Entries are keyed by ``trans:<src>:<tgt>:<md5 of the source text>`` and
expire after the configured TTL. Backend errors are treated as misses.
"""

import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog

from promofinder.services.cache_service import CacheService
from promofinder.translation.types import Language

logger = structlog.get_logger(__name__)

KEY_PREFIX = "trans"


def translation_cache_key(text: str, source_lang: Language, target_lang: Language) -> str:
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}:{source_lang.value}:{target_lang.value}:{digest}"


@dataclass
class CacheEntry:
    key: str
    source_lang: str
    target_lang: str
    translated_text: str
    created_at: str
    expires_at: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        return cls(**json.loads(raw))


class TranslationCache:
    """TTL cache of translated strings."""

    def __init__(self, cache: CacheService, ttl: int = 86400):
        self.cache = cache
        self.ttl = ttl
        self.logger = logger.bind(service="translation_cache")

    def _entry(
        self, text: str, translated: str, source_lang: Language, target_lang: Language
    ) -> CacheEntry:
        now = datetime.now(timezone.utc)
        return CacheEntry(
            key=translation_cache_key(text, source_lang, target_lang),
            source_lang=source_lang.value,
            target_lang=target_lang.value,
            translated_text=translated,
            created_at=now.isoformat(),
            expires_at=(now + timedelta(seconds=self.ttl)).isoformat(),
        )

    def _decode(self, raw: Optional[str]) -> Optional[str]:
        if raw is None:
            return None
        try:
            return CacheEntry.from_json(raw).translated_text
        except (ValueError, TypeError) as e:
            self.logger.warning("translation_cache_entry_invalid", error=str(e))
            return None

    async def get(
        self, text: str, source_lang: Language, target_lang: Language
    ) -> Optional[str]:
        raw = await self.cache.get(translation_cache_key(text, source_lang, target_lang))
        return self._decode(raw)

    async def get_many(
        self, texts: List[str], source_lang: Language, target_lang: Language
    ) -> List[Optional[str]]:
        keys = [translation_cache_key(t, source_lang, target_lang) for t in texts]
        return [self._decode(raw) for raw in await self.cache.get_many(keys)]

    async def set(
        self, text: str, translated: str, source_lang: Language, target_lang: Language
    ) -> CacheEntry:
        entry = self._entry(text, translated, source_lang, target_lang)
        await self.cache.set(entry.key, entry.to_json(), ttl=self.ttl)
        return entry

    async def set_many(
        self, pairs: Dict[str, str], source_lang: Language, target_lang: Language
    ) -> List[CacheEntry]:
        """Store {source text: translated text} pairs in one round trip."""
        entries = [
            self._entry(text, translated, source_lang, target_lang)
            for text, translated in pairs.items()
        ]
        await self.cache.set_many({e.key: e.to_json() for e in entries}, ttl=self.ttl)
        return entries

    async def count(self) -> int:
        return await self.cache.count_keys(f"{KEY_PREFIX}:*")

    async def clear(self) -> int:
        deleted = await self.cache.delete_pattern(f"{KEY_PREFIX}:*")
        self.logger.info("translation_cache_cleared", keys_deleted=deleted)
        return deleted
