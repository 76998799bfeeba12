"""Short-lived cache of raw candidate lists per (source, query).

A hit lets the aggregator answer a repeated query without an outbound
attempt, so it spends no daily budget.
"""

import hashlib
import json
from typing import List, Optional

import structlog

from promofinder.services.cache_service import CacheService
from promofinder.sources.base import RawCandidate, SourceQuery

logger = structlog.get_logger(__name__)

KEY_PREFIX = "api"


def result_cache_key(source: str, query: SourceQuery) -> str:
    """Cache key "api:<source>:<md5 of the query params>"."""
    params = json.dumps(query.cache_params(), sort_keys=True)
    digest = hashlib.md5(params.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}:{source}:{digest}"


class SourceResultCache:
    """Stores successful source results as JSON lists of candidates."""

    def __init__(self, cache: CacheService, ttl: int):
        self.cache = cache
        self.ttl = ttl

    async def get(self, source: str, query: SourceQuery) -> Optional[List[RawCandidate]]:
        key = result_cache_key(source, query)
        value = await self.cache.get(key)
        if value is None:
            return None
        try:
            return [RawCandidate.from_dict(item) for item in json.loads(value)]
        except (ValueError, TypeError) as e:
            logger.warning("result_cache_entry_invalid", key=key, error=str(e))
            await self.cache.delete(key)
            return None

    async def set(self, source: str, query: SourceQuery, candidates: List[RawCandidate]) -> bool:
        payload = json.dumps([c.to_dict() for c in candidates])
        return await self.cache.set(result_cache_key(source, query), payload, ttl=self.ttl)

    async def count(self) -> int:
        return await self.cache.count_keys(f"{KEY_PREFIX}:*")
