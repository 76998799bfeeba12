"""Redis caching service shared by the source result cache and the
translation cache.

Backend failures never propagate: reads degrade to misses and writes
report False, so the pipeline keeps running without Redis.
"""

from typing import Dict, List, Optional

import structlog
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from promofinder.config import settings

logger = structlog.get_logger(__name__)


class CacheService:
    """Async Redis cache service with TTL support and hit/miss counters."""

    def __init__(self, redis_url: str, client: Optional[Redis] = None):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            client: Pre-built client; when given, no connection is created
        """
        self.redis_url = redis_url
        self._redis: Optional[Redis] = client
        self.hits = 0
        self.misses = 0
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        """Get or create Redis connection.

        Returns:
            Redis client instance
        """
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    def _count(self, hit: bool, key: str) -> None:
        if hit:
            self.hits += 1
            self.logger.debug("cache_hit", key=key)
        else:
            self.misses += 1
            self.logger.debug("cache_miss", key=key)

    async def get(self, key: str) -> Optional[str]:
        """Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value as string, or None if not found or error
        """
        try:
            redis = await self._get_redis()
            value = await redis.get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e))
            self.misses += 1
            return None

        self._count(value is not None, key)
        return value

    async def get_many(self, keys: List[str]) -> List[Optional[str]]:
        """Get several values in one round trip.

        Returns:
            Values in key order; all None on error
        """
        if not keys:
            return []
        try:
            redis = await self._get_redis()
            values = await redis.mget(keys)
        except RedisError as e:
            self.logger.error("cache_mget_failed", keys=len(keys), error=str(e))
            self.misses += len(keys)
            return [None] * len(keys)

        for key, value in zip(keys, values):
            self._count(value is not None, key)
        return list(values)

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        """Set a value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (string)
            ttl: Time-to-live in seconds

        Returns:
            True if successful, False on error
        """
        try:
            redis = await self._get_redis()
            await redis.set(key, value, ex=ttl)
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e))
            return False

        self.logger.debug("cache_set", key=key, ttl=ttl, value_length=len(value))
        return True

    async def set_many(self, items: Dict[str, str], ttl: int = 300) -> bool:
        """Set several values with the same TTL in one pipeline."""
        if not items:
            return True
        try:
            redis = await self._get_redis()
            async with redis.pipeline(transaction=False) as pipe:
                for key, value in items.items():
                    pipe.set(key, value, ex=ttl)
                await pipe.execute()
        except RedisError as e:
            self.logger.error("cache_mset_failed", keys=len(items), error=str(e))
            return False

        self.logger.debug("cache_set_many", keys=len(items), ttl=ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key from cache.

        Returns:
            True if key was deleted, False if not found or error
        """
        try:
            redis = await self._get_redis()
            result = await redis.delete(key)
        except RedisError as e:
            self.logger.error("cache_delete_failed", key=key, error=str(e))
            return False

        return bool(result)

    async def _scan(self, pattern: str) -> List[str]:
        redis = await self._get_redis()
        keys = []
        async for key in redis.scan_iter(match=pattern, count=100):
            keys.append(key)
        return keys

    async def count_keys(self, pattern: str) -> int:
        """Number of keys matching a pattern, 0 on error."""
        try:
            return len(await self._scan(pattern))
        except RedisError as e:
            self.logger.error("cache_count_failed", pattern=pattern, error=str(e))
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a pattern.

        Args:
            pattern: Redis pattern (e.g., "trans:*")

        Returns:
            Number of keys deleted, 0 on error
        """
        try:
            keys = await self._scan(pattern)
            deleted = await (await self._get_redis()).delete(*keys) if keys else 0
        except RedisError as e:
            self.logger.error("cache_pattern_delete_failed", pattern=pattern, error=str(e))
            return 0

        self.logger.info("cache_pattern_delete", pattern=pattern, keys_deleted=deleted)
        return deleted

    async def health_check(self) -> bool:
        """Check Redis connectivity.

        Returns:
            True if Redis is healthy, False otherwise
        """
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True
        except (RedisError, OSError) as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    def stats(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses}

    async def close(self) -> None:
        """Close Redis connection. Called on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the global cache service instance.

    Returns:
        CacheService instance
    """
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        logger.info("cache_service_initialized", redis_url=settings.REDIS_URL)

    return _cache_instance
