"""Pytest configuration and shared fixtures."""

import asyncio
import fnmatch
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from promofinder.core.exceptions import TranslationProviderError
from promofinder.services.cache_service import CacheService
from promofinder.services.usage_tracker import UsageTracker
from promofinder.sources.base import (
    BaseSource,
    RawCandidate,
    SourceQuery,
    SourceReliability,
)
from promofinder.translation.cache import TranslationCache
from promofinder.translation.chain import ProviderChain
from promofinder.translation.providers import PassThroughProvider, TranslationProvider
from promofinder.translation.translator import Translator


# ============================================================================
# FAKES
# ============================================================================

class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._ops = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self._ops.clear()

    def set(self, name: str, value: str, ex: Optional[int] = None):
        self._ops.append((name, value, ex))
        return self

    async def execute(self):
        results = []
        for name, value, ex in self._ops:
            results.append(await self._redis.set(name, value, ex=ex))
        self._ops.clear()
        return results


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.closed = False

    async def get(self, name: str) -> Optional[str]:
        return self._store.get(name)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        return [self._store.get(k) for k in keys]

    async def set(self, name: str, value: str, ex: Optional[int] = None):
        self._store[name] = value
        self.ttls[name] = ex
        return True

    async def delete(self, *names: str) -> int:
        deleted = 0
        for name in names:
            if self._store.pop(name, None) is not None:
                deleted += 1
        return deleted

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        for key in list(self._store):
            if match is None or fnmatch.fnmatch(key, match):
                yield key

    async def ping(self) -> bool:
        return True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True

    def keys_matching(self, pattern: str) -> List[str]:
        return [k for k in self._store if fnmatch.fnmatch(k, pattern)]


class BrokenRedis:
    """Redis client whose every call fails with a connection error."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise RedisConnectionError("connection refused")

        return fail

    def pipeline(self, transaction: bool = True):
        raise RedisConnectionError("connection refused")

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        raise RedisConnectionError("connection refused")
        yield


class FakeSource(BaseSource):
    """Source returning canned candidates, raising, or sleeping."""

    def __init__(
        self,
        name: str,
        candidates: Optional[List[RawCandidate]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        reliability: SourceReliability = SourceReliability.STRUCTURED_API,
    ):
        self.name = name
        self.reliability = reliability
        super().__init__()
        self.candidates = candidates or []
        self.error = error
        self.delay = delay
        self.calls = 0
        self.queries: List[SourceQuery] = []

    async def fetch_candidates(self, query: SourceQuery) -> List[RawCandidate]:
        self.calls += 1
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.candidates)


class CountingProvider(TranslationProvider):
    """Uppercases text and records every call."""

    name = "counting"

    def __init__(self, fail_times: int = 0):
        self.calls: List[List[str]] = []
        self.fail_times = fail_times

    async def batch_translate(self, texts, source_lang, target_lang):
        self.calls.append(list(texts))
        if len(self.calls) <= self.fail_times:
            raise TranslationProviderError(self.name, "quota exceeded")
        return [f"{t.upper()}[{target_lang.value}]" for t in texts]


def make_translator(cache_service: CacheService, provider: TranslationProvider) -> Translator:
    chain = ProviderChain([provider, PassThroughProvider()])
    return Translator(TranslationCache(cache_service, ttl=86400), chain)


def make_candidate(**overrides) -> RawCandidate:
    """Well-formed candidate: 30% off, scores 98 from an API source."""
    values = dict(
        name="Nike Air Max 90",
        source="fake",
        brand="Nike",
        category="shoes",
        original_price=Decimal("100.00"),
        sale_price=Decimal("70.00"),
        currency="USD",
        image_url="https://img.example.com/airmax.jpg",
        product_url="https://shop.example.com/p/airmax-90",
        external_id="sku-1",
    )
    values.update(overrides)
    return RawCandidate(**values)


class FixedClock:
    """Mutable clock for usage tracker tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache_service(fake_redis: FakeRedis) -> CacheService:
    return CacheService("redis://fake", client=fake_redis)


@pytest.fixture
def broken_cache_service() -> CacheService:
    return CacheService("redis://fake", client=BrokenRedis())


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def tracker(clock: FixedClock) -> UsageTracker:
    return UsageTracker(default_limit=100, clock=clock)
