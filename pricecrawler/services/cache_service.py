"""Result cache for aggregated price queries.

Entries map a normalized product name to the AggregateResult it
produced. There is no TTL: an entry lives until it is invalidated (the
item's text was edited) or the whole cache is cleared.

Two backends share one async interface:
- MemoryResultCache: in-process dict guarded by a lock (default)
- RedisResultCache: shared across processes, JSON values without expiry
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from pricecrawler.config import settings
from pricecrawler.scrapers.base import AggregateResult
from pricecrawler.scrapers.utils.normalizer import normalize_query

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached result and when it was captured."""

    result: AggregateResult
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        return json.dumps(
            {"result": self.result.to_dict(), "captured_at": self.captured_at.isoformat()}
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            result=AggregateResult.from_dict(data["result"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
        )


class ResultCache(ABC):
    """Async cache interface keyed by product name.

    Keys are normalized on the way in, so callers pass product names as
    the user typed them.
    """

    @staticmethod
    def make_key(product_name: str) -> str:
        return normalize_query(product_name)

    @abstractmethod
    async def get_entry(self, product_name: str) -> Optional[CacheEntry]:
        """Return the cached entry, or None on a miss."""

    @abstractmethod
    async def put(self, product_name: str, result: AggregateResult) -> None:
        """Store a result, replacing any previous entry."""

    @abstractmethod
    async def invalidate(self, product_name: str) -> bool:
        """Drop one entry. Returns True if something was removed."""

    @abstractmethod
    async def clear(self) -> int:
        """Drop every entry. Returns the number removed."""

    async def get(self, product_name: str) -> Optional[AggregateResult]:
        """Return the cached result, or None on a miss."""
        entry = await self.get_entry(product_name)
        return entry.result if entry else None

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class MemoryResultCache(ResultCache):
    """In-process cache.

    Writers (put/invalidate/clear) and readers hold the same lock, so a
    get never observes a half-applied write even with callers on several
    threads. Growth is unbounded within one session.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.logger = logger.bind(service="memory_result_cache")

    async def get_entry(self, product_name: str) -> Optional[CacheEntry]:
        key = self.make_key(product_name)
        with self._lock:
            entry = self._entries.get(key)

        if entry:
            self.logger.debug("cache_hit", key=key)
        else:
            self.logger.debug("cache_miss", key=key)
        return entry

    async def put(self, product_name: str, result: AggregateResult) -> None:
        key = self.make_key(product_name)
        entry = CacheEntry(result=result)
        with self._lock:
            self._entries[key] = entry
        self.logger.debug("cache_set", key=key, quotes=len(result.quotes))

    async def invalidate(self, product_name: str) -> bool:
        key = self.make_key(product_name)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        self.logger.debug("cache_delete", key=key, deleted=removed)
        return removed

    async def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.info("cache_cleared", keys_deleted=count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisResultCache(ResultCache):
    """Async Redis cache.

    Redis errors are logged and degrade to a miss (reads) or a no-op
    (writes): the cache is never required for a query to succeed.
    """

    KEY_PREFIX = "prices:"

    def __init__(self, redis_url: str, client: Optional[Redis] = None):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            client: Optional pre-built client, mainly for tests
        """
        self.redis_url = redis_url
        self._redis: Optional[Redis] = client
        self.logger = logger.bind(service="redis_result_cache")

    async def _get_redis(self) -> Redis:
        """Get or create Redis connection."""
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

    def _redis_key(self, product_name: str) -> str:
        return f"{self.KEY_PREFIX}{self.make_key(product_name)}"

    async def get_entry(self, product_name: str) -> Optional[CacheEntry]:
        key = self._redis_key(product_name)
        try:
            redis = await self._get_redis()
            raw = await redis.get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e), exc_info=True)
            return None

        if not raw:
            self.logger.debug("cache_miss", key=key)
            return None

        try:
            entry = CacheEntry.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning("cache_entry_corrupt", key=key, error=str(e))
            return None

        self.logger.debug("cache_hit", key=key)
        return entry

    async def put(self, product_name: str, result: AggregateResult) -> None:
        key = self._redis_key(product_name)
        value = CacheEntry(result=result).to_json()
        try:
            redis = await self._get_redis()
            await redis.set(key, value)
            self.logger.debug("cache_set", key=key, value_length=len(value))
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e), exc_info=True)

    async def invalidate(self, product_name: str) -> bool:
        key = self._redis_key(product_name)
        try:
            redis = await self._get_redis()
            result = await redis.delete(key)
            self.logger.debug("cache_delete", key=key, deleted=bool(result))
            return bool(result)
        except RedisError as e:
            self.logger.error("cache_delete_failed", key=key, error=str(e), exc_info=True)
            return False

    async def clear(self) -> int:
        """Delete every key under KEY_PREFIX."""
        try:
            redis = await self._get_redis()
            keys = [key async for key in redis.scan_iter(match=f"{self.KEY_PREFIX}*", count=100)]
            deleted = await redis.delete(*keys) if keys else 0
            self.logger.info("cache_cleared", keys_deleted=deleted)
            return deleted
        except RedisError as e:
            self.logger.error("cache_clear_failed", error=str(e), exc_info=True)
            return 0

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True
        except Exception as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close Redis connection. Call on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


def create_result_cache(backend: Optional[str] = None) -> ResultCache:
    """Build the cache configured by CACHE_BACKEND."""
    backend = (backend or settings.CACHE_BACKEND).lower()
    if backend == "redis":
        logger.info("result_cache_initialized", backend="redis", redis_url=settings.REDIS_URL)
        return RedisResultCache(settings.REDIS_URL)
    if backend != "memory":
        logger.warning("unknown_cache_backend", backend=backend, fallback="memory")
    logger.info("result_cache_initialized", backend="memory")
    return MemoryResultCache()
