import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable

import redis.asyncio as redis

from comment_threads.config import Settings

logger = logging.getLogger(__name__)


class ResultCache(ABC):
    """
    Cache of materialised comment pages.

    Values are JSON-compatible dicts/lists; implementations store them
    serialised so that what comes back from ``get`` is an equal copy of
    what went into ``set``, never the same object.

    ``clear`` wipes every entry this cache owns.  It is called after each
    committed comment mutation because a write can affect pages under many
    keys (every page of the media's root listing, every page of the
    parent's replies).
    """

    backend: str = "abstract"

    def __init__(self) -> None:
        self._hits: int = 0
        self._misses: int = 0

    async def connect(self) -> None:
        """Acquire backing resources.  Called once at application startup."""

    async def disconnect(self) -> None:
        """Release backing resources.  Called once at application shutdown."""

    @abstractmethod
    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds (no expiry when None)."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""

    def _record(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for metrics endpoints."""
        total = self._hits + self._misses
        return {
            "backend": self.backend,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


class RedisResultCache(ResultCache):
    """
    Cache-aside store backed by Redis.

    Every key is namespaced under ``<prefix>:`` and ``clear`` removes the
    namespace only, so the Redis database can be shared with other
    applications.  Reads and writes are safe to call when Redis is
    unavailable: a read counts as a miss and a write is skipped.
    """

    backend = "redis"

    def __init__(self, url: str, prefix: str = "comments") -> None:
        super().__init__()
        self._url = url
        self._prefix = prefix
        self._redis: redis.Redis | None = None

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def connect(self) -> None:
        self._redis = redis.from_url(
            self._url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Ping to surface mis-configuration early (non-fatal).
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self._url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, comment cache degraded: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            self._record(False)
            return None
        try:
            data = await self._redis.get(self._key(key))
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._record(False)
            return None
        if data is None:
            self._record(False)
            return None
        self._record(True)
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis or (ttl is not None and ttl <= 0):
            return
        try:
            await self._redis.set(self._key(key), json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def clear(self) -> None:
        """Delete all keys under the prefix using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=self._key("*")):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
            logger.debug("Cache cleared %d key(s) under %r", len(keys), self._prefix)
        except Exception as exc:
            # Pages written before the failure live until their TTL runs out.
            logger.warning("Cache CLEAR error for prefix=%r: %s", self._prefix, exc)


class MemoryResultCache(ResultCache):
    """
    In-process cache with per-entry TTL and a bounded size.

    Suited to single-worker deployments and to tests, where each test gets
    its own instance.  The least recently used entry is evicted once
    *max_entries* is reached.
    """

    backend = "memory"

    def __init__(
        self,
        max_entries: int = 100,
        default_ttl: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float | None, str]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> dict | list | None:
        entry = self._entries.get(key)
        if entry is None:
            self._record(False)
            return None
        expires_at, payload = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            self._record(False)
            return None
        self._entries.move_to_end(key)
        self._record(True)
        return json.loads(payload)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        if ttl is not None and ttl <= 0:
            # A non-positive TTL means the page must not be cached at all.
            self._entries.pop(key, None)
            return
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (expires_at, json.dumps(value, default=str))
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.debug("Cache cleared %d in-memory key(s)", count)


def build_cache(settings: Settings) -> ResultCache:
    """Return the cache backend selected by ``CACHE_BACKEND``."""
    backend = settings.CACHE_BACKEND.lower()
    if backend == "memory":
        return MemoryResultCache(
            max_entries=settings.CACHE_MAX_ENTRIES, default_ttl=settings.CACHE_TTL
        )
    if backend == "redis":
        return RedisResultCache(settings.REDIS_URL, prefix=settings.CACHE_KEY_PREFIX)
    raise ValueError(f"Unknown CACHE_BACKEND: {settings.CACHE_BACKEND!r}")
