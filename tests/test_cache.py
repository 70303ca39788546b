"""
Result cache tests — the in-memory backend's TTL and eviction, and the
Redis backend's behaviour when no server is reachable.
"""
import pytest

from comment_threads.cache import MemoryResultCache, RedisResultCache, build_cache
from comment_threads.config import Settings


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# MemoryResultCache
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_memory_get_returns_equal_copy():
    cache = MemoryResultCache()
    value = {"data": [{"id": 1, "text": "hi"}], "meta": {"page": 1}}
    await cache.set("k", value)

    got = await cache.get("k")
    assert got == value
    assert got is not value


@pytest.mark.asyncio
async def test_memory_entry_expires_after_ttl():
    clock = FakeClock()
    cache = MemoryResultCache(clock=clock)
    await cache.set("k", {"v": 1}, ttl=5)

    clock.now += 4
    assert await cache.get("k") == {"v": 1}
    clock.now += 1
    assert await cache.get("k") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_default_ttl_applies_when_none_given():
    clock = FakeClock()
    cache = MemoryResultCache(default_ttl=2, clock=clock)
    await cache.set("k", [1, 2, 3])

    clock.now += 3
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_memory_without_ttl_never_expires():
    clock = FakeClock()
    cache = MemoryResultCache(clock=clock)
    await cache.set("k", {"v": 1})

    clock.now += 10_000
    assert await cache.get("k") == {"v": 1}


@pytest.mark.asyncio
async def test_memory_zero_ttl_is_not_stored():
    clock = FakeClock()
    cache = MemoryResultCache(clock=clock)
    await cache.set("k", {"v": 1}, ttl=60)
    await cache.set("k", {"v": 2}, ttl=0)

    assert len(cache) == 0
    clock.now += 10_000
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_memory_zero_default_ttl_is_not_stored():
    cache = MemoryResultCache(default_ttl=0)
    await cache.set("k", {"v": 1})
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_evicts_least_recently_used():
    cache = MemoryResultCache(max_entries=2)
    await cache.set("a", {"v": "a"})
    await cache.set("b", {"v": "b"})
    # Touch "a" so "b" becomes the eviction candidate.
    await cache.get("a")
    await cache.set("c", {"v": "c"})

    assert len(cache) == 2
    assert await cache.get("b") is None
    assert await cache.get("a") == {"v": "a"}
    assert await cache.get("c") == {"v": "c"}


@pytest.mark.asyncio
async def test_memory_clear_drops_everything():
    cache = MemoryResultCache()
    for key in ("roots:media=1:page=1:take=10:order=desc", "children:parent=3:page=1:take=5"):
        await cache.set(key, {"data": []})

    await cache.clear()

    assert len(cache) == 0
    assert await cache.get("children:parent=3:page=1:take=5") is None


@pytest.mark.asyncio
async def test_memory_stats_track_hits_and_misses():
    cache = MemoryResultCache()
    await cache.get("missing")
    await cache.set("k", {"v": 1})
    await cache.get("k")
    await cache.get("k")

    stats = cache.stats
    assert stats["backend"] == "memory"
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 66.7


def test_stats_with_no_traffic():
    assert MemoryResultCache().stats["hit_rate"] == 0.0


# ---------------------------------------------------------------------------
# RedisResultCache (no connection)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_redis_without_connection_degrades_to_miss():
    cache = RedisResultCache("redis://localhost:1/0", prefix="t")

    await cache.set("k", {"v": 1})
    assert await cache.get("k") is None
    await cache.clear()

    assert cache.stats["misses"] == 1
    assert cache.stats["backend"] == "redis"


def test_redis_keys_are_prefixed():
    cache = RedisResultCache("redis://localhost:6379/0", prefix="comments")
    assert cache._key("roots:media=1") == "comments:roots:media=1"


# ---------------------------------------------------------------------------
# build_cache
# ---------------------------------------------------------------------------

def test_build_cache_memory_backend():
    cache = build_cache(Settings(CACHE_BACKEND="memory", CACHE_MAX_ENTRIES=7, CACHE_TTL=3))
    assert isinstance(cache, MemoryResultCache)
    assert cache._max_entries == 7
    assert cache._default_ttl == 3


def test_build_cache_redis_backend():
    cache = build_cache(Settings(CACHE_BACKEND="Redis", CACHE_KEY_PREFIX="x"))
    assert isinstance(cache, RedisResultCache)
    assert cache._prefix == "x"


def test_build_cache_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_cache(Settings(CACHE_BACKEND="memcached"))
