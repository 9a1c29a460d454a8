"""Tests for the score cache."""

import json

import pytest

from serp_trust.cache import CACHE_PREFIX, CACHE_SCHEMA_VERSION, JsonFileCache, MemoryCache, create_cache
from serp_trust.config import CacheConfig
from serp_trust.models import CacheEntry, ScoreResult

DAY = 24 * 60 * 60
URL = "https://example-news.com/budget"


@pytest.fixture(params=["memory", "file"])
def cache(request, tmp_path, clock):
    if request.param == "memory":
        return MemoryCache(clock=clock)
    return JsonFileCache(tmp_path / "cache", clock=clock)


@pytest.mark.asyncio
async def test_miss_returns_none(cache):
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_put_then_get(cache):
    await cache.put(URL, ScoreResult(score=72, summary="Clean record.", factor_a=60))
    result = await cache.get(URL)
    assert result.score == 72
    assert result.summary == "Clean record."
    assert result.from_cache


@pytest.mark.asyncio
async def test_fresh_just_before_ttl(cache, clock):
    await cache.put(URL, ScoreResult(score=72, summary="ok"))
    clock.advance(DAY - 1)
    assert await cache.get(URL) is not None


@pytest.mark.asyncio
async def test_expired_exactly_at_ttl(cache, clock):
    await cache.put(URL, ScoreResult(score=72, summary="ok"))
    clock.advance(DAY)
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_put_overwrites_and_refreshes_timestamp(cache, clock):
    await cache.put(URL, ScoreResult(score=40, summary="old"))
    clock.advance(DAY - 10)
    await cache.put(URL, ScoreResult(score=90, summary="new"))
    clock.advance(20)
    result = await cache.get(URL)
    assert result.score == 90
    assert result.summary == "new"


@pytest.mark.asyncio
async def test_memory_cache_keeps_stale_entries(clock):
    cache = MemoryCache(clock=clock)
    await cache.put(URL, ScoreResult(score=72, summary="ok"))
    clock.advance(DAY * 2)
    assert await cache.get(URL) is None
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_memory_cache_ignores_other_schema(clock):
    cache = MemoryCache(clock=clock)
    cache._entries[CACHE_PREFIX + URL] = CacheEntry(
        key=URL, score=50, summary="legacy", timestamp=clock(), schema_version=CACHE_SCHEMA_VERSION + 1
    )
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_file_cache_layout(tmp_path, clock):
    cache = JsonFileCache(tmp_path, clock=clock)
    await cache.put(URL, ScoreResult(score=66, summary="fine"))
    files = list(tmp_path.glob("*.json"))
    assert len(files) == 1
    data = json.loads(files[0].read_text(encoding="utf-8"))
    assert data["schema_version"] == CACHE_SCHEMA_VERSION
    assert data["key"] == URL
    assert data["data"] == {"score": 66, "summary": "fine"}
    assert data["timestamp"] == clock()


@pytest.mark.asyncio
async def test_file_cache_corrupt_file_reads_as_absent(tmp_path, clock):
    cache = JsonFileCache(tmp_path, clock=clock)
    await cache.put(URL, ScoreResult(score=66, summary="fine"))
    next(tmp_path.glob("*.json")).write_text("{not json", encoding="utf-8")
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_file_cache_shared_between_instances(tmp_path, clock):
    await JsonFileCache(tmp_path, clock=clock).put(URL, ScoreResult(score=81, summary="persisted"))
    result = await JsonFileCache(tmp_path, clock=clock).get(URL)
    assert result.summary == "persisted"


@pytest.mark.asyncio
async def test_write_failure_is_logged_not_raised(tmp_path, clock, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    cache = JsonFileCache(blocker / "sub", clock=clock)
    await cache.put(URL, ScoreResult(score=70, summary="ok"))
    assert "Caching failed" in caplog.text
    assert await cache.get(URL) is None


def test_create_cache(tmp_path):
    assert isinstance(create_cache(CacheConfig()), MemoryCache)
    file_cache = create_cache(CacheConfig(type="file", directory=str(tmp_path), ttl_seconds=60))
    assert isinstance(file_cache, JsonFileCache)
    assert file_cache.ttl == 60
