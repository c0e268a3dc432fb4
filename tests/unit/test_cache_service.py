"""Unit tests for emotehub/services/cache.py."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import RedisError

from emotehub.models.catalog import AnimationFilter
from emotehub.models.schemas import EmoteResponse, SearchResponse
from emotehub.services.cache import (
    CacheAside,
    RedisCacheStore,
    get_cache_key,
    get_trending_cache_key,
)


def _response(**kwargs):
    defaults = dict(
        success=True,
        totalFound=1,
        emotes=[EmoteResponse(fileName="a_static.png", url="https://x/a_static.png", emoteId="a", emoteName="A")],
    )
    defaults.update(kwargs)
    return SearchResponse(**defaults)


@pytest.fixture
def cache(cache_store):
    return CacheAside(cache_store)


# ---------------------------------------------------------------------------
# Key construction
# ---------------------------------------------------------------------------


class TestCacheKeys:
    def test_search_key(self):
        assert get_cache_key("Kappa", 50, AnimationFilter.all) == "emote_search:Kappa:50:all"

    def test_trending_key(self):
        key = get_trending_cache_key("trending_weekly", 20, 2, AnimationFilter.animated)
        assert key == "trending:trending_weekly:20:2:animated"

    def test_identical_parameters_collide(self):
        assert get_cache_key("pog", 10, AnimationFilter.static) == get_cache_key("pog", 10, "static")

    def test_any_parameter_change_separates(self):
        base = get_trending_cache_key("trending_daily", 20, 1, AnimationFilter.all)
        variants = {
            get_trending_cache_key("trending_weekly", 20, 1, AnimationFilter.all),
            get_trending_cache_key("trending_daily", 21, 1, AnimationFilter.all),
            get_trending_cache_key("trending_daily", 20, 2, AnimationFilter.all),
            get_trending_cache_key("trending_daily", 20, 1, AnimationFilter.static),
        }
        assert base not in variants
        assert len(variants) == 4

    def test_colon_in_query_does_not_collide(self):
        assert get_cache_key("a:10", 5, AnimationFilter.all) != get_cache_key("a", 10, AnimationFilter.all)

    def test_invalid_filter_rejected(self):
        with pytest.raises(ValueError):
            get_cache_key("pog", 10, "sometimes")


# ---------------------------------------------------------------------------
# get_or_compute
# ---------------------------------------------------------------------------


class TestGetOrCompute:
    @pytest.mark.asyncio
    async def test_miss_computes_and_stores(self, cache, cache_store):
        compute = AsyncMock(return_value=_response())

        result = await cache.get_or_compute("emote_search:a:1:all", 60, compute)

        compute.assert_awaited_once()
        assert result.cached is False
        assert result.processingTime is not None
        assert cache_store.ttls["emote_search:a:1:all"] == 60

    @pytest.mark.asyncio
    async def test_hit_skips_compute(self, cache):
        await cache.get_or_compute("k", 60, AsyncMock(return_value=_response()))
        compute = AsyncMock()

        result = await cache.get_or_compute("k", 60, compute)

        compute.assert_not_awaited()
        assert result.cached is True

    @pytest.mark.asyncio
    async def test_round_trip_only_changes_cached_and_timing(self, cache):
        original = await cache.get_or_compute("k", 60, AsyncMock(return_value=_response(message="hi")))
        again = await cache.get_or_compute("k", 60, AsyncMock())

        exclude = {"cached", "processingTime"}
        assert again.model_dump(exclude=exclude) == original.model_dump(exclude=exclude)
        assert (original.cached, again.cached) == (False, True)

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, cache, cache_store):
        cache_store.data["k"] = b"{not json"
        compute = AsyncMock(return_value=_response())

        result = await cache.get_or_compute("k", 60, compute)

        compute.assert_awaited_once()
        assert result.cached is False

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self, cache, cache_store):
        cache_store.fail_reads = True
        compute = AsyncMock(return_value=_response())

        result = await cache.get_or_compute("k", 60, compute)

        assert result.success is True
        compute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_failure_still_returns_result(self, cache, cache_store):
        cache_store.fail_writes = True

        result = await cache.get_or_compute("k", 60, AsyncMock(return_value=_response()))

        assert result.success is True
        assert "k" not in cache_store.data

    @pytest.mark.asyncio
    async def test_unsuccessful_responses_not_stored(self, cache, cache_store):
        await cache.get_or_compute("k", 60, AsyncMock(return_value=_response(success=False, emotes=[])))
        assert "k" not in cache_store.data

    @pytest.mark.asyncio
    async def test_cache_if_vetoes_store(self, cache, cache_store):
        result = await cache.get_or_compute("k", 60, AsyncMock(return_value=_response()), cache_if=lambda r: False)

        assert result.success is True
        assert "k" not in cache_store.data

    @pytest.mark.asyncio
    async def test_cache_if_allows_store(self, cache, cache_store):
        await cache.get_or_compute("k", 60, AsyncMock(return_value=_response()), cache_if=lambda r: r.success)
        assert "k" in cache_store.data


# ---------------------------------------------------------------------------
# clear / status
# ---------------------------------------------------------------------------


class TestClear:
    @pytest.fixture
    def populated(self, cache_store):
        for key in ("emote_search:a:1:all", "emote_search:b:1:all", "trending:trending_daily:20:1:all", "other"):
            cache_store.data[key] = b"{}"
        return cache_store

    @pytest.mark.asyncio
    async def test_clear_all(self, cache, populated):
        assert await cache.clear("all") == {"search": 2, "trending": 1}
        assert list(populated.data) == ["other"]

    @pytest.mark.asyncio
    async def test_clear_search_only(self, cache, populated):
        assert await cache.clear("search") == {"search": 2}
        assert "trending:trending_daily:20:1:all" in populated.data

    @pytest.mark.asyncio
    async def test_clear_unknown_type(self, cache):
        with pytest.raises(ValueError):
            await cache.clear("everything")


class TestStatus:
    @pytest.mark.asyncio
    async def test_connected(self, cache, cache_store):
        cache_store.data["emote_search:a:1:all"] = b"{}"
        cache_store.data["trending:x"] = b"{}"
        cache_store.hits, cache_store.misses = 3, 1

        status = await cache.status()

        assert status["status"] == "connected"
        assert status["totalKeys"] == 2
        assert status["emoteSearchKeys"] == 1
        assert status["trendingKeys"] == 1
        assert status["hitRatio"] == 75.0

    @pytest.mark.asyncio
    async def test_no_traffic_ratio_zero(self, cache):
        assert (await cache.status())["hitRatio"] == 0

    @pytest.mark.asyncio
    async def test_error(self, cache, cache_store):
        cache_store.fail_reads = True
        status = await cache.status()
        assert status["status"] == "error"


# ---------------------------------------------------------------------------
# RedisCacheStore
# ---------------------------------------------------------------------------


class TestRedisCacheStore:
    @pytest.mark.asyncio
    async def test_set_uses_setex(self):
        client = MagicMock()
        client.setex = AsyncMock()
        store = RedisCacheStore(client)

        await store.set("k", b"v", 30)

        client.setex.assert_awaited_once_with("k", 30, b"v")

    @pytest.mark.asyncio
    async def test_keys_matching_scans_prefix(self):
        async def scan_iter(match):
            assert match == "trending:*"
            for key in (b"trending:a", b"trending:b"):
                yield key

        client = MagicMock()
        client.scan_iter = scan_iter
        store = RedisCacheStore(client)

        assert await store.keys_matching("trending:") == [b"trending:a", b"trending:b"]

    @pytest.mark.asyncio
    async def test_delete_nothing_skips_round_trip(self):
        client = MagicMock()
        client.delete = AsyncMock()
        store = RedisCacheStore(client)

        assert await store.delete([]) == 0
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisError("down"))
        store = RedisCacheStore(client)

        with pytest.raises(RedisError):
            await store.get("k")

    @pytest.mark.asyncio
    async def test_context_manager_closes_connection(self):
        client = MagicMock()
        client.aclose = AsyncMock()

        async with RedisCacheStore(client):
            pass

        client.aclose.assert_awaited_once()
