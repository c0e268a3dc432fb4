import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from emotehub.config import Settings
from emotehub.models.catalog import AnimationFilter
from emotehub.models.schemas import SearchResponse

logger = logging.getLogger(__name__)

SEARCH_PREFIX = "emote_search:"
TRENDING_PREFIX = "trending:"

CACHE_NAMESPACES = {
    "search": SEARCH_PREFIX,
    "trending": TRENDING_PREFIX,
}


def get_cache_key(query: str, limit: int, animation_filter: AnimationFilter) -> str:
    """Generate a cache key based on search parameters"""
    return f"{SEARCH_PREFIX}{query}:{limit}:{AnimationFilter(animation_filter).value}"


def get_trending_cache_key(period: str, limit: int, page: int, animation_filter: AnimationFilter) -> str:
    """Generate a cache key for trending searches including page"""
    return f"{TRENDING_PREFIX}{getattr(period, 'value', period)}:{limit}:{page}:{AnimationFilter(animation_filter).value}"


class RedisCacheStore:
    """Thin async key/value capability over a Redis connection. Errors propagate as RedisError."""

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCacheStore":
        if settings.REDIS_URL:
            client = Redis.from_url(settings.REDIS_URL, decode_responses=False)
            logger.info("Connected to Redis using REDIS_URL")
        else:
            client = Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                password=settings.REDIS_PASSWORD or None,
                decode_responses=False,
            )
            logger.info(f"Connected to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return cls(client)

    async def get(self, key: str) -> Optional[bytes]:
        return await self.client.get(key)

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        await self.client.setex(key, ttl, value)

    async def keys_matching(self, prefix: str) -> List[bytes]:
        return [key async for key in self.client.scan_iter(match=f"{prefix}*")]

    async def delete(self, keys: Iterable) -> int:
        keys = list(keys)
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def ping(self) -> bool:
        return await self.client.ping()

    async def info(self) -> dict:
        return await self.client.info()

    async def dbsize(self) -> int:
        return await self.client.dbsize()

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "RedisCacheStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class CacheAside:
    """
    Cache-aside wrapper for SearchResponse producing operations.

    A hit is served with ``cached=True`` and this request's processing time.
    A miss runs ``compute`` and stores successful responses under ``ttl``.
    Store failures never fail the request: reads degrade to a miss and
    writes are only logged. Concurrent misses for the same key both compute
    and the last write wins.
    """

    def __init__(self, store: RedisCacheStore):
        self.store = store

    async def lookup(self, key: str) -> Optional[SearchResponse]:
        try:
            raw = await self.store.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if not raw:
            return None
        try:
            return SearchResponse.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def save(self, key: str, response: SearchResponse, ttl: int) -> bool:
        try:
            await self.store.set(key, response.model_dump_json().encode(), ttl)
            return True
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    async def get_or_compute(
        self,
        key: str,
        ttl: int,
        compute: Callable[[], Awaitable[SearchResponse]],
        cache_if: Optional[Callable[[SearchResponse], bool]] = None,
    ) -> SearchResponse:
        """
        Return the cached response for ``key`` or compute, store and return a fresh one.

        Only successful responses are stored; ``cache_if`` can veto storing one.
        """
        start_time = time.time()

        cached = await self.lookup(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True, "processingTime": time.time() - start_time})

        response = await compute()
        response = response.model_copy(update={"cached": False, "processingTime": time.time() - start_time})
        if response.success and (cache_if is None or cache_if(response)):
            await self.save(key, response, ttl)
        return response

    async def clear(self, cache_type: str = "all") -> Dict[str, int]:
        """Delete every key in the selected namespaces. Returns removed counts per namespace."""
        if cache_type == "all":
            namespaces = list(CACHE_NAMESPACES)
        elif cache_type in CACHE_NAMESPACES:
            namespaces = [cache_type]
        else:
            raise ValueError(f"Unknown cache type: {cache_type}")

        removed = {}
        for name in namespaces:
            keys = await self.store.keys_matching(CACHE_NAMESPACES[name])
            removed[name] = await self.store.delete(keys) if keys else 0
        logger.info(f"Cache cleared ({cache_type}): {removed}")
        return removed

    async def status(self) -> dict:
        try:
            info, keys_count, search_keys, trending_keys = await asyncio.gather(
                self.store.info(),
                self.store.dbsize(),
                self.store.keys_matching(SEARCH_PREFIX),
                self.store.keys_matching(TRENDING_PREFIX),
            )
        except RedisError as e:
            return {"status": "error", "message": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "totalKeys": keys_count,
            "emoteSearchKeys": len(search_keys),
            "trendingKeys": len(trending_keys),
            "usedMemory": f"{info.get('used_memory_human', 'unknown')}",
            "hitRatio": hits / (hits + misses) * 100 if hits + misses > 0 else 0,
        }
