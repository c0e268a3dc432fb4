from fastapi import APIRouter, Depends, HTTPException, Request
from redis.exceptions import RedisError

from emotehub.dependencies import get_cache_aside
from emotehub.middleware import limiter
from emotehub.models.schemas import CacheClearResponse
from emotehub.services.cache import CACHE_NAMESPACES, CacheAside

router = APIRouter(
    prefix="/api/cache",
    tags=["cache"]
)

CACHE_TYPES = ("all", *CACHE_NAMESPACES)


@router.get("/status")
@limiter.limit("20/minute")
async def cache_status(request: Request, cache: CacheAside = Depends(get_cache_aside)):
    """Get current cache status"""
    return await cache.status()


@router.post("/clear", response_model=CacheClearResponse)
@limiter.limit("5/minute")
async def clear_cache(
    request: Request,
    cache_type: str = "all",
    cache: CacheAside = Depends(get_cache_aside),
):
    """
    Clear cache in Redis

    cache_type options:
    - all: Clear all caches
    - search: Clear only search caches
    - trending: Clear only trending caches
    """
    if cache_type not in CACHE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid cache_type. Options are: all, search, trending"
        )

    try:
        removed = await cache.clear(cache_type)
    except RedisError as e:
        return CacheClearResponse(
            success=False,
            message=f"Error clearing cache: {str(e)}",
            type=cache_type,
        )

    return CacheClearResponse(
        success=True,
        message=f"Cache cleared. {sum(removed.values())} entries removed.",
        type=cache_type,
        removed=removed,
    )
