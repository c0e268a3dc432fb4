import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from emotehub.config import Settings, get_settings
from emotehub.dependencies import get_archiver, get_cache_aside, get_catalog
from emotehub.exceptions import CatalogError
from emotehub.middleware import limiter
from emotehub.models.catalog import AnimationFilter, TrendingPeriod, resolve_animation_filter
from emotehub.models.schemas import SearchResponse
from emotehub.services.archiver import EmoteArchiver
from emotehub.services.cache import CacheAside, get_trending_cache_key
from emotehub.services.pagination import clamp_limit, paginate
from emotehub.services.seventv import SevenTVClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/trending",
    tags=["trending"]
)


def trending_fetch_limit(page: int, limit: int, cap: int) -> int:
    # one page of lookahead so hasNextPage can be answered
    return min((page + 1) * limit, cap)


@router.get("/emotes", response_model=SearchResponse)
@limiter.limit("100/15minute")
async def trending_emotes(
    request: Request,
    period: TrendingPeriod = Query(TrendingPeriod.weekly, description="Trending period"),
    limit: int = Query(20, ge=1, description="Number of emotes per page"),
    page: int = Query(1, ge=1, description="Page number"),
    emote_type: Optional[AnimationFilter] = Query(None, description="all, animated or static"),
    animated_only: Optional[bool] = Query(None, description="Only fetch animated emotes (legacy)"),
    cache: CacheAside = Depends(get_cache_aside),
    catalog: SevenTVClient = Depends(get_catalog),
    archiver: EmoteArchiver = Depends(get_archiver),
    settings: Settings = Depends(get_settings),
):
    """
    Get trending emotes from 7TV with pagination support.

    - period: trending_daily, trending_weekly, trending_monthly, or popularity (all-time)
    - limit: Number of emotes per page
    - page: Page number (starts at 1)
    - emote_type: all, animated or static (animated_only=true is accepted as animated)
    """
    limit = clamp_limit(limit, settings.MAX_PAGE_SIZE)
    animation_filter = resolve_animation_filter(emote_type, animated_only)

    upstream_failed = False

    async def fetch_and_archive() -> SearchResponse:
        nonlocal upstream_failed
        fetch_limit = trending_fetch_limit(page, limit, settings.TRENDING_FETCH_CAP)
        try:
            trending = await catalog.fetch_trending(period.value, fetch_limit, animation_filter)
        except CatalogError as e:
            logger.error(f"Error from 7TV trending API for {period.value}, not caching: {e}")
            upstream_failed = True
            trending = []

        current = paginate(trending, page, limit, settings.MAX_PAGE_SIZE)
        if current.empty or current.out_of_range:
            return current.to_response(empty_message=f"No trending emotes found for period: {period.value}")

        processed_emotes = await archiver.archive_batch(current.items, settings.TRENDING_FOLDER)
        return current.to_response(processed_emotes)

    cache_key = get_trending_cache_key(period.value, limit, page, animation_filter)
    return await cache.get_or_compute(
        cache_key,
        settings.TRENDING_CACHE_TTL,
        fetch_and_archive,
        cache_if=lambda response: not upstream_failed,
    )
