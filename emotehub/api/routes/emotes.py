from fastapi import APIRouter, Depends, HTTPException, Request

from emotehub.config import Settings, get_settings
from emotehub.dependencies import get_archiver, get_cache_aside, get_catalog
from emotehub.middleware import limiter
from emotehub.models.schemas import SearchRequest, SearchResponse
from emotehub.services.archiver import EmoteArchiver
from emotehub.services.cache import CacheAside, get_cache_key
from emotehub.services.seventv import SevenTVClient

router = APIRouter(
    prefix="/api",
    tags=["emotes"]
)


@router.post("/search-emotes", response_model=SearchResponse)
@limiter.limit("100/15minute")
async def search_emotes(
    request: Request,
    search_request: SearchRequest,
    cache: CacheAside = Depends(get_cache_aside),
    catalog: SevenTVClient = Depends(get_catalog),
    archiver: EmoteArchiver = Depends(get_archiver),
    settings: Settings = Depends(get_settings),
):
    """
    Search for emotes on 7TV, download them, and store in Azure.
    Returns a list of emotes with their file names and URLs.

    totalFound is the number of matches 7TV returned; emotes that could not
    be archived are missing from ``emotes`` but still counted.
    """
    query = search_request.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query parameter is required")

    limit = search_request.effective_limit
    animation_filter = search_request.animation_filter

    async def fetch_and_archive() -> SearchResponse:
        emotes = await catalog.search(query, limit, animation_filter)
        if not emotes:
            return SearchResponse(
                success=True,
                totalFound=0,
                emotes=[],
                message="No emotes found for the given query",
                page=1,
                totalPages=0,
                resultsPerPage=limit,
            )

        processed_emotes = await archiver.archive_batch(emotes, settings.SEARCH_FOLDER)
        return SearchResponse(
            success=True,
            totalFound=len(emotes),
            emotes=processed_emotes,
            page=1,
            totalPages=1,
            resultsPerPage=limit,
            hasNextPage=False,
        )

    cache_key = get_cache_key(query, limit, animation_filter)
    return await cache.get_or_compute(cache_key, settings.CACHE_TTL, fetch_and_archive)
