import logging
import os
import time
import zlib

from azure.core.exceptions import AzureError
from fastapi import APIRouter, Depends, Query, Request

from emotehub.config import Settings, get_settings
from emotehub.dependencies import get_blob_storage
from emotehub.exceptions import StorageUnavailableError
from emotehub.middleware import limiter
from emotehub.models.schemas import EmoteResponse, SearchResponse
from emotehub.services.pagination import clamp_limit, paginate
from emotehub.services.storage import BlobStorage, StoredBlob

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/storage",
    tags=["storage"]
)


def storage_emote_id(blob_name: str) -> str:
    """Pseudo-ID for blobs archived without metadata; stable across processes."""
    return f"storage_{zlib.crc32(blob_name.encode()) % 10000000}"


def blob_to_emote(blob: StoredBlob, prefix: str) -> EmoteResponse:
    file_name = blob.name[len(prefix):]
    metadata = blob.metadata
    scale = metadata.get("scale")
    return EmoteResponse(
        fileName=file_name,
        url=blob.url,
        emoteId=metadata.get("emote_id") or storage_emote_id(blob.name),
        emoteName=metadata.get("emote_name") or os.path.splitext(file_name)[0],
        owner=metadata.get("owner") or None,
        animated=metadata.get("animated") == "True",
        scale=int(scale) if scale and scale.isdigit() else None,
        mime=blob.content_type,
    )


def _storage_error(message: str, page: int, limit: int, start_time: float) -> SearchResponse:
    return SearchResponse(
        success=False,
        totalFound=0,
        emotes=[],
        message=message,
        processingTime=time.time() - start_time,
        page=page,
        totalPages=0,
        resultsPerPage=limit,
        hasNextPage=False
    )


async def list_archived_emotes(
    storage: BlobStorage,
    folder: str,
    page: int,
    limit: int,
    max_limit: int,
    empty_message: str,
) -> SearchResponse:
    """Paginate the emotes already archived under ``folder``."""
    start_time = time.time()
    limit = clamp_limit(limit, max_limit)

    if not storage.available:
        return _storage_error("Azure Storage is not properly configured or unavailable", page, limit, start_time)

    prefix = f"{folder}/"
    try:
        blob_list = await storage.list_blobs(prefix)
    except (AzureError, StorageUnavailableError) as e:
        logger.error(f"Error listing blobs with prefix {prefix}: {e}")
        return _storage_error(f"Error accessing Azure Storage: {e}", page, limit, start_time)

    # Skip empty filenames or folder placeholders before counting
    blob_list = [b for b in blob_list if b.name[len(prefix):] and not b.name.endswith("/")]

    current = paginate(blob_list, page, limit, max_limit)
    emotes = [blob_to_emote(blob, prefix) for blob in current.items]
    response = current.to_response(emotes, empty_message=empty_message)
    return response.model_copy(update={"processingTime": time.time() - start_time})


@router.get("/trending-emotes", response_model=SearchResponse)
@limiter.limit("50/15minute")
async def get_trending_emotes_from_storage(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, description="Number of emotes per page"),
    storage: BlobStorage = Depends(get_blob_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Get trending emotes directly from Azure Storage.
    This endpoint bypasses the 7TV API and lists the archived trending folder.
    """
    return await list_archived_emotes(
        storage,
        settings.TRENDING_FOLDER,
        page,
        limit,
        settings.MAX_PAGE_SIZE,
        empty_message="No trending emotes found in storage",
    )


@router.get("/emote-api", response_model=SearchResponse)
@limiter.limit("50/15minute")
async def get_emotes_from_storage(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, description="Number of emotes per page"),
    storage: BlobStorage = Depends(get_blob_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Get emotes directly from Azure Storage.
    This endpoint bypasses the 7TV API and lists the archived search folder.
    """
    return await list_archived_emotes(
        storage,
        settings.SEARCH_FOLDER,
        page,
        limit,
        settings.MAX_PAGE_SIZE,
        empty_message="No emotes found in storage",
    )
