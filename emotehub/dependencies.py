"""FastAPI dependency providers.

The long-lived handles (HTTP session, Redis, Azure container) are opened in
the application lifespan and kept on ``app.state``; components are built
from them per request.
"""

import aiohttp
from fastapi import Depends, Request

from emotehub.config import Settings, get_settings
from emotehub.services.archiver import EmoteArchiver
from emotehub.services.cache import CacheAside, RedisCacheStore
from emotehub.services.seventv import SevenTVClient
from emotehub.services.storage import BlobStorage


def get_http_session(request: Request) -> aiohttp.ClientSession:
    return request.app.state.http_session


def get_cache_store(request: Request) -> RedisCacheStore:
    return request.app.state.cache_store


def get_blob_storage(request: Request) -> BlobStorage:
    return request.app.state.blob_storage


def get_catalog(
    session: aiohttp.ClientSession = Depends(get_http_session),
    settings: Settings = Depends(get_settings),
) -> SevenTVClient:
    return SevenTVClient(session, settings)


def get_archiver(
    storage: BlobStorage = Depends(get_blob_storage),
    session: aiohttp.ClientSession = Depends(get_http_session),
    settings: Settings = Depends(get_settings),
) -> EmoteArchiver:
    return EmoteArchiver(storage, session, concurrency=settings.ARCHIVE_CONCURRENCY)


def get_cache_aside(store: RedisCacheStore = Depends(get_cache_store)) -> CacheAside:
    return CacheAside(store)
