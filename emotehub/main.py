import logging
import os
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime

import aiohttp
from fastapi import Depends, FastAPI
from redis.exceptions import RedisError

from emotehub.api.routes import cache, emotes, storage, trending
from emotehub.config import get_settings, log_configuration
from emotehub.dependencies import get_blob_storage, get_cache_store
from emotehub.middleware import setup_middleware
from emotehub.services.cache import RedisCacheStore
from emotehub.services.storage import BlobStorage

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    log_configuration(settings)

    async with AsyncExitStack() as stack:
        app.state.http_session = await stack.enter_async_context(
            aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT))
        )
        app.state.cache_store = await stack.enter_async_context(RedisCacheStore.from_settings(settings))
        app.state.blob_storage = await stack.enter_async_context(BlobStorage.from_settings(settings))
        yield
    logger.info("Shutdown complete, connections released")


settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
)

# Setup middleware
setup_middleware(app)

# Include routers
app.include_router(emotes.router)
app.include_router(trending.router)
app.include_router(storage.router)
app.include_router(cache.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to the 7TV Emote API",
        "endpoints": {
            "search": "/api/search-emotes",
            "trending_emotes": "/api/trending/emotes",
            "storage_trending": "/api/storage/trending-emotes",
            "storage_emotes": "/api/storage/emote-api",
            "cache_status": "/api/cache/status",
            "clear_cache": "/api/cache/clear",
            "health": "/health"
        },
        "documentation": "/docs"
    }


@app.get("/health")
async def health_check(
    cache_store: RedisCacheStore = Depends(get_cache_store),
    blob_storage: BlobStorage = Depends(get_blob_storage),
):
    redis_status = "connected"
    try:
        await cache_store.ping()
    except (RedisError, OSError):
        redis_status = "disconnected"

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "redis": redis_status,
        "storage": "enabled" if blob_storage.available else "disabled",
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("emotehub.main:app", host="0.0.0.0", port=port, reload=False, loop="uvloop")
