import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Redis Configuration
    REDIS_URL: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    CACHE_TTL: int = 60 * 60 * 24  # 24 hours in seconds
    TRENDING_CACHE_TTL: int = 60 * 60 * 6  # 6 hours for trending data

    # Azure Storage Configuration
    AZURE_CONNECTION_STRING: str = ""
    CONTAINER_NAME: str = "emotes"
    SEARCH_FOLDER: str = "emote_api"
    TRENDING_FOLDER: str = "trending_emotes"

    # 7TV
    SEVENTV_SEARCH_URL: str = "https://api.7tv.app/v4/gql"
    SEVENTV_TRENDING_URL: str = "https://7tv.io/v3/gql"
    HTTP_TIMEOUT: float = 30.0

    # Processing limits
    ARCHIVE_CONCURRENCY: int = 10
    MAX_PAGE_SIZE: int = 100
    TRENDING_FETCH_CAP: int = 300  # 7TV rejects larger trending windows

    LOG_LEVEL: str = "INFO"

    # API Settings
    API_TITLE: str = "7TV Emote API"
    API_DESCRIPTION: str = "API for searching, downloading, and storing 7TV emotes in Azure Storage"
    API_VERSION: str = "1.0.0"

    @property
    def storage_enabled(self) -> bool:
        return bool(self.AZURE_CONNECTION_STRING.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()


def _mask(value: str) -> str:
    if not value:
        return "<unset>"
    return value[:4] + "****" if len(value) > 8 else "****"


def log_configuration(settings: Settings) -> None:
    """Log the effective configuration with secrets masked."""
    logger.info("Configuration loaded:")
    if settings.REDIS_URL:
        logger.info(f"  Redis: URL {_mask(settings.REDIS_URL)}")
    else:
        logger.info(
            f"  Redis: {settings.REDIS_HOST}:{settings.REDIS_PORT} (DB: {settings.REDIS_DB}, "
            f"password: {_mask(settings.REDIS_PASSWORD)})"
        )
    logger.info(f"  Cache TTL: {settings.CACHE_TTL}s | Trending TTL: {settings.TRENDING_CACHE_TTL}s")
    if settings.storage_enabled:
        logger.info(f"  Azure Storage: ENABLED (Container: {settings.CONTAINER_NAME})")
    else:
        logger.warning("  Azure Storage: DISABLED (connection string not set)")
