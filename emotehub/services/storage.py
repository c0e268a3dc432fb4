import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient, ContainerClient

from emotehub.config import Settings
from emotehub.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    name: str
    url: str
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


def encode_metadata(metadata: Dict[str, object]) -> Dict[str, str]:
    """Azure only accepts ASCII metadata values, so everything is URL-quoted."""
    return {key: quote(str(value), safe="") for key, value in metadata.items() if value is not None}


def decode_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {key: unquote(value) for key, value in (metadata or {}).items()}


class BlobStorage:
    """
    Async wrapper around one Azure Blob Storage container.

    Built once per process from settings and closed on shutdown. When no
    connection string is configured the instance is still usable but
    reports ``available = False`` and every operation raises
    StorageUnavailableError.
    """

    def __init__(
        self,
        container_client: Optional[ContainerClient] = None,
        service_client: Optional[BlobServiceClient] = None,
    ):
        self.container_client = container_client
        self.service_client = service_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStorage":
        if not settings.storage_enabled:
            logger.warning("Azure Storage connection string not properly configured")
            return cls()
        try:
            service_client = BlobServiceClient.from_connection_string(settings.AZURE_CONNECTION_STRING)
            container_client = service_client.get_container_client(settings.CONTAINER_NAME)
        except ValueError as e:
            logger.error(f"Failed to initialize Azure Storage: {e}")
            return cls()
        logger.info("Azure Storage initialized successfully")
        return cls(container_client, service_client)

    @property
    def available(self) -> bool:
        return self.container_client is not None

    def _container(self) -> ContainerClient:
        if self.container_client is None:
            raise StorageUnavailableError("Azure Storage is not properly configured or unavailable")
        return self.container_client

    def url_for(self, blob_name: str) -> str:
        return self._container().get_blob_client(blob=blob_name).url

    async def exists(self, blob_name: str) -> bool:
        return await self._container().get_blob_client(blob=blob_name).exists()

    async def upload(
        self,
        blob_name: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None,
    ) -> str:
        """
        Create ``blob_name`` with ``data`` and return its public URL.

        Never overwrites. If another request created the blob first the
        existing URL is returned.
        """
        blob_client = self._container().get_blob_client(blob=blob_name)
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        try:
            await blob_client.upload_blob(
                data,
                overwrite=False,
                content_settings=content_settings,
                metadata=encode_metadata(metadata or {}),
            )
            logger.info(f"Uploaded {blob_name} to Azure Blob Storage with content type: {content_type}")
        except ResourceExistsError:
            logger.info(f"Blob {blob_name} already exists in Azure Blob Storage.")
        return blob_client.url

    async def list_blobs(self, prefix: str) -> List[StoredBlob]:
        """List all blobs under ``prefix``, ordered by name."""
        container = self._container()
        blobs = []
        async for blob in container.list_blobs(name_starts_with=prefix, include=["metadata"]):
            content_settings = getattr(blob, "content_settings", None)
            blobs.append(
                StoredBlob(
                    name=blob.name,
                    url=container.get_blob_client(blob.name).url,
                    content_type=getattr(content_settings, "content_type", None),
                    metadata=decode_metadata(blob.metadata),
                )
            )
        blobs.sort(key=lambda b: b.name)
        return blobs

    async def close(self) -> None:
        if self.container_client is not None:
            await self.container_client.close()
        if self.service_client is not None:
            await self.service_client.close()

    async def __aenter__(self) -> "BlobStorage":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
