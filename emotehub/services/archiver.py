import asyncio
import logging
from typing import Iterable, List, Optional

import aiohttp
from azure.core.exceptions import AzureError

from emotehub.exceptions import StorageUnavailableError
from emotehub.models.catalog import CatalogEntry, ImageVariant
from emotehub.models.schemas import EmoteResponse
from emotehub.services.selection import extension_for, select_best_image
from emotehub.services.storage import BlobStorage

logger = logging.getLogger(__name__)


def archive_file_name(entry: CatalogEntry, image: ImageVariant) -> str:
    """Stable file name for an emote: same emote and animation class always map to the same blob."""
    variant_class = "animated" if image.animated else "static"
    return f"{entry.id}_{variant_class}{extension_for(image.mime)}"


class EmoteArchiver:
    """
    Copies the best rendition of each emote into Azure Storage.

    Failures (no usable image, download error, upload error) drop the emote
    from the results instead of raising.
    """

    def __init__(self, storage: BlobStorage, session: aiohttp.ClientSession, concurrency: int = 10):
        self.storage = storage
        self.session = session
        self.concurrency = concurrency

    async def _download(self, url: str) -> Optional[bytes]:
        async with self.session.get(url) as response:
            if response.status != 200:
                logger.error(f"Failed to download {url}: HTTP {response.status}")
                return None
            return await response.read()

    async def archive(self, entry: CatalogEntry, folder: str = "emote_api") -> Optional[EmoteResponse]:
        """Download one emote and upload it under ``folder`` unless it is already there."""
        best_image = select_best_image(entry.images)
        if not best_image:
            logger.warning(f"No usable image for emote {entry.name} ({entry.id})")
            return None

        file_name = archive_file_name(entry, best_image)
        blob_name = f"{folder}/{file_name}"

        try:
            if await self.storage.exists(blob_name):
                logger.info(f"Blob {blob_name} already exists in Azure Blob Storage.")
                blob_url = self.storage.url_for(blob_name)
            else:
                file_data = await self._download(best_image.url)
                if file_data is None:
                    return None
                blob_url = await self.storage.upload(
                    blob_name,
                    file_data,
                    content_type=best_image.mime,
                    metadata={
                        "emote_id": entry.id,
                        "emote_name": entry.name,
                        "owner": entry.owner,
                        "animated": best_image.animated,
                        "scale": best_image.scale,
                    },
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to download {entry.name}: {e}")
            return None
        except (AzureError, StorageUnavailableError) as e:
            logger.error(f"Error uploading {entry.name} to Azure Blob: {e}")
            return None

        return EmoteResponse(
            fileName=file_name,
            url=blob_url,
            emoteId=entry.id,
            emoteName=entry.name,
            owner=entry.owner,
            animated=best_image.animated,
            scale=best_image.scale,
            mime=best_image.mime,
        )

    async def _archive_bounded(self, entry: CatalogEntry, folder: str, semaphore: asyncio.Semaphore):
        async with semaphore:
            # once started, an archive runs to completion even if the request is cancelled
            return await asyncio.shield(self.archive(entry, folder))

    async def archive_batch(self, entries: Iterable[CatalogEntry], folder: str = "emote_api") -> List[EmoteResponse]:
        """Archive a batch of emotes with at most ``concurrency`` in flight. Result order is not guaranteed."""
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [self._archive_bounded(entry, folder, semaphore) for entry in entries]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        processed_emotes = []
        seen = set()
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error while archiving emote: {result!r}")
                continue
            if result and result.emoteId not in seen:
                seen.add(result.emoteId)
                processed_emotes.append(result)
        return processed_emotes
