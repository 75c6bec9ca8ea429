"""
Remote Uploader - Single Responsibility: push one image to the asset store.

One attempt per image under a per-upload deadline.
"""
import asyncio
import logging
from typing import Optional

import httpx

from ..config import ExportConfig
from ..errors import NoLocatorReturnedError, UploadError
from ..models import ImageSlot
from ..protocols import IAssetStore
from .file_reader import ImageFile

logger = logging.getLogger(__name__)


class RemoteUploaderService:
    """Uploads image files and returns their remote locator."""

    def __init__(self, asset_store: IAssetStore, config: Optional[ExportConfig] = None):
        """
        Initialize uploader.

        Args:
            asset_store: Asset store adapter (AssetsAPIClient)
            config: Export configuration (entity type, tags, deadline)
        """
        self._store = asset_store
        self._config = config or ExportConfig()

    async def upload(
        self,
        image: ImageFile,
        entity_id: int,
        slot: ImageSlot,
        description: Optional[str] = None,
        alt_text: Optional[str] = None,
    ) -> str:
        """
        Upload one image.

        Returns:
            Remote locator (original URL, else preview URL)

        Raises:
            UploadError: Store rejected the upload, timed out or was unreachable
            NoLocatorReturnedError: Store accepted the upload without any URL
        """
        tags = [slot.local_field, self._config.owner_tag(entity_id)]
        description = description or f"Entity {entity_id} - {slot.local_field}"
        timeout = self._config.upload_timeout

        try:
            response = await asyncio.wait_for(
                self._store.upload(
                    data=image.data,
                    filename=image.filename,
                    content_type=image.content_type,
                    entity_type=self._config.entity_type,
                    entity_id=str(entity_id),
                    tags=tags,
                    description=description,
                    alt_text=alt_text,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise UploadError(f"Upload timed out after {timeout:g}s") from None
        except httpx.HTTPError as exc:
            message = str(exc).strip() or type(exc).__name__
            raise UploadError(message) from exc

        if response.is_error:
            message = ", ".join(response.error_messages)
            raise UploadError(message, list(response.error_messages))

        locator = response.locator
        if not locator:
            raise NoLocatorReturnedError("No URL returned by the asset store")

        logger.debug("Uploaded %s for entity %s -> %s", image.filename, entity_id, locator)
        return locator
