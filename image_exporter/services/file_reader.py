"""
File Reader - Single Responsibility: load image bytes from local disk.

Blocking file work runs in the default thread pool so the event loop keeps
servicing the other uploads of a group.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import FileReadError, LocalFileNotFoundError

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path]) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class ImageFile:
    """File contents materialized in memory."""
    data: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class FileReaderService:
    """
    Reads image files for upload.

    Implements IFileReader protocol.
    """

    async def exists(self, path: Union[str, Path]) -> bool:
        """Existence probe. Never raises."""
        if not path:
            return False
        try:
            return await asyncio.to_thread(Path(path).is_file)
        except OSError as e:
            logger.debug("Existence check failed for %s: %s", path, e)
            return False

    async def read(self, path: Union[str, Path], filename: Optional[str] = None) -> ImageFile:
        """
        Read a file fully into memory.

        Args:
            path: Absolute path on disk
            filename: Name to upload under (default: the file's own name)

        Raises:
            LocalFileNotFoundError: If the file vanished before the read
            FileReadError: On any other I/O failure
        """
        file_path = Path(path)

        def _read() -> bytes:
            with open(file_path, "rb") as f:
                return f.read()

        try:
            data = await asyncio.to_thread(_read)
        except FileNotFoundError as exc:
            raise LocalFileNotFoundError(file_path) from exc
        except OSError as exc:
            raise FileReadError(f"Could not read {file_path}: {exc}") from exc

        name = filename or file_path.name
        return ImageFile(
            data=data,
            filename=name,
            content_type=get_mime_type(name),
        )
