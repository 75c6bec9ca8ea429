"""
Protocols (Interfaces) for the export pipeline collaborators.

The pipeline only talks to these; concrete adapters live in ``services``.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, Awaitable, runtime_checkable

from .models import EntityImageRecord, ProgressEvent


@runtime_checkable
class IEntityStore(Protocol):
    """Interface for the persistent entity record store."""

    async def load_by_id(self, entity_id: int) -> EntityImageRecord:
        """Load one entity. Raises EntityNotFoundError if absent."""
        ...

    async def update_remote_fields_and_mark_exported(
        self, entity_id: int, fields: Dict[str, str]
    ) -> Any:
        """Write remote fields and set the export flag and timestamp."""
        ...

    async def list_not_exported(self, limit: int = 100) -> List[Dict[str, Any]]:
        """List entities whose export flag is not set."""
        ...


@runtime_checkable
class IAssetStore(Protocol):
    """Interface for the remote asset store."""

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        entity_type: str,
        entity_id: str,
        tags: List[str],
        description: str,
        alt_text: Optional[str] = None,
    ) -> Any:
        """Upload one file. Returns an AssetUploadResponse."""
        ...


@runtime_checkable
class IFileReader(Protocol):
    """Interface for local file access."""

    async def exists(self, path: Path) -> bool:
        ...

    async def read(self, path: Path, filename: Optional[str] = None) -> Any:
        """Read a file fully. Returns an ImageFile named ``filename`` if given."""
        ...


@runtime_checkable
class ProgressSink(Protocol):
    """Receives progress events; may be sync or async."""

    def __call__(self, event: ProgressEvent) -> Union[None, Awaitable[None]]:
        ...
