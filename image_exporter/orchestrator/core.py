"""Core orchestrator - wires services and exposes the export workflows."""
import logging
from typing import Any, Optional, Sequence

from ..config import ExportConfig
from ..errors import ValidationError
from ..models import BatchExportResult, EntityExportResult
from ..protocols import IAssetStore, IEntityStore, ProgressSink
from ..services.api_client import HTTPAPIClient
from ..services.assets_api import AssetsAPIClient
from ..services.file_reader import FileReaderService
from ..services.repository import EntityRepository
from ..services.uploader import RemoteUploaderService

from .batch import BatchExportOrchestrator
from .single_export import SingleEntityExporter

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """
    Orchestrates image exports using injected services.

    Collaborators that are not injected are built from the configuration
    when entering the context and closed on exit.

    Usage:
        config = ExportConfig.from_env()
        async with ExportOrchestrator(config) as exporter:
            result = await exporter.export_entity(501)
            batch = await exporter.export_entities([501, 502, 503], progress_sink=print)
    """

    def __init__(
        self,
        config: Optional[ExportConfig] = None,
        entity_store: Optional[IEntityStore] = None,
        asset_store: Optional[IAssetStore] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            config: Export configuration
            entity_store: Pre-built entity store (default: EntityRepository over HTTP)
            asset_store: Pre-built asset store (default: AssetsAPIClient)
        """
        self._config = config or ExportConfig()
        self._entity_store = entity_store
        self._asset_store = asset_store

        # Owned clients (opened in __aenter__)
        self._api_client: Optional[HTTPAPIClient] = None
        self._assets_client: Optional[AssetsAPIClient] = None

        self._exporter: Optional[SingleEntityExporter] = None
        self._batch: Optional[BatchExportOrchestrator] = None

    async def __aenter__(self):
        """Initialize services and handlers."""
        if self._entity_store is None:
            if not self._config.entity_api_url:
                raise ValidationError("entity_api_url is required when no entity store is injected")
            self._api_client = HTTPAPIClient(self._config.entity_api_url, timeout=self._config.api_timeout)
            await self._api_client.__aenter__()
            self._entity_store = EntityRepository(self._api_client)

        if self._asset_store is None:
            self._assets_client = AssetsAPIClient(
                self._config.assets_api_url,
                api_key=self._config.assets_api_key,
                timeout=self._config.upload_timeout,
            )
            await self._assets_client.__aenter__()
            self._asset_store = self._assets_client

        self._exporter = SingleEntityExporter(
            self._entity_store,
            FileReaderService(),
            RemoteUploaderService(self._asset_store, self._config),
            self._config,
        )
        self._batch = BatchExportOrchestrator(
            self._exporter,
            group_size=self._config.group_size,
            progress_flush_timeout=self._config.progress_flush_timeout,
        )
        return self

    async def __aexit__(self, *args):
        """Cleanup owned clients."""
        if self._assets_client:
            await self._assets_client.__aexit__(*args)
            self._assets_client = None
            self._asset_store = None
        if self._api_client:
            await self._api_client.__aexit__(*args)
            self._api_client = None
            self._entity_store = None

    async def export_entity(self, entity_id: Any) -> EntityExportResult:
        """Export the images of one entity."""
        assert self._exporter is not None
        return await self._exporter.export(entity_id)

    async def export_entities(
        self,
        entity_ids: Sequence[Any],
        progress_sink: Optional[ProgressSink] = None,
    ) -> BatchExportResult:
        """Export many entities in groups."""
        assert self._batch is not None
        return await self._batch.run(entity_ids, progress_sink)

    async def export_pending(
        self,
        limit: int = 100,
        progress_sink: Optional[ProgressSink] = None,
    ) -> BatchExportResult:
        """
        Export every entity the store reports as not yet exported.

        A catalog with nothing pending yields an empty successful result.
        """
        assert self._batch is not None and self._entity_store is not None
        rows = await self._entity_store.list_not_exported(limit)
        entity_ids = [
            row.get("entity_id", row.get("product_id", row.get("id")))
            for row in rows
        ]
        if not entity_ids:
            logger.info("No entities pending export")
            return BatchExportResult(total_entities=0, success=True)
        return await self._batch.run(entity_ids, progress_sink)
