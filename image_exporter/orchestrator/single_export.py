"""Single entity export handler."""
import logging
from typing import Any, Dict, List, Optional

from ..config import ExportConfig
from ..errors import (
    EntityNotFoundError,
    FileReadError,
    LocalFileNotFoundError,
    UploadError,
    ValidationError,
)
from ..models import EntityExportResult, ExportItem, OutcomeStatus, UploadOutcome
from ..protocols import IEntityStore, IFileReader
from ..use_cases.resolve_images import ResolveImageSetUseCase, find_slots_with_same_path
from ..utils.paths import extract_file_name

logger = logging.getLogger(__name__)


def _describe_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"


class SingleEntityExporter:
    """
    Exports the images of one entity.

    Resolve slots, upload each distinct file once, fan the locators out to
    every slot sharing the file, then persist the new remote fields.
    Uploads within one entity run sequentially.
    """

    def __init__(
        self,
        repository: IEntityStore,
        file_reader: IFileReader,
        uploader,
        config: Optional[ExportConfig] = None,
        resolver: Optional[ResolveImageSetUseCase] = None,
    ):
        """
        Initialize single entity exporter.

        Args:
            repository: Entity store (EntityRepository)
            file_reader: FileReaderService
            uploader: RemoteUploaderService
            config: ExportConfig
            resolver: Slot resolver (default: built from config.storage_root)
        """
        self._repository = repository
        self._file_reader = file_reader
        self._uploader = uploader
        self._config = config or ExportConfig()
        self._resolver = resolver or ResolveImageSetUseCase(self._config.storage_root)

    async def export(self, entity_id: Any) -> EntityExportResult:
        """Export one entity. Always returns a result, never raises for expected failures."""
        if isinstance(entity_id, bool) or not isinstance(entity_id, int) or entity_id <= 0:
            logger.warning("Rejected invalid entity id: %r", entity_id)
            return EntityExportResult.failure(entity_id or 0, "Invalid entity id")

        try:
            record = await self._repository.load_by_id(entity_id)
        except EntityNotFoundError:
            logger.warning("Entity not found: %s", entity_id)
            return EntityExportResult.failure(entity_id, "Entity not found")
        except ValidationError as exc:
            logger.warning("Validation error for entity %s: %s", entity_id, exc)
            return EntityExportResult.failure(entity_id, str(exc))
        except Exception as exc:
            logger.error("Failed to load entity %s: %s", entity_id, exc, exc_info=True)
            return EntityExportResult.failure(entity_id, _describe_exception(exc))

        resolved = self._resolver.execute(record)
        outcomes: List[UploadOutcome] = [UploadOutcome.skipped(item) for item in resolved.skipped]
        errors: List[str] = []

        if not resolved.to_upload:
            return EntityExportResult(
                entity_id=entity_id,
                success=True,
                total_processed=len(resolved.skipped),
                total_skipped=len(resolved.skipped),
                outcomes=outcomes,
            )

        uploaded_urls: Dict[str, str] = {}
        alt_text = record.name or f"Entity {entity_id} image"

        for item in resolved.to_upload:
            outcome = await self._export_item(entity_id, item, alt_text)
            outcomes.append(outcome)
            if outcome.status is OutcomeStatus.UPLOADED:
                uploaded_urls[item.local_path] = outcome.remote_ref
            elif outcome.status is OutcomeStatus.ERROR:
                errors.append(f"{item.slot.local_field}: {outcome.error}")

        staged = self._stage_remote_fields(record, uploaded_urls)
        if staged:
            try:
                await self._repository.update_remote_fields_and_mark_exported(entity_id, staged)
            except Exception as exc:
                # Uploads already succeeded and are not undone.
                error_msg = _describe_exception(exc)
                logger.error("Persistence failed for entity %s: %s", entity_id, error_msg)
                errors.append(f"Database: {error_msg}")

        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1

        result = EntityExportResult(
            entity_id=entity_id,
            success=counts[OutcomeStatus.ERROR] == 0 and not errors,
            total_processed=len(resolved.to_upload) + len(resolved.skipped),
            total_uploaded=counts[OutcomeStatus.UPLOADED],
            total_skipped=counts[OutcomeStatus.SKIPPED],
            total_not_found=counts[OutcomeStatus.NOT_FOUND],
            total_errors=counts[OutcomeStatus.ERROR],
            outcomes=outcomes,
            errors=errors,
        )
        logger.info(
            "Entity %s: %d uploaded, %d skipped, %d not found, %d errors",
            entity_id,
            result.total_uploaded,
            result.total_skipped,
            result.total_not_found,
            result.total_errors,
        )
        return result

    async def _export_item(self, entity_id: int, item: ExportItem, alt_text: str) -> UploadOutcome:
        if not await self._file_reader.exists(item.absolute_path):
            logger.warning("File not found: %s", item.absolute_path)
            return UploadOutcome.not_found(item)

        try:
            image = await self._file_reader.read(
                item.absolute_path, filename=extract_file_name(item.local_path)
            )
            locator = await self._uploader.upload(
                image,
                entity_id,
                item.slot,
                description=f"Entity {entity_id} - {item.slot.local_field}",
                alt_text=alt_text,
            )
        except LocalFileNotFoundError:
            logger.warning("File disappeared before read: %s", item.absolute_path)
            return UploadOutcome.not_found(item)
        except (FileReadError, UploadError) as exc:
            logger.error("Upload failed for %s: %s", item.slot.local_field, exc)
            return UploadOutcome.failed(item, _describe_exception(exc))
        except Exception as exc:
            logger.error("Upload error for %s: %s", item.slot.local_field, exc, exc_info=True)
            return UploadOutcome.failed(item, _describe_exception(exc))

        return UploadOutcome.uploaded(item, locator)

    @staticmethod
    def _stage_remote_fields(record, uploaded_urls: Dict[str, str]) -> Dict[str, str]:
        """Fan each uploaded locator out to every slot sharing its path, never overwriting."""
        staged: Dict[str, str] = {}
        for uploaded_path, url in uploaded_urls.items():
            for slot in find_slots_with_same_path(record, uploaded_path):
                if not record.has_remote_ref(slot):
                    staged[slot.remote_field] = url
        return staged
