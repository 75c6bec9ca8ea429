"""
Image exporter - pushes catalog entity images to a remote asset store.

Each entity owns up to six image slots (main + 1..5). Slots pointing at the
same file are uploaded once, and the returned locator is written back to
every slot that shares it.

Usage:
    from image_exporter import ExportOrchestrator, ExportConfig

    async with ExportOrchestrator(ExportConfig.from_env()) as exporter:
        result = await exporter.export_entity(501)
        batch = await exporter.export_entities([501, 502, 503])
"""
from .config import ExportConfig
from .errors import (
    ExportError,
    ValidationError,
    EntityNotFoundError,
    LocalFileNotFoundError,
    FileReadError,
    UploadError,
    NoLocatorReturnedError,
    PersistenceError,
    BatchGroupError,
)
from .models import (
    ImageSlot,
    EntityImageRecord,
    ExportItem,
    OutcomeStatus,
    UploadOutcome,
    EntityExportResult,
    BatchExportResult,
    ProgressStatus,
    ProgressEvent,
)
from .orchestrator import ExportOrchestrator, BatchExportOrchestrator, SingleEntityExporter

__version__ = "0.1.0"
__all__ = [
    # Main
    "ExportOrchestrator",
    "BatchExportOrchestrator",
    "SingleEntityExporter",
    "ExportConfig",
    # Models
    "ImageSlot",
    "EntityImageRecord",
    "ExportItem",
    "OutcomeStatus",
    "UploadOutcome",
    "EntityExportResult",
    "BatchExportResult",
    "ProgressStatus",
    "ProgressEvent",
    # Errors
    "ExportError",
    "ValidationError",
    "EntityNotFoundError",
    "LocalFileNotFoundError",
    "FileReadError",
    "UploadError",
    "NoLocatorReturnedError",
    "PersistenceError",
    "BatchGroupError",
]
