"""
Models for image export.

Slots and per-image outcomes are immutable; run-level results are built up
by the exporter and the batch orchestrator.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable
from enum import Enum


class ImageSlot(Enum):
    """The six fixed image roles of an entity, in declaration order."""
    MAIN = "main"
    IMAGE_1 = "1"
    IMAGE_2 = "2"
    IMAGE_3 = "3"
    IMAGE_4 = "4"
    IMAGE_5 = "5"

    @property
    def local_field(self) -> str:
        """Record field holding the local path (``image_main``, ``image1``...)."""
        if self is ImageSlot.MAIN:
            return "image_main"
        return f"image{self.value}"

    @property
    def remote_field(self) -> str:
        """Record field holding the remote locator (``srv_image_main``...)."""
        return f"srv_{self.local_field}"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class EntityImageRecord:
    """Snapshot of one entity's image fields as loaded from the entity store."""
    entity_id: int
    name: Optional[str] = None
    local_paths: Dict[ImageSlot, Optional[str]] = field(default_factory=dict)
    remote_refs: Dict[ImageSlot, Optional[str]] = field(default_factory=dict)
    exported: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "EntityImageRecord":
        """Build a record from a flat row keyed by slot field names."""
        entity_id = row.get("entity_id", row.get("product_id", row.get("id")))
        return cls(
            entity_id=int(entity_id),
            name=row.get("name") or row.get("product_name"),
            local_paths={slot: row.get(slot.local_field) for slot in ImageSlot},
            remote_refs={slot: row.get(slot.remote_field) for slot in ImageSlot},
            exported=bool(row.get("flag_export") or row.get("exported")),
        )

    def local_path(self, slot: ImageSlot) -> Optional[str]:
        return self.local_paths.get(slot)

    def remote_ref(self, slot: ImageSlot) -> Optional[str]:
        return self.remote_refs.get(slot)

    def has_remote_ref(self, slot: ImageSlot) -> bool:
        return not _is_blank(self.remote_refs.get(slot))


@dataclass(frozen=True)
class ExportItem:
    """One slot under consideration for upload."""
    slot: ImageSlot
    local_path: str  # canonical relative path
    absolute_path: Path
    remote_field: str
    existing_remote_ref: Optional[str] = None


class OutcomeStatus(Enum):
    """Result of processing one image slot."""
    UPLOADED = "uploaded"
    SKIPPED = "skipped"  # already exported
    NOT_FOUND = "not_found"  # missing on disk
    ERROR = "error"


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of one upload attempt (or skip)."""
    slot: ImageSlot
    remote_field: str
    local_path: str
    remote_ref: Optional[str] = None
    status: OutcomeStatus = OutcomeStatus.UPLOADED
    error: Optional[str] = None

    @classmethod
    def uploaded(cls, item: ExportItem, remote_ref: str):
        return cls(item.slot, item.remote_field, item.local_path, remote_ref, OutcomeStatus.UPLOADED)

    @classmethod
    def skipped(cls, item: ExportItem):
        return cls(
            item.slot,
            item.remote_field,
            item.local_path,
            item.existing_remote_ref,
            OutcomeStatus.SKIPPED,
        )

    @classmethod
    def not_found(cls, item: ExportItem, error: str = "File not found on disk"):
        return cls(item.slot, item.remote_field, item.local_path, None, OutcomeStatus.NOT_FOUND, error)

    @classmethod
    def failed(cls, item: ExportItem, error: str):
        return cls(item.slot, item.remote_field, item.local_path, None, OutcomeStatus.ERROR, error)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "slot": self.slot.value,
            "remote_field": self.remote_field,
            "local_path": self.local_path,
            "remote_ref": self.remote_ref,
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class EntityExportResult:
    """Result of exporting one entity."""
    entity_id: Any
    success: bool
    total_processed: int = 0
    total_uploaded: int = 0
    total_skipped: int = 0
    total_not_found: int = 0
    total_errors: int = 0
    outcomes: List[UploadOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, entity_id: Any, message: str, outcomes: Optional[List[UploadOutcome]] = None):
        """Zero-progress error result."""
        return cls(
            entity_id=entity_id,
            success=False,
            total_errors=1,
            outcomes=list(outcomes or []),
            errors=[message],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "success": self.success,
            "total_processed": self.total_processed,
            "total_uploaded": self.total_uploaded,
            "total_skipped": self.total_skipped,
            "total_not_found": self.total_not_found,
            "total_errors": self.total_errors,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "errors": list(self.errors),
        }


@dataclass
class BatchExportResult:
    """Run-level aggregate. Only mutated by the batch orchestrator."""
    total_entities: int
    processed_entities: int = 0
    total_uploaded: int = 0
    total_skipped: int = 0
    total_not_found: int = 0
    total_errors: int = 0
    results: List[EntityExportResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_ms: int = 0
    success: bool = False

    def absorb(self, results: Iterable[EntityExportResult]) -> None:
        """Fold one settled group into the aggregate."""
        for result in results:
            self.results.append(result)
            self.processed_entities += 1
            self.total_uploaded += result.total_uploaded
            self.total_skipped += result.total_skipped
            self.total_not_found += result.total_not_found
            self.total_errors += result.total_errors
            if not result.success and result.errors:
                self.errors.append(f"Entity {result.entity_id}: {', '.join(result.errors)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total_entities": self.total_entities,
            "processed_entities": self.processed_entities,
            "total_uploaded": self.total_uploaded,
            "total_skipped": self.total_skipped,
            "total_not_found": self.total_not_found,
            "total_errors": self.total_errors,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors),
            "results": [r.to_dict() for r in self.results],
        }


class ProgressStatus(Enum):
    """
    Batch run phase.

    SAVING is reserved: persistence happens inside each entity export, so a
    batch run never emits it.
    """
    PREPARING = "preparing"
    UPLOADING = "uploading"
    SAVING = "saving"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """Transient progress notification for a batch run."""
    processed: int
    total: int
    status: ProgressStatus
    current_entity_id: Optional[int] = None
    message: str = ""

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.processed / self.total * 100
