"""Decide which image slots of an entity still need uploading."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Set, Union

from image_exporter.models import EntityImageRecord, ExportItem, ImageSlot
from image_exporter.utils.paths import build_absolute_path, normalize_image_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImageSet:
    """Slots split into uploads and already-exported skips, in slot order."""

    to_upload: List[ExportItem] = field(default_factory=list)
    skipped: List[ExportItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_upload and not self.skipped


def find_slots_with_same_path(record: EntityImageRecord, image_path: str) -> List[ImageSlot]:
    """
    Find every slot of the record whose canonical local path equals ``image_path``.

    Used to fan one upload's locator out to slots that share the same file
    (e.g. ``image1`` pointing at the same file as ``image_main``).
    """
    target = normalize_image_path(image_path)
    if not target:
        return []
    return [
        slot
        for slot in ImageSlot
        if normalize_image_path(record.local_path(slot)) == target
    ]


class ResolveImageSetUseCase:
    """Partition an entity's slots into ``to_upload`` and ``skipped``."""

    def __init__(self, storage_root: Union[str, Path]):
        self._storage_root = Path(storage_root)

    def execute(self, record: EntityImageRecord) -> ResolvedImageSet:
        to_upload: List[ExportItem] = []
        skipped: List[ExportItem] = []
        claimed: Set[str] = set()

        for slot in ImageSlot:
            canonical = normalize_image_path(record.local_path(slot))
            if not canonical:
                continue

            item = ExportItem(
                slot=slot,
                local_path=canonical,
                absolute_path=build_absolute_path(canonical, self._storage_root),
                remote_field=slot.remote_field,
                existing_remote_ref=record.remote_ref(slot),
            )

            if record.has_remote_ref(slot):
                skipped.append(item)
                continue

            if canonical in claimed:
                # Serviced by the earlier slot; receives its locator at fan-out.
                logger.debug(
                    "Entity %s: %s shares %s with an earlier slot",
                    record.entity_id,
                    slot.local_field,
                    canonical,
                )
                continue

            claimed.add(canonical)
            to_upload.append(item)

        return ResolvedImageSet(to_upload=to_upload, skipped=skipped)
