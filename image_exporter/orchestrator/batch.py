"""Batch export: fixed-size groups, concurrent within a group."""
from typing import Any, List, Optional, Sequence
import asyncio
import logging
import time

from ..errors import BatchGroupError
from ..models import (
    BatchExportResult,
    EntityExportResult,
    ProgressEvent,
    ProgressStatus,
)
from ..protocols import ProgressSink
from ..utils.events import ProgressEmitter
from .single_export import SingleEntityExporter

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SIZE = 3


def chunk(items: Sequence[Any], size: int) -> List[List[Any]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchExportOrchestrator:
    """
    Exports many entities in sequential groups.

    Group N+1 starts only after group N has settled and been folded into the
    aggregate, bounding concurrent file handles and connections to the
    group size.
    """

    def __init__(
        self,
        exporter: SingleEntityExporter,
        group_size: int = DEFAULT_GROUP_SIZE,
        progress_flush_timeout: float = 1.0,
    ):
        if group_size < 1:
            raise ValueError(f"group_size must be >= 1, got {group_size}")
        self._exporter = exporter
        self._group_size = group_size
        self._flush_timeout = progress_flush_timeout

    async def run(
        self,
        entity_ids: Sequence[Any],
        progress_sink: Optional[ProgressSink] = None,
    ) -> BatchExportResult:
        """
        Export every entity in ``entity_ids``.

        Never raises for expected failures: per-entity crashes become error
        results, group failures become batch-level errors.
        """
        started = time.monotonic()
        events = ProgressEmitter([progress_sink] if progress_sink else None)
        entity_ids = list(entity_ids or [])
        total = len(entity_ids)
        result = BatchExportResult(total_entities=total)

        if not entity_ids:
            result.total_errors = 1
            result.errors.append("No entities provided for export")
            events.emit(ProgressEvent(0, 0, ProgressStatus.ERROR, message="No entities provided for export"))
            await events.flush(self._flush_timeout)
            return result

        try:
            events.emit(ProgressEvent(0, total, ProgressStatus.PREPARING, message="Preparing export..."))
            groups = chunk(entity_ids, self._group_size)

            for number, group in enumerate(groups, 1):
                first = (number - 1) * self._group_size + 1
                last = first + len(group) - 1
                events.emit(ProgressEvent(
                    processed=result.processed_entities,
                    total=total,
                    status=ProgressStatus.UPLOADING,
                    current_entity_id=group[0],
                    message=f"Processing entities {first}-{last} of {total} (group {number}/{len(groups)})",
                ))

                try:
                    group_results = await self._run_group(group)
                except Exception as exc:
                    error = BatchGroupError(str(exc).strip() or type(exc).__name__)
                    logger.error("Group %d failed: %s", number, error, exc_info=True)
                    result.errors.append(f"Group {number}: {error}")
                    events.emit(ProgressEvent(
                        processed=result.processed_entities,
                        total=total,
                        status=ProgressStatus.ERROR,
                        current_entity_id=group[0],
                        message=f"Group {number} failed: {error}",
                    ))
                    continue

                result.absorb(group_results)
                events.emit(ProgressEvent(
                    processed=result.processed_entities,
                    total=total,
                    status=ProgressStatus.UPLOADING,
                    current_entity_id=group[-1],
                    message=f"{result.processed_entities} of {total} entities processed",
                ))
        except Exception as exc:
            logger.error("Batch export aborted: %s", exc, exc_info=True)
            result.total_errors += 1
            result.errors.append(str(exc).strip() or type(exc).__name__)
            result.success = False
            result.duration_ms = int((time.monotonic() - started) * 1000)
            events.emit(ProgressEvent(result.processed_entities, total, ProgressStatus.ERROR, message=str(exc)))
            await events.flush(self._flush_timeout)
            return result

        result.success = result.total_errors == 0 and not result.errors
        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Batch export finished: %d/%d entities, %d uploaded, %d skipped, %d not found, %d errors in %d ms",
            result.processed_entities,
            total,
            result.total_uploaded,
            result.total_skipped,
            result.total_not_found,
            result.total_errors,
            result.duration_ms,
        )
        events.emit(ProgressEvent(
            processed=result.processed_entities,
            total=total,
            status=ProgressStatus.COMPLETED,
            message=f"Export completed: {result.total_uploaded} image(s) uploaded",
        ))
        await events.flush(self._flush_timeout)
        return result

    async def _run_group(self, group: List[Any]) -> List[EntityExportResult]:
        return list(await asyncio.gather(*(self._export_safely(entity_id) for entity_id in group)))

    async def _export_safely(self, entity_id: Any) -> EntityExportResult:
        try:
            return await self._exporter.export(entity_id)
        except Exception as exc:
            logger.error("Unexpected error exporting entity %s: %s", entity_id, exc, exc_info=True)
            return EntityExportResult.failure(entity_id, str(exc).strip() or type(exc).__name__)
