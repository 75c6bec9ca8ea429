"""Shared fixtures for image_exporter tests."""
from typing import Dict

import pytest

from image_exporter.errors import EntityNotFoundError
from image_exporter.models import EntityImageRecord


class InMemoryEntityStore:
    """Entity store keeping flat rows, like the entity API would."""

    def __init__(self, rows: Dict[int, dict]):
        self.rows = rows
        self.updates = []

    async def load_by_id(self, entity_id):
        if entity_id not in self.rows:
            raise EntityNotFoundError(f"Entity not found (entity_id={entity_id}).")
        return EntityImageRecord.from_row({"entity_id": entity_id, **self.rows[entity_id]})

    async def update_remote_fields_and_mark_exported(self, entity_id, fields):
        self.updates.append((entity_id, dict(fields)))
        self.rows[entity_id].update(fields)
        self.rows[entity_id]["flag_export"] = 1
        return self.rows[entity_id]

    async def list_not_exported(self, limit=100):
        return [{"entity_id": i} for i, row in self.rows.items() if not row.get("flag_export")][:limit]


@pytest.fixture
def entity_store():
    """Factory building an in-memory entity store from flat rows."""
    return InMemoryEntityStore


@pytest.fixture(autouse=True)
def _restore_logging_state():
    """Undo global logging changes (e.g. the CLI's logging.disable) between tests."""
    import logging

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    disabled = logging.root.manager.disable
    yield
    logging.disable(disabled)
    root.handlers[:] = handlers
    root.setLevel(level)
