"""
Entity Repository - Single Responsibility: load and update entity image records.

Implements Repository Pattern over the entity API.
"""
from typing import Dict, Any, List
from datetime import datetime, timezone
import logging

import httpx

from ..errors import APIStatusError, EntityNotFoundError, PersistenceError, ValidationError
from ..models import EntityImageRecord, ImageSlot
from ..protocols import IEntityStore

logger = logging.getLogger(__name__)

REMOTE_FIELDS = frozenset(slot.remote_field for slot in ImageSlot)
MAX_LIST_LIMIT = 100


def parse_entity_id(value: Any) -> int:
    """
    Coerce an entity id from int or numeric string.

    Raises:
        ValidationError: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise ValidationError("entity_id must be a positive integer.")
    if isinstance(value, int):
        if value <= 0:
            raise ValidationError("entity_id must be a positive integer.")
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            raise ValidationError("entity_id is required.")
        try:
            number = int(trimmed)
        except ValueError:
            raise ValidationError("entity_id must be a positive integer.") from None
        if number <= 0:
            raise ValidationError("entity_id must be a positive integer.")
        return number
    raise ValidationError("Invalid entity_id.")


class EntityRepository(IEntityStore):
    """
    Repository for entity image records behind the entity API.

    Endpoints:
        GET   /entities/{id}
        PATCH /entities/{id}
        GET   /entities?exported=0&limit=N
    """

    def __init__(self, api_client):
        """
        Initialize repository.

        Args:
            api_client: HTTPAPIClient bound to the entity API
        """
        self._api = api_client

    async def load_by_id(self, entity_id: Any) -> EntityImageRecord:
        entity_id = parse_entity_id(entity_id)
        try:
            response = await self._api.get(f"/entities/{entity_id}")
        except APIStatusError as exc:
            if exc.status_code == 404:
                raise EntityNotFoundError(f"Entity not found (entity_id={entity_id}).") from exc
            raise

        row = response.json()
        if not row:
            raise EntityNotFoundError(f"Entity not found (entity_id={entity_id}).")
        row.setdefault("entity_id", entity_id)
        return EntityImageRecord.from_row(row)

    async def update_remote_fields_and_mark_exported(
        self, entity_id: Any, fields: Dict[str, str]
    ) -> Dict[str, Any]:
        """
        Write remote image fields and mark the entity as exported.

        Only non-empty values for known remote fields are sent.

        Raises:
            ValidationError: Unknown remote field name
            PersistenceError: Entity API rejected or never received the update
        """
        entity_id = parse_entity_id(entity_id)
        now = datetime.now(timezone.utc).isoformat()
        payload: Dict[str, Any] = {
            "flag_export": 1,
            "exported_at": now,
            "updated_at": now,
        }
        for name, value in fields.items():
            if name not in REMOTE_FIELDS:
                raise ValidationError(f"Unknown remote image field: {name}")
            if value:
                payload[name] = value

        try:
            response = await self._api.patch(f"/entities/{entity_id}", json=payload)
        except (APIStatusError, httpx.HTTPError) as exc:
            raise PersistenceError(str(exc).strip() or type(exc).__name__) from exc
        logger.debug("Entity %s marked exported with %d field(s)", entity_id, len(fields))
        return response.json()

    async def list_not_exported(self, limit: int = MAX_LIST_LIMIT) -> List[Dict[str, Any]]:
        """Return up to ``limit`` (max 100) entities not yet exported."""
        safe_limit = limit if isinstance(limit, int) and limit > 0 else MAX_LIST_LIMIT
        take = min(safe_limit, MAX_LIST_LIMIT)
        response = await self._api.get("/entities", params={"exported": 0, "limit": take})
        data = response.json()
        if isinstance(data, dict):
            data = data.get("items", [])
        return list(data)
