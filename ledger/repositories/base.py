"""
Repository Base

DESIGN DECISION: Repositories are the only code that turns stored records
into entity models and back.
- Storage deals in JSON-compatible dicts (see services/storage/interface.py)
- Callers deal in frozen pydantic snapshots (see models/entities.py)
- Every write is validated first; nothing half-valid reaches storage

Each repository owns one collection. Cross-collection rules (a category in
use cannot be deleted, the last account cannot be deleted) read the other
collections directly instead of going through another repository.
"""

from typing import Any, Generic, Optional, TypeVar

import pydantic
from pydantic import BaseModel

from ledger.audit import AuditLogger
from ledger.errors import EntityNotFoundError, ValidationError
from ledger.models.validation import ValidationIssue
from ledger.services.storage import CollectionStorageInterface, NotFoundError
from ledger.validation import LedgerValidator

EntityT = TypeVar("EntityT", bound=BaseModel)


def newest_created_first(entities: list) -> list:
    """Creation time descending. Ids are time-ordered, so they break ties."""
    return sorted(entities, key=lambda e: (e.created_at, e.id), reverse=True)


class BaseRepository(Generic[EntityT]):
    """Shared plumbing for the entity repositories."""

    entity_type: str = ""
    model: type[BaseModel] = BaseModel

    def __init__(
        self,
        collection: CollectionStorageInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._collection = collection
        self._validator = validator or LedgerValidator()
        self._audit = audit_logger or AuditLogger()

    def _to_entity(self, record: dict) -> EntityT:
        return self.model.model_validate(record)

    def _to_record(self, entity: EntityT) -> dict:
        return entity.model_dump(mode="json")

    async def get_by_id(self, entity_id: str) -> Optional[EntityT]:
        record = await self._collection.get(entity_id)
        return self._to_entity(record) if record is not None else None

    async def _require(self, entity_id: str) -> EntityT:
        """Get an entity or raise EntityNotFoundError."""
        entity = await self.get_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_type, entity_id)
        return entity

    async def _find(self, **query: Any) -> list[EntityT]:
        records = await self._collection.find(**query)
        return [self._to_entity(r) for r in records]

    def merge(self, entity: EntityT, changes: dict) -> EntityT:
        """
        The entity as it would look with `changes` applied. Nothing is written.

        The full record is re-validated so a change can never leave a
        stored record the model would reject.

        Raises:
            ValidationError: If the merged record is invalid
        """
        try:
            return self.model.model_validate({**entity.model_dump(), **changes})
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid {self.entity_type} update: {e.error_count()} error(s)",
                issues=[
                    ValidationIssue(
                        field=".".join(str(p) for p in err["loc"]) or "payload",
                        issue_type="invalid_value",
                        message=err["msg"],
                        severity="error",
                    )
                    for err in e.errors()
                ],
            )

    async def _write(self, entity: EntityT, changes: dict) -> EntityT:
        """Validate `changes` against the entity model and persist them."""
        updated = self.merge(entity, changes)
        record = self._to_record(updated)
        written = {field: record[field] for field in changes}
        try:
            await self._collection.update(entity.id, written)
        except NotFoundError:
            raise EntityNotFoundError(self.entity_type, entity.id)
        return updated
