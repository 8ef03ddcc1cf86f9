from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from imanage.logging import get_logger
from imanage.service.deletion import (
    Deleted,
    DeleteOutcome,
    DeleteResolver,
    NotFound,
    ReferencedBy,
    Unknown,
)
from imanage.service.errors import ConflictError, NotFoundError, ServerError
from imanage.storage.common import EntityStore, record_to_dict, to_model
from imanage.storage.errors import ConstraintViolation, RecordNotFound
from imanage.storage.schema import EntityType

logger = get_logger(__name__)

Validator = Callable[[Dict[str, Any]], Dict[str, Any]]


def raise_for_outcome(outcome: DeleteOutcome) -> None:
    """Turn a non-success delete outcome into the matching service error."""
    if isinstance(outcome, Deleted):
        return
    if isinstance(outcome, NotFound):
        raise NotFoundError(outcome.message)
    if isinstance(outcome, ReferencedBy):
        raise ConflictError(
            outcome.message,
            detail={
                "references": [
                    {"type": ref.referencing_type, "label": ref.human_label}
                    for ref in outcome.references
                ]
            },
        )
    if isinstance(outcome, Unknown):
        raise ServerError(outcome.message)
    raise TypeError(f"unexpected delete outcome {outcome!r}")


class RecordService:
    """CRUD over every entity; deletes go through the conflict resolver."""

    def __init__(self, store: EntityStore, resolver: DeleteResolver) -> None:
        self.store = store
        self.resolver = resolver

    def list(self, entity: EntityType) -> List[Dict[str, Any]]:
        return [record_to_dict(r) for r in self.store.list(entity)]

    def get(self, entity: EntityType, entity_id: str) -> Dict[str, Any]:
        record = self.store.get(entity, entity_id)
        if record is None:
            raise NotFoundError(f"{entity.label} not found", detail={"id": entity_id})
        return record_to_dict(record)

    def list_by(self, entity: EntityType, column: str, value: Any) -> List[Dict[str, Any]]:
        """Records whose ``column`` equals ``value``, oldest first."""
        table = entity.table
        return [
            record_to_dict(to_model(table, row))
            for row in self.store.find_by(table.name, column, value)
        ]

    def create(self, entity: EntityType, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            record = self.store.create(entity, data)
        except ConstraintViolation as exc:
            logger.warning(
                "record_write_rejected", entity=entity.value, action="create", error=exc.message
            )
            raise ConflictError(exc.message, detail=exc.detail) from exc
        return record_to_dict(record)

    def update(
        self,
        entity: EntityType,
        entity_id: str,
        changes: Dict[str, Any],
        *,
        validate: Optional[Validator] = None,
    ) -> Dict[str, Any]:
        """Merge ``changes`` over the stored record, re-validate, and save."""
        current = self.get(entity, entity_id)
        merged = {**current, **changes, "id": entity_id}
        if validate is not None:
            merged = validate(merged)
        try:
            record = self.store.update(entity, entity_id, merged)
        except RecordNotFound as exc:
            raise NotFoundError(f"{entity.label} not found", detail={"id": entity_id}) from exc
        except ConstraintViolation as exc:
            logger.warning(
                "record_write_rejected", entity=entity.value, action="update", error=exc.message
            )
            raise ConflictError(exc.message, detail=exc.detail) from exc
        return record_to_dict(record)

    def delete(self, entity: EntityType, entity_id: str) -> None:
        raise_for_outcome(self.resolver.delete(entity, entity_id))


__all__ = ["RecordService", "raise_for_outcome"]
