"""Delete-conflict resolution.

A delete is attempted once. When the store refuses it with a constraint
violation, the registered reference finders are asked which records still
point at the target and their answers are turned into a single message an
end user can act on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple, Union

from imanage.logging import get_logger
from imanage.service.references import Reference, ReferenceFinder, ReferenceRegistry
from imanage.storage.errors import ConstraintViolation, DeleteBlocked, RecordNotFound
from imanage.storage.schema import EntityType

logger = get_logger(__name__)


@dataclass(frozen=True)
class Deleted:
    status_code = 204


@dataclass(frozen=True)
class NotFound:
    message: str
    status_code = 404


@dataclass(frozen=True)
class ReferencedBy:
    message: str
    references: Tuple[Reference, ...] = field(default_factory=tuple)
    status_code = 409


@dataclass(frozen=True)
class Unknown:
    message: str
    status_code = 500


DeleteOutcome = Union[Deleted, NotFound, ReferencedBy, Unknown]


def format_reference_error(entity_label: str, references: Sequence[Reference]) -> str:
    """Render the blocking references, grouped by type in first-seen order."""
    if not references:
        return generic_reference_error(entity_label)
    if len(references) == 1:
        ref = references[0]
        return (
            f"Cannot delete {entity_label} as it is referenced in "
            f"{ref.referencing_type} {ref.human_label}"
        )
    groups: dict[str, List[str]] = {}
    for ref in references:
        groups.setdefault(ref.referencing_type, []).append(ref.human_label)
    lines = [f"Cannot delete {entity_label} as it is referenced in:"]
    for ref_type, labels in groups.items():
        lines.extend(f"- {ref_type} {label}" for label in labels)
    return "\n".join(lines)


def generic_reference_error(entity_label: str) -> str:
    return f"Cannot delete {entity_label} as it is referenced in other records"


def collect_references(
    entity_id: str, finders: Sequence[ReferenceFinder]
) -> List[Reference]:
    references: List[Reference] = []
    for finder in finders:
        references.extend(finder(entity_id))
    return references


def resolve_delete(
    entity_type: EntityType,
    entity_id: str,
    delete_fn: Callable[[str], None],
    finders: Sequence[ReferenceFinder],
) -> DeleteOutcome:
    if not entity_id:
        raise ValueError("entity_id must be a non-empty string")
    entity_type = EntityType(entity_type)
    label = entity_type.label

    try:
        delete_fn(entity_id)
    except RecordNotFound:
        return NotFound(f"{label} not found")
    except DeleteBlocked as exc:
        logger.info("delete_blocked", entity=entity_type.value, id=entity_id, reason=exc.message)
        return ReferencedBy(exc.message)
    except ConstraintViolation as exc:
        logger.info(
            "delete_constraint_violation",
            entity=entity_type.value,
            id=entity_id,
            error_type=type(exc).__name__,
        )
        return _explain_conflict(entity_type, entity_id, finders)
    except Exception as exc:
        logger.error(
            "delete_failed", entity=entity_type.value, id=entity_id, error=str(exc)
        )
        return Unknown(str(exc))

    logger.info("record_deleted", entity=entity_type.value, id=entity_id)
    return Deleted()


def _explain_conflict(
    entity_type: EntityType, entity_id: str, finders: Sequence[ReferenceFinder]
) -> ReferencedBy:
    label = entity_type.label
    try:
        references = collect_references(entity_id, finders)
    except Exception as exc:
        logger.warning(
            "reference_lookup_failed",
            entity=entity_type.value,
            id=entity_id,
            error=str(exc),
        )
        return ReferencedBy(generic_reference_error(label))
    if not references:
        return ReferencedBy(generic_reference_error(label))
    logger.info(
        "delete_blocked",
        entity=entity_type.value,
        id=entity_id,
        references=len(references),
    )
    return ReferencedBy(format_reference_error(label, references), tuple(references))


class DeleteResolver:
    """Binds :func:`resolve_delete` to a store and a reference registry."""

    def __init__(self, store, registry: ReferenceRegistry) -> None:
        self.store = store
        self.registry = registry

    def delete(self, entity_type: EntityType, entity_id: str) -> DeleteOutcome:
        entity_type = EntityType(entity_type)
        return resolve_delete(
            entity_type,
            entity_id,
            lambda target: self.store.delete(entity_type, target),
            self.registry.finders_for(entity_type),
        )

    def references_for(self, entity_type: EntityType, entity_id: str) -> List[Reference]:
        """Current blockers for ``entity_id`` without attempting a delete."""
        if not entity_id:
            raise ValueError("entity_id must be a non-empty string")
        return collect_references(entity_id, self.registry.finders_for(EntityType(entity_type)))


__all__ = [
    "DeleteOutcome",
    "DeleteResolver",
    "Deleted",
    "NotFound",
    "ReferencedBy",
    "Unknown",
    "collect_references",
    "format_reference_error",
    "generic_reference_error",
    "resolve_delete",
]
