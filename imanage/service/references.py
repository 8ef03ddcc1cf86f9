"""Reference finders: who still points at a record.

Each :class:`ReferenceEdge` names one dependent relationship from the schema.
:func:`build_reference_registry` binds every edge to a store lookup once at
startup; the resulting registry is read-only and shared by all requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from imanage.storage.schema import TABLES, EntityType

# (table, column, value) -> rows ordered by the table's natural order
Lookup = Callable[[str, str, Any], List[Dict[str, Any]]]


@dataclass(frozen=True)
class Reference:
    referencing_type: str
    human_label: str


@dataclass(frozen=True)
class ReferenceEdge:
    """``dependent`` rows refer to ``entity`` through ``table.column``.

    When ``via`` is set, ``table`` is a child table (e.g. ``quote_items``) and
    ``via`` is its column pointing at the dependent's row, which supplies the
    label.
    """

    entity: EntityType
    dependent: EntityType
    column: str
    label_fields: Tuple[str, ...] = ("number",)
    table: Optional[str] = None
    via: Optional[str] = None
    distinct: bool = False

    @property
    def source_table(self) -> str:
        return self.table or self.dependent.table.name

    def validate(self) -> None:
        source = TABLES.get(self.source_table)
        if source is None:
            raise ValueError(f"unknown table {self.source_table}")
        fk = source.foreign_key(self.column)
        if fk is None or fk.ref_table != self.entity.table.name:
            raise ValueError(
                f"{self.source_table}.{self.column} does not reference {self.entity.table.name}"
            )
        if self.via is not None:
            hop = source.foreign_key(self.via)
            if hop is None or hop.ref_table != self.dependent.table.name:
                raise ValueError(
                    f"{self.source_table}.{self.via} does not reference {self.dependent.table.name}"
                )


REFERENCE_EDGES: Tuple[ReferenceEdge, ...] = (
    ReferenceEdge(EntityType.CUSTOMER, EntityType.QUOTE, "customer_id"),
    ReferenceEdge(EntityType.CUSTOMER, EntityType.INVOICE, "customer_id"),
    ReferenceEdge(EntityType.VENDOR, EntityType.PURCHASE_ORDER, "vendor_id"),
    ReferenceEdge(EntityType.VENDOR, EntityType.INVOICE, "vendor_id"),
    ReferenceEdge(EntityType.EMPLOYEE, EntityType.PAYSLIP, "employee_id", label_fields=("month",)),
    ReferenceEdge(
        EntityType.EMPLOYEE,
        EntityType.VEHICLE_TRANSACTION,
        "employee_id",
        label_fields=("date",),
    ),
    ReferenceEdge(
        EntityType.VEHICLE,
        EntityType.QUOTE,
        "vehicle_type_id",
        table="quote_items",
        via="quote_id",
        distinct=True,
    ),
    ReferenceEdge(EntityType.QUOTE, EntityType.INVOICE, "quote_id"),
    ReferenceEdge(EntityType.PURCHASE_ORDER, EntityType.INVOICE, "purchase_order_id"),
    ReferenceEdge(
        EntityType.INVOICE,
        EntityType.VEHICLE_TRANSACTION,
        "invoice_id",
        label_fields=("date",),
    ),
)


class ReferenceFinder:
    """Callable ``entity_id -> list[Reference]`` for one edge. Read-only."""

    def __init__(self, edge: ReferenceEdge, lookup: Lookup) -> None:
        self.edge = edge
        self.lookup = lookup

    def __call__(self, entity_id: str) -> List[Reference]:
        edge = self.edge
        rows = self.lookup(edge.source_table, edge.column, entity_id)
        if edge.via is not None:
            parent_ids: List[Any] = []
            for row in rows:
                parent_id = row.get(edge.via)
                if parent_id is not None and parent_id not in parent_ids:
                    parent_ids.append(parent_id)
            rows = []
            for parent_id in parent_ids:
                rows.extend(self.lookup(edge.dependent.table.name, "id", parent_id))

        references: List[Reference] = []
        for row in rows:
            ref = Reference(edge.dependent.label, self._label(row))
            if edge.distinct and ref in references:
                continue
            references.append(ref)
        return references

    def _label(self, row: Dict[str, Any]) -> str:
        for name in self.edge.label_fields:
            value = row.get(name)
            if value not in (None, ""):
                return str(value)
        return str(row.get("id"))

    def __repr__(self) -> str:
        edge = self.edge
        return (
            f"ReferenceFinder({edge.entity.value} <- "
            f"{edge.source_table}.{edge.column})"
        )


class ReferenceRegistry:
    """Immutable mapping of entity type to its ordered reference finders."""

    def __init__(self, finders: Mapping[EntityType, Tuple[ReferenceFinder, ...]]) -> None:
        self._finders = MappingProxyType(dict(finders))

    def finders_for(self, entity: EntityType) -> Tuple[ReferenceFinder, ...]:
        return self._finders.get(EntityType(entity), ())

    @property
    def entities(self) -> Tuple[EntityType, ...]:
        return tuple(self._finders)

    def __len__(self) -> int:
        return sum(len(f) for f in self._finders.values())


def build_reference_registry(
    lookup: Lookup, edges: Iterable[ReferenceEdge] = REFERENCE_EDGES
) -> ReferenceRegistry:
    grouped: Dict[EntityType, List[ReferenceFinder]] = {}
    for edge in edges:
        edge.validate()
        grouped.setdefault(edge.entity, []).append(ReferenceFinder(edge, lookup))
    return ReferenceRegistry({entity: tuple(found) for entity, found in grouped.items()})


__all__ = [
    "Lookup",
    "REFERENCE_EDGES",
    "Reference",
    "ReferenceEdge",
    "ReferenceFinder",
    "ReferenceRegistry",
    "build_reference_registry",
]
