"""Common storage utilities shared between the memory, sqlite and postgres stores.

Row shaping, id and timestamp generation, and the expense-category delete
guard live here so that every backend applies them identically.
"""

from __future__ import annotations

import uuid
from dataclasses import MISSING, asdict, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from imanage.storage.errors import DeleteBlocked
from imanage.storage.schema import EntityType, Table, TABLES


class EntityStore(Protocol):
    """Operations every store backend provides."""

    def list(self, entity: EntityType) -> List[Any]: ...

    def get(self, entity: EntityType, entity_id: str) -> Optional[Any]: ...

    def create(self, entity: EntityType, data: Dict[str, Any]) -> Any: ...

    def update(self, entity: EntityType, entity_id: str, data: Dict[str, Any]) -> Any: ...

    def delete(self, entity: EntityType, entity_id: str) -> None: ...

    def find_by(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]: ...

    def verify_connection(self) -> bool: ...


# ============================================================================
# IDS AND TIMESTAMPS
# ============================================================================

def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# ROW SHAPING
# ============================================================================

def split_children(
    table: Table, data: Dict[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, Optional[List[Dict[str, Any]]]]]:
    """Separate child collections (``items``) from the parent's own columns.

    A child key that is absent from ``data`` maps to ``None`` so callers can
    tell "leave the children alone" apart from "replace with an empty list".
    """
    row = {k: v for k, v in data.items() if k not in table.children}
    children: Dict[str, Optional[List[Dict[str, Any]]]] = {}
    for attr in table.children:
        if attr in data and data[attr] is not None:
            children[attr] = [record_to_dict(item) for item in data[attr]]
        else:
            children[attr] = None
    return row, children


def build_row(
    table: Table,
    data: Dict[str, Any],
    *,
    existing: Optional[Dict[str, Any]] = None,
    now: Optional[str] = None,
) -> Dict[str, Any]:
    """Return a full column mapping for an insert (``existing`` is None) or update."""
    stamp = now or utc_now_iso()
    columns = table.column_names
    if existing is None:
        row = {name: None for name in columns}
        for f_name, default in _model_defaults(table).items():
            row[f_name] = default
    else:
        row = dict(existing)
    for key, value in data.items():
        if key in columns:
            row[key] = value
    if existing is None:
        row["id"] = data.get("id") or new_id()
        if "created_at" in columns:
            row["created_at"] = data.get("created_at") or stamp
    else:
        row["id"] = existing["id"]
        if "created_at" in columns:
            row["created_at"] = existing.get("created_at")
    if "updated_at" in columns:
        row["updated_at"] = stamp
    return row


def build_child_rows(
    child: Table, parent_id: str, items: Iterable[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    rows = []
    for index, item in enumerate(items, start=1):
        payload = dict(item)
        payload[child.parent_column] = parent_id
        if payload.get("serial_number") is None:
            payload["serial_number"] = index
        payload["id"] = payload.get("id") or new_id()
        rows.append(build_row(child, payload))
    return rows


def normalize_row(table: Table, row: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce driver values (sqlite stores booleans as 0/1) to model types."""
    result = {}
    for col in table.columns:
        value = row.get(col.name)
        if value is not None and col.sql_type == "BOOLEAN":
            value = bool(value)
        result[col.name] = value
    return result


def to_model(
    table: Table,
    row: Dict[str, Any],
    children: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> Any:
    values = normalize_row(table, row)
    for attr, child_name in table.children.items():
        child = TABLES[child_name]
        child_rows = (children or {}).get(attr) or []
        values[attr] = [to_model(child, r) for r in child_rows]
    return table.model(**values)


def record_to_dict(record: Any) -> Dict[str, Any]:
    return asdict(record) if is_dataclass(record) else dict(record)


def sort_rows(table: Table, rows: Iterable[Dict[str, Any]], *, newest_first: bool = False):
    def key(row: Dict[str, Any]):
        return tuple("" if row.get(col) is None else row.get(col) for col in table.order_by)

    return sorted(rows, key=key, reverse=newest_first)


def _model_defaults(table: Table) -> Dict[str, Any]:
    return {
        f.name: f.default
        for f in fields(table.model)
        if f.name not in table.children and f.default is not MISSING and f.default is not None
    }


# ============================================================================
# EXPENSE CATEGORIES
# ============================================================================

PREDEFINED_EXPENSE_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("cat_purchase", "Purchase"),
    ("cat_maintenance", "Maintenance"),
    ("cat_insurance", "Insurance"),
    ("cat_driver_salary", "Driver Salary"),
    ("cat_fuel", "Fuel"),
    ("cat_registration", "Registration"),
    ("cat_other", "Other"),
)


def predefined_category_rows(now: Optional[str] = None) -> List[Dict[str, Any]]:
    stamp = now or utc_now_iso()
    return [
        {"id": cid, "name": name, "is_custom": False, "created_at": stamp}
        for cid, name in PREDEFINED_EXPENSE_CATEGORIES
    ]


def guard_expense_category_delete(category: Dict[str, Any], in_use: bool) -> None:
    """Raise ``DeleteBlocked`` when a category must survive.

    Predefined categories are never deletable; custom ones are kept while any
    vehicle transaction still names them.
    """
    if not category.get("is_custom"):
        raise DeleteBlocked(
            "Cannot delete predefined expense category", {"id": category.get("id")}
        )
    if in_use:
        raise DeleteBlocked(
            "Cannot delete expense category that is used in transactions",
            {"id": category.get("id"), "name": category.get("name")},
        )


__all__ = [
    "EntityStore",
    "PREDEFINED_EXPENSE_CATEGORIES",
    "build_child_rows",
    "build_row",
    "guard_expense_category_delete",
    "new_id",
    "normalize_row",
    "predefined_category_rows",
    "record_to_dict",
    "sort_rows",
    "split_children",
    "to_model",
    "utc_now_iso",
]
