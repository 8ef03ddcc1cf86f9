from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Set, Tuple

from imanage.logging import get_logger
from imanage.storage.common import (
    build_child_rows,
    build_row,
    guard_expense_category_delete,
    predefined_category_rows,
    sort_rows,
    split_children,
    to_model,
)
from imanage.storage.errors import (
    ForeignKeyViolation,
    NotNullViolation,
    RecordNotFound,
    UniqueViolation,
)
from imanage.storage.schema import RESTRICT, TABLES, EntityType, Table, dependents_of


class MemoryStore:
    """In-process store that enforces the same foreign keys as the SQL schema.

    Restrict references block a delete, cascade references are removed with
    their parent, and unique columns compare case-insensitively.
    """

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in TABLES}
        # RLock for all data operations; nested acquisitions happen on cascade
        self._data_lock = threading.RLock()
        self._seed_expense_categories()

    def _seed_expense_categories(self) -> None:
        rows = self.tables["expense_categories"]
        if rows:
            return
        for row in predefined_category_rows():
            rows[row["id"]] = row

    def verify_connection(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def list(self, entity: EntityType) -> List[Any]:
        table = entity.table
        with self._data_lock:
            rows = sort_rows(table, self.tables[table.name].values(), newest_first=True)
            return [self._hydrate(table, row) for row in rows]

    def get(self, entity: EntityType, entity_id: str) -> Optional[Any]:
        table = entity.table
        with self._data_lock:
            row = self.tables[table.name].get(entity_id)
            if row is None:
                return None
            return self._hydrate(table, row)

    def find_by(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        target = TABLES[table]
        if column not in target.column_names:
            raise KeyError(f"{table}.{column}")
        with self._data_lock:
            matches = [dict(row) for row in self.tables[table].values() if row.get(column) == value]
        return sort_rows(target, matches)

    def _hydrate(self, table: Table, row: Dict[str, Any]) -> Any:
        children = {}
        for attr, child_name in table.children.items():
            children[attr] = self.find_by(child_name, TABLES[child_name].parent_column, row["id"])
        return to_model(table, row, children)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create(self, entity: EntityType, data: Dict[str, Any]) -> Any:
        table = entity.table
        payload, children = split_children(table, data)
        with self._data_lock:
            row = build_row(table, payload)
            if row["id"] in self.tables[table.name]:
                raise UniqueViolation(
                    f"UNIQUE constraint failed: {table.name}.id", {"id": row["id"]}
                )
            self._check_row(table, row)
            child_rows = self._prepare_children(table, row["id"], children)
            self.tables[table.name][row["id"]] = row
            self._store_children(table, row["id"], child_rows, replace=False)
            self.logger.debug("record_created", table=table.name, id=row["id"])
            return self._hydrate(table, row)

    def update(self, entity: EntityType, entity_id: str, data: Dict[str, Any]) -> Any:
        table = entity.table
        payload, children = split_children(table, data)
        with self._data_lock:
            existing = self.tables[table.name].get(entity_id)
            if existing is None:
                raise RecordNotFound(f"{table.label} not found", {"id": entity_id})
            row = build_row(table, payload, existing=existing)
            self._check_row(table, row)
            child_rows = self._prepare_children(table, entity_id, children)
            self.tables[table.name][entity_id] = row
            self._store_children(table, entity_id, child_rows, replace=True)
            return self._hydrate(table, row)

    def delete(self, entity: EntityType, entity_id: str) -> None:
        table = entity.table
        with self._data_lock:
            row = self.tables[table.name].get(entity_id)
            if row is None:
                raise RecordNotFound(f"{table.label} not found", {"id": entity_id})
            if entity is EntityType.EXPENSE_CATEGORY:
                in_use = any(
                    tx.get("category") == row.get("name")
                    for tx in self.tables["vehicle_transactions"].values()
                )
                guard_expense_category_delete(row, in_use)
            doomed = self._cascade_set(table.name, entity_id)
            self._check_restrict(doomed)
            for name, row_id in doomed:
                self.tables[name].pop(row_id, None)
            self.logger.debug(
                "record_deleted", table=table.name, id=entity_id, cascaded=len(doomed) - 1
            )

    def _cascade_set(self, table_name: str, row_id: str) -> Set[Tuple[str, str]]:
        doomed = {(table_name, row_id)}
        pending = [(table_name, row_id)]
        while pending:
            current_table, current_id = pending.pop()
            for dep, fk in dependents_of(current_table):
                if fk.on_delete == RESTRICT:
                    continue
                for dep_row in self.tables[dep.name].values():
                    key = (dep.name, dep_row["id"])
                    if dep_row.get(fk.column) == current_id and key not in doomed:
                        doomed.add(key)
                        pending.append(key)
        return doomed

    def _check_restrict(self, doomed: Set[Tuple[str, str]]) -> None:
        for table_name, row_id in doomed:
            for dep, fk in dependents_of(table_name):
                if fk.on_delete != RESTRICT:
                    continue
                for dep_row in self.tables[dep.name].values():
                    if dep_row.get(fk.column) == row_id and (dep.name, dep_row["id"]) not in doomed:
                        raise ForeignKeyViolation(
                            "FOREIGN KEY constraint failed",
                            {"table": dep.name, "column": fk.column},
                        )

    def _check_row(self, table: Table, row: Dict[str, Any]) -> None:
        for col in table.columns:
            if not col.nullable and row.get(col.name) is None:
                raise NotNullViolation(
                    f"NOT NULL constraint failed: {table.name}.{col.name}",
                    {"table": table.name, "column": col.name},
                )
        for fk in table.foreign_keys:
            value = row.get(fk.column)
            if value is not None and value not in self.tables[fk.ref_table]:
                raise ForeignKeyViolation(
                    "FOREIGN KEY constraint failed",
                    {"table": table.name, "column": fk.column, "value": value},
                )
        for column in table.unique:
            value = row.get(column)
            if value is None:
                continue
            lowered = str(value).lower()
            for other in self.tables[table.name].values():
                if other["id"] == row["id"]:
                    continue
                if other.get(column) is not None and str(other[column]).lower() == lowered:
                    raise UniqueViolation(
                        f"UNIQUE constraint failed: {table.name}.{column}",
                        {"table": table.name, "column": column},
                    )

    def _prepare_children(
        self,
        table: Table,
        parent_id: str,
        children: Dict[str, Optional[List[Dict[str, Any]]]],
    ) -> Dict[str, Optional[List[Dict[str, Any]]]]:
        prepared: Dict[str, Optional[List[Dict[str, Any]]]] = {}
        for attr, items in children.items():
            if items is None:
                prepared[attr] = None
                continue
            child = TABLES[table.children[attr]]
            rows = build_child_rows(child, parent_id, items)
            seen = set()
            for child_row in rows:
                if child_row["id"] in seen:
                    raise UniqueViolation(
                        f"UNIQUE constraint failed: {child.name}.id", {"id": child_row["id"]}
                    )
                seen.add(child_row["id"])
                other = self.tables[child.name].get(child_row["id"])
                if other is not None and other.get(child.parent_column) != parent_id:
                    raise UniqueViolation(
                        f"UNIQUE constraint failed: {child.name}.id", {"id": child_row["id"]}
                    )
                # parent row may not be stored yet on create
                for fk in child.foreign_keys:
                    value = child_row.get(fk.column)
                    if fk.column == child.parent_column or value is None:
                        continue
                    if value not in self.tables[fk.ref_table]:
                        raise ForeignKeyViolation(
                            "FOREIGN KEY constraint failed",
                            {"table": child.name, "column": fk.column, "value": value},
                        )
            prepared[attr] = rows
        return prepared

    def _store_children(
        self,
        table: Table,
        parent_id: str,
        prepared: Dict[str, Optional[List[Dict[str, Any]]]],
        *,
        replace: bool,
    ) -> None:
        for attr, rows in prepared.items():
            if rows is None:
                continue
            child = TABLES[table.children[attr]]
            store = self.tables[child.name]
            if replace:
                for stale in [k for k, v in store.items() if v.get(child.parent_column) == parent_id]:
                    del store[stale]
            for child_row in rows:
                store[child_row["id"]] = child_row


__all__ = ["MemoryStore"]
