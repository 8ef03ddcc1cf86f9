"""Shared statement logic for the relational stores.

Subclasses supply ``_connect()`` (a context manager yielding a connection
that commits on success and rolls back on error), the DB-API placeholder
style, and ``_translate_error`` for their driver's integrity errors.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

from imanage.logging import get_logger
from imanage.storage.common import (
    build_child_rows,
    build_row,
    guard_expense_category_delete,
    predefined_category_rows,
    split_children,
    to_model,
)
from imanage.storage.errors import RecordNotFound, StoreError
from imanage.storage.schema import (
    TABLES,
    EntityType,
    Table,
    create_index_sql,
    create_table_sql,
)


class SqlStore:
    placeholder = "?"
    dialect = "sqlite"
    integrity_error: Type[BaseException] = Exception

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

    def _connect(self):
        raise NotImplementedError

    def _translate_error(self, exc: BaseException) -> StoreError:
        raise NotImplementedError

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        try:
            with self._connect() as conn:
                yield conn
        except self.integrity_error as exc:
            translated = self._translate_error(exc)
            self.logger.info(
                "constraint_violation",
                error_type=type(translated).__name__,
                error=translated.message,
            )
            raise translated from exc

    # ------------------------------------------------------------------
    # schema
    # ------------------------------------------------------------------

    def ensure_schema(self) -> None:
        """Create missing tables and indexes, then seed expense categories."""
        with self._transaction() as conn:
            for table in TABLES.values():
                conn.execute(create_table_sql(table, self.dialect))
                for statement in create_index_sql(table, self.dialect):
                    conn.execute(statement)
        self._seed_expense_categories()

    def _seed_expense_categories(self) -> None:
        table = TABLES["expense_categories"]
        with self._transaction() as conn:
            count = conn.execute(f"SELECT COUNT(*) AS n FROM {table.name}").fetchone()["n"]
            if count:
                return
            for row in predefined_category_rows():
                columns, values = self._columns_and_values(table, row)
                conn.execute(
                    f"INSERT INTO {table.name} ({', '.join(columns)}) "
                    f"VALUES ({self._marks(len(columns))}) ON CONFLICT (id) DO NOTHING",
                    values,
                )
        self.logger.info("expense_categories_seeded", count=len(predefined_category_rows()))

    def verify_connection(self) -> bool:
        with self._transaction() as conn:
            conn.execute("SELECT 1")
        return True

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def list(self, entity: EntityType) -> List[Any]:
        table = entity.table
        order = ", ".join(f"{col} DESC" for col in table.order_by)
        with self._transaction() as conn:
            rows = conn.execute(f"SELECT * FROM {table.name} ORDER BY {order}").fetchall()
            return [self._hydrate(conn, table, dict(row)) for row in rows]

    def get(self, entity: EntityType, entity_id: str) -> Optional[Any]:
        table = entity.table
        with self._transaction() as conn:
            row = self._fetch_row(conn, table, entity_id)
            if row is None:
                return None
            return self._hydrate(conn, table, row)

    def find_by(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        target = TABLES[table]
        if column not in target.column_names:
            raise KeyError(f"{table}.{column}")
        with self._transaction() as conn:
            return self._select_where(conn, target, column, value)

    def _select_where(self, conn, table: Table, column: str, value: Any) -> List[Dict[str, Any]]:
        order = ", ".join(table.order_by)
        rows = conn.execute(
            f"SELECT * FROM {table.name} WHERE {column} = {self.placeholder} ORDER BY {order}",
            (value,),
        ).fetchall()
        return [dict(row) for row in rows]

    def _fetch_row(self, conn, table: Table, entity_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            f"SELECT * FROM {table.name} WHERE id = {self.placeholder}", (entity_id,)
        ).fetchone()
        return dict(row) if row is not None else None

    def _hydrate(self, conn, table: Table, row: Dict[str, Any]) -> Any:
        children = {}
        for attr, child_name in table.children.items():
            child = TABLES[child_name]
            children[attr] = self._select_where(conn, child, child.parent_column, row["id"])
        return to_model(table, row, children)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create(self, entity: EntityType, data: Dict[str, Any]) -> Any:
        table = entity.table
        payload, children = split_children(table, data)
        row = build_row(table, payload)
        with self._transaction() as conn:
            self._insert(conn, table, row)
            self._write_children(conn, table, row["id"], children, replace=False)
            record = self._hydrate(conn, table, row)
        self.logger.debug("record_created", table=table.name, id=row["id"])
        return record

    def update(self, entity: EntityType, entity_id: str, data: Dict[str, Any]) -> Any:
        table = entity.table
        payload, children = split_children(table, data)
        with self._transaction() as conn:
            existing = self._fetch_row(conn, table, entity_id)
            if existing is None:
                raise RecordNotFound(f"{table.label} not found", {"id": entity_id})
            row = build_row(table, payload, existing=existing)
            columns = [c for c in table.column_names if c != "id"]
            assignments = ", ".join(f"{c} = {self.placeholder}" for c in columns)
            conn.execute(
                f"UPDATE {table.name} SET {assignments} WHERE id = {self.placeholder}",
                [row[c] for c in columns] + [entity_id],
            )
            self._write_children(conn, table, entity_id, children, replace=True)
            return self._hydrate(conn, table, row)

    def delete(self, entity: EntityType, entity_id: str) -> None:
        table = entity.table
        with self._transaction() as conn:
            if entity is EntityType.EXPENSE_CATEGORY:
                category = self._fetch_row(conn, table, entity_id)
                if category is not None:
                    used = conn.execute(
                        "SELECT COUNT(*) AS n FROM vehicle_transactions "
                        f"WHERE category = {self.placeholder}",
                        (category["name"],),
                    ).fetchone()["n"]
                    guard_expense_category_delete(category, bool(used))
            cursor = conn.execute(
                f"DELETE FROM {table.name} WHERE id = {self.placeholder}", (entity_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFound(f"{table.label} not found", {"id": entity_id})
        self.logger.debug("record_deleted", table=table.name, id=entity_id)

    def _insert(self, conn, table: Table, row: Dict[str, Any]) -> None:
        columns, values = self._columns_and_values(table, row)
        conn.execute(
            f"INSERT INTO {table.name} ({', '.join(columns)}) VALUES ({self._marks(len(columns))})",
            values,
        )

    def _write_children(
        self,
        conn,
        table: Table,
        parent_id: str,
        children: Dict[str, Optional[List[Dict[str, Any]]]],
        *,
        replace: bool,
    ) -> None:
        for attr, items in children.items():
            if items is None:
                continue
            child = TABLES[table.children[attr]]
            if replace:
                conn.execute(
                    f"DELETE FROM {child.name} WHERE {child.parent_column} = {self.placeholder}",
                    (parent_id,),
                )
            for child_row in build_child_rows(child, parent_id, items):
                self._insert(conn, child, child_row)

    def _columns_and_values(self, table: Table, row: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
        columns = table.column_names
        return columns, [row.get(c) for c in columns]

    def _marks(self, count: int) -> str:
        return ", ".join([self.placeholder] * count)


__all__ = ["SqlStore"]
