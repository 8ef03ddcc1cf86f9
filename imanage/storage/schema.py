"""Relational layout shared by every store backend.

Tables are declared in foreign-key dependency order so that DDL can be
emitted top to bottom. The column list of each table is derived from its
record dataclass in :mod:`imanage.storage.models`; fields whose annotation
is ``Optional`` are nullable, everything else is ``NOT NULL``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type

from imanage.storage.models import (
    Customer,
    Employee,
    ExpenseCategory,
    Invoice,
    InvoiceItem,
    Payslip,
    PurchaseOrder,
    PurchaseOrderItem,
    Quote,
    QuoteItem,
    Vehicle,
    VehicleTransaction,
    Vendor,
)

RESTRICT = "RESTRICT"
CASCADE = "CASCADE"


@dataclass(frozen=True)
class ForeignKey:
    column: str
    ref_table: str
    on_delete: str = RESTRICT


@dataclass(frozen=True)
class Column:
    name: str
    sql_type: str
    nullable: bool
    primary_key: bool = False


@dataclass(frozen=True)
class Table:
    name: str
    label: str
    model: Type
    foreign_keys: Tuple[ForeignKey, ...] = ()
    unique: Tuple[str, ...] = ()
    # attribute name on the parent record -> child table name
    children: Dict[str, str] = field(default_factory=dict)
    parent_column: Optional[str] = None
    order_by: Tuple[str, ...] = ("created_at", "id")

    @property
    def columns(self) -> List[Column]:
        cols: List[Column] = []
        for f in fields(self.model):
            if f.name in self.children:
                continue
            annotation = str(f.type)
            cols.append(
                Column(
                    name=f.name,
                    sql_type=_sql_type(annotation),
                    nullable=annotation.startswith("Optional["),
                    primary_key=f.name == "id",
                )
            )
        return cols

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def column_type(self, name: str) -> Optional[str]:
        for col in self.columns:
            if col.name == name:
                return col.sql_type
        return None

    def foreign_key(self, column: str) -> Optional[ForeignKey]:
        for fk in self.foreign_keys:
            if fk.column == column:
                return fk
        return None


_TYPE_MAP = {
    "str": "TEXT",
    "int": "INTEGER",
    "float": "REAL",
    "bool": "BOOLEAN",
}


def _sql_type(annotation: str) -> str:
    inner = annotation
    if inner.startswith("Optional[") and inner.endswith("]"):
        inner = inner[len("Optional["):-1]
    return _TYPE_MAP.get(inner, "TEXT")


_ITEM_ORDER = ("serial_number", "id")

TABLES: Dict[str, Table] = {
    t.name: t
    for t in (
        Table("customers", "Customer", Customer),
        Table("vendors", "Vendor", Vendor),
        Table("employees", "Employee", Employee),
        Table("vehicles", "Vehicle", Vehicle, unique=("vehicle_number",)),
        Table(
            "quotes",
            "Quote",
            Quote,
            foreign_keys=(ForeignKey("customer_id", "customers"),),
            children={"items": "quote_items"},
        ),
        Table(
            "quote_items",
            "Quote Item",
            QuoteItem,
            foreign_keys=(
                ForeignKey("quote_id", "quotes", CASCADE),
                ForeignKey("vehicle_type_id", "vehicles"),
            ),
            parent_column="quote_id",
            order_by=_ITEM_ORDER,
        ),
        Table(
            "purchase_orders",
            "Purchase Order",
            PurchaseOrder,
            foreign_keys=(ForeignKey("vendor_id", "vendors"),),
            children={"items": "po_items"},
        ),
        Table(
            "po_items",
            "Purchase Order Item",
            PurchaseOrderItem,
            foreign_keys=(ForeignKey("purchase_order_id", "purchase_orders", CASCADE),),
            parent_column="purchase_order_id",
            order_by=_ITEM_ORDER,
        ),
        Table(
            "invoices",
            "Invoice",
            Invoice,
            foreign_keys=(
                ForeignKey("customer_id", "customers"),
                ForeignKey("vendor_id", "vendors"),
                ForeignKey("purchase_order_id", "purchase_orders"),
                ForeignKey("quote_id", "quotes"),
            ),
            children={"items": "invoice_items"},
        ),
        Table(
            "invoice_items",
            "Invoice Item",
            InvoiceItem,
            foreign_keys=(ForeignKey("invoice_id", "invoices", CASCADE),),
            parent_column="invoice_id",
            order_by=_ITEM_ORDER,
        ),
        Table(
            "payslips",
            "Payslip",
            Payslip,
            foreign_keys=(ForeignKey("employee_id", "employees"),),
        ),
        Table("expense_categories", "Expense Category", ExpenseCategory, unique=("name",)),
        Table(
            "vehicle_transactions",
            "Vehicle Transaction",
            VehicleTransaction,
            foreign_keys=(
                ForeignKey("vehicle_id", "vehicles", CASCADE),
                ForeignKey("employee_id", "employees"),
                ForeignKey("invoice_id", "invoices"),
            ),
        ),
    )
}


class EntityType(str, Enum):
    """Top-level records addressable through the API."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    EMPLOYEE = "employee"
    VEHICLE = "vehicle"
    QUOTE = "quote"
    PURCHASE_ORDER = "purchase_order"
    INVOICE = "invoice"
    PAYSLIP = "payslip"
    EXPENSE_CATEGORY = "expense_category"
    VEHICLE_TRANSACTION = "vehicle_transaction"

    @property
    def table(self) -> Table:
        return TABLES[_ENTITY_TABLES[self.value]]

    @property
    def label(self) -> str:
        return self.table.label

    @property
    def path(self) -> str:
        return _ENTITY_TABLES[self.value].replace("_", "-")

    @classmethod
    def from_table(cls, table_name: str) -> "EntityType":
        for entity, name in _ENTITY_TABLES.items():
            if name == table_name:
                return cls(entity)
        raise KeyError(table_name)


_ENTITY_TABLES = {
    "customer": "customers",
    "vendor": "vendors",
    "employee": "employees",
    "vehicle": "vehicles",
    "quote": "quotes",
    "purchase_order": "purchase_orders",
    "invoice": "invoices",
    "payslip": "payslips",
    "expense_category": "expense_categories",
    "vehicle_transaction": "vehicle_transactions",
}


def dependents_of(table_name: str) -> List[Tuple[Table, ForeignKey]]:
    """Every (table, foreign key) pair that points at ``table_name``."""
    found: List[Tuple[Table, ForeignKey]] = []
    for table in TABLES.values():
        for fk in table.foreign_keys:
            if fk.ref_table == table_name:
                found.append((table, fk))
    return found


_POSTGRES_TYPES = {"REAL": "DOUBLE PRECISION", "BOOLEAN": "BOOLEAN"}
_SQLITE_TYPES = {"BOOLEAN": "INTEGER"}


def create_table_sql(table: Table, dialect: str = "sqlite") -> str:
    type_map = _POSTGRES_TYPES if dialect == "postgres" else _SQLITE_TYPES
    lines: List[str] = []
    for col in table.columns:
        sql_type = type_map.get(col.sql_type, col.sql_type)
        parts = [col.name, sql_type]
        if col.primary_key:
            parts.append("PRIMARY KEY")
        elif not col.nullable:
            parts.append("NOT NULL")
        lines.append(" ".join(parts))
    for fk in table.foreign_keys:
        lines.append(
            f"FOREIGN KEY ({fk.column}) REFERENCES {fk.ref_table}(id) ON DELETE {fk.on_delete}"
        )
    body = ",\n    ".join(lines)
    return f"CREATE TABLE IF NOT EXISTS {table.name} (\n    {body}\n)"


def create_index_sql(table: Table, dialect: str = "sqlite") -> List[str]:
    statements = []
    for column in table.unique:
        statements.append(
            f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{table.name}_{column}_ci "
            f"ON {table.name} (LOWER({column}))"
        )
    for fk in table.foreign_keys:
        statements.append(
            f"CREATE INDEX IF NOT EXISTS idx_{table.name}_{fk.column} "
            f"ON {table.name} ({fk.column})"
        )
    return statements


__all__ = [
    "CASCADE",
    "RESTRICT",
    "Column",
    "EntityType",
    "ForeignKey",
    "Table",
    "TABLES",
    "create_index_sql",
    "create_table_sql",
    "dependents_of",
]
