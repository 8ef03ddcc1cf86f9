from __future__ import annotations

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from imanage.storage.errors import (
    ConstraintViolation,
    ForeignKeyViolation,
    NotNullViolation,
    StoreError,
    UniqueViolation,
)
from imanage.storage.sql import SqlStore


def translate_integrity_error(exc: BaseException) -> StoreError:
    detail = {"driver": "postgres"}
    diag = getattr(exc, "diag", None)
    constraint = getattr(diag, "constraint_name", None) if diag is not None else None
    if constraint:
        detail["constraint"] = constraint
    message = str(exc).strip() or type(exc).__name__
    if isinstance(exc, errors.ForeignKeyViolation):
        return ForeignKeyViolation(message, detail)
    if isinstance(exc, errors.UniqueViolation):
        return UniqueViolation(message, detail)
    if isinstance(exc, errors.NotNullViolation):
        return NotNullViolation(message, detail)
    return ConstraintViolation(message, detail)


class PostgresStore(SqlStore):
    """Postgres-backed store sharing a pooled set of connections."""

    placeholder = "%s"
    dialect = "postgres"
    integrity_error = errors.IntegrityError

    def __init__(self, dsn: str) -> None:
        super().__init__()
        self.dsn = dsn
        self.pool = ConnectionPool(
            self.dsn,
            min_size=1,
            max_size=10,
            kwargs={"row_factory": dict_row, "autocommit": False},
        )
        self.ensure_schema()
        self.logger.info("postgres_store_ready")

    def _connect(self):
        return self.pool.connection()

    def _translate_error(self, exc: BaseException) -> StoreError:
        return translate_integrity_error(exc)

    def close(self) -> None:
        self.pool.close()


__all__ = ["PostgresStore", "translate_integrity_error"]
