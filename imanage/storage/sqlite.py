from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from imanage.storage.errors import (
    ConstraintViolation,
    ForeignKeyViolation,
    NotNullViolation,
    StoreError,
    UniqueViolation,
)
from imanage.storage.sql import SqlStore

MEMORY_PATH = ":memory:"


def translate_integrity_error(exc: sqlite3.IntegrityError) -> StoreError:
    """Map sqlite's constraint messages onto typed store errors."""
    message = str(exc)
    upper = message.upper()
    if "FOREIGN KEY" in upper:
        return ForeignKeyViolation(message, {"driver": "sqlite"})
    if "UNIQUE" in upper:
        return UniqueViolation(message, {"driver": "sqlite"})
    if "NOT NULL" in upper:
        return NotNullViolation(message, {"driver": "sqlite"})
    return ConstraintViolation(message, {"driver": "sqlite"})


class SqliteStore(SqlStore):
    """File-backed store using the standard library driver.

    One connection per operation; ``PRAGMA foreign_keys=ON`` is set on each
    connection because sqlite leaves it off by default.

    A ``:memory:`` database only lives as long as its connection, so that path
    keeps a single shared connection for the life of the store and serializes
    access to it.
    """

    placeholder = "?"
    dialect = "sqlite"
    integrity_error = sqlite3.IntegrityError

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self._shared: Optional[sqlite3.Connection] = None
        self._shared_lock = threading.RLock()
        if path == MEMORY_PATH:
            self._shared = self._open()
        else:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.ensure_schema()
        self.logger.info("sqlite_store_ready", path=path)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self._shared is not None:
            with self._shared_lock:
                try:
                    yield self._shared
                    self._shared.commit()
                except Exception:
                    self._shared.rollback()
                    raise
            return
        conn = self._open()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None

    def _translate_error(self, exc: BaseException) -> StoreError:
        return translate_integrity_error(exc)


__all__ = ["SqliteStore", "translate_integrity_error"]
