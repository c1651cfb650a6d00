"""SQLite storage for projected heap graphs."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from itertools import islice
from pathlib import Path
from typing import Any, Iterable, Iterator

from heapquery.errors import Phase, StorageError
from heapquery.projection import Relation

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000


class SqliteStore:
    """Thin wrapper over a SQLite connection.

    Every ``sqlite3.Error`` leaves this class as a :class:`StorageError`
    whose message is SQLite's own.
    """

    def __init__(self, db_path: Path | str = ":memory:", batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Open or create a database.

        Args:
            db_path: Path to the database file, or ``":memory:"``.
            batch_size: Rows handed to SQLite per ``executemany`` call.
        """
        self.db_path = str(db_path)
        self.batch_size = batch_size
        try:
            # autocommit; transactions are explicit
            self._conn = sqlite3.connect(self.db_path, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(str(e), Phase.LOAD) from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block in one transaction, rolling back if it raises."""
        self._execute("BEGIN", phase=Phase.LOAD)
        try:
            yield
        except BaseException:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise
        self._execute("COMMIT", phase=Phase.LOAD)

    def _execute(self, sql: str, params: Iterable[Any] = (), phase: Phase = Phase.QUERY) -> sqlite3.Cursor:
        logger.debug("execute: %s", sql)
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise StorageError(str(e), phase) from e

    def create_table(self, relation: Relation) -> None:
        """Create the table for ``relation``, replacing any existing one."""
        columns = ", ".join(c.ddl() for c in relation.columns)
        self._execute(f'DROP TABLE IF EXISTS "{relation.name}"', phase=Phase.LOAD)
        self._execute(f'CREATE TABLE "{relation.name}" ({columns})', phase=Phase.LOAD)

    def insert_rows(self, relation: Relation, rows: Iterable[tuple[Any, ...]]) -> int:
        """Insert rows into ``relation``'s table in batches.

        Returns:
            The number of rows inserted.
        """
        placeholders = ", ".join("?" for _ in relation.columns)
        names = ", ".join(f'"{c}"' for c in relation.column_names)
        sql = f'INSERT INTO "{relation.name}" ({names}) VALUES ({placeholders})'

        inserted = 0
        iterator = iter(rows)
        while True:
            batch = list(islice(iterator, self.batch_size))
            if not batch:
                break
            try:
                self._conn.executemany(sql, batch)
            except sqlite3.Error as e:
                raise StorageError(str(e), Phase.LOAD) from e
            inserted += len(batch)
        logger.debug("inserted %d rows into %s", inserted, relation.name)
        return inserted

    def execute(self, sql: str) -> tuple[list[str], list[tuple[Any, ...]]]:
        """Run ``sql`` and return its column names and rows."""
        cursor = self._execute(sql, phase=Phase.QUERY)
        columns = [d[0] for d in cursor.description] if cursor.description else []
        try:
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e), Phase.QUERY) from e
        return columns, rows

    def table_names(self) -> list[str]:
        """List the tables in the database."""
        _, rows = self.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
        return [r[0] for r in rows]

    def table_sql(self, name: str) -> str | None:
        """Return the ``CREATE`` statement of table ``name``."""
        cursor = self._execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
