"""Loads projected relations into storage and runs queries against them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from heapquery.errors import QuerySyntaxError
from heapquery.parsing import split_statements
from heapquery.projection import Projection
from heapquery.storage import SqliteStore

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of a query execution."""

    columns: list[str]
    rows: list[dict[str, Any]]
    message: str | None = None


@dataclass
class LoadResult:
    """Row counts per relation after a load."""

    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


class QueryExecutor:
    """Executes loads and SQL queries against a :class:`SqliteStore`."""

    def __init__(self, store: SqliteStore) -> None:
        self.store = store

    def load(self, projections: Iterable[Projection]) -> LoadResult:
        """Create every relation and insert its rows in a single transaction.

        If any projection or insert fails, nothing is kept.
        """
        result = LoadResult()
        with self.store.transaction():
            for projection in projections:
                relation = projection.relation
                self.store.create_table(relation)
                result.counts[relation.name] = self.store.insert_rows(relation, projection.rows)
                logger.info("loaded %d rows into %s", result.counts[relation.name], relation.name)
        return result

    def execute(self, sql: str) -> QueryResult:
        """Run one SQL statement.

        Raises:
            StorageError: If SQLite rejects the statement.
        """
        logger.debug("run sql: %s", sql)
        columns, rows = self.store.execute(sql)
        return QueryResult(
            columns=columns,
            rows=[dict(zip(columns, row)) for row in rows],
        )

    def execute_script(self, text: str) -> list[QueryResult]:
        """Run every statement in ``text``, in order.

        Execution stops at the first failing statement.

        Raises:
            QuerySyntaxError: If ``text`` has an unterminated literal or
                comment.
            StorageError: If SQLite rejects a statement.
        """
        try:
            statements = split_statements(text)
        except SyntaxError as e:
            raise QuerySyntaxError(str(e)) from e
        return [self.execute(statement) for statement in statements]

    def tables(self) -> list[str]:
        return self.store.table_names()

    def is_loaded(self, relations: Iterable[str]) -> bool:
        """Return whether every named relation exists in the store."""
        present = set(self.tables())
        return all(name in present for name in relations)
