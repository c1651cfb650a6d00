"""Runs a snapshot through every phase, from raw document to loaded database.

Phases run strictly in order (metadata, node decode, edge decode, location
decode, projection, load). The graph is decoded completely in memory before
any row reaches the database, and the load is one transaction, so a failed
import never leaves a partial database behind.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from heapquery.config import ImportOptions
from heapquery.decoder import decode_graph
from heapquery.meta import interpret_meta
from heapquery.projection import RELATIONS, project
from heapquery.query_executor import QueryExecutor
from heapquery.snapshot import SnapshotDocument, read_snapshot
from heapquery.storage import SqliteStore
from heapquery.strings import StringPool
from heapquery.types import HeapGraph

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """What an import produced."""

    node_count: int = 0
    edge_count: int = 0
    location_count: int = 0
    row_counts: dict[str, int] = field(default_factory=dict)
    seconds: float = 0.0


def decode_document(document: SnapshotDocument) -> HeapGraph:
    """Interpret a document's metadata and decode its graph."""
    plan = interpret_meta(document.snapshot)
    strings = StringPool(document.strings)
    return decode_graph(plan, strings, document.nodes, document.edges, document.locations)


def import_snapshot(document: SnapshotDocument, executor: QueryExecutor) -> ImportSummary:
    """Decode ``document`` and load its projection through ``executor``.

    Raises:
        HeapQueryError: If any phase fails. Its ``phase`` names which one.
    """
    start = time.perf_counter()

    graph = decode_document(document)
    logger.info(
        "decoded %d nodes, %d edges, %d locations in %.2fs",
        graph.node_count,
        graph.edge_count,
        len(graph.locations),
        time.perf_counter() - start,
    )

    load = executor.load(project(graph))

    summary = ImportSummary(
        node_count=graph.node_count,
        edge_count=graph.edge_count,
        location_count=len(graph.locations),
        row_counts=dict(load.counts),
        seconds=time.perf_counter() - start,
    )
    logger.info("loaded %d rows in %.2fs", load.total, summary.seconds)
    return summary


def _remove_database(db_path: Path) -> None:
    for path in (db_path, db_path.with_name(db_path.name + "-journal")):
        if path.exists():
            path.unlink()


def open_database(options: ImportOptions) -> QueryExecutor:
    """Open the snapshot's database, importing the snapshot if needed.

    An existing database with every relation is reused unless
    ``options.rebuild`` is set. If an import into a new database file
    fails, the file is removed.
    """
    db_path = options.db_path
    is_new = not db_path.exists()
    store = SqliteStore(db_path, batch_size=options.batch_size)
    executor = QueryExecutor(store)

    try:
        if not is_new and not options.rebuild and executor.is_loaded(r.name for r in RELATIONS):
            logger.info("using existing database %s", db_path)
            return executor

        document = read_snapshot(options.heap_file)
        summary = import_snapshot(document, executor)
        logger.info(
            "imported %s into %s: %s", options.heap_file, db_path, summary.row_counts
        )
    except BaseException:
        store.close()
        if is_new:
            _remove_database(db_path)
        raise
    return executor
