"""heapquery - Query V8 heap snapshots with SQL."""

from heapquery.decoder import decode_graph, offset_to_ordinal
from heapquery.errors import (
    GraphInconsistency,
    HeapQueryError,
    Phase,
    QuerySyntaxError,
    SchemaError,
    StorageError,
    StringIndexOutOfRange,
)
from heapquery.importer import decode_document, import_snapshot, open_database
from heapquery.meta import DecodingPlan, FieldKind, interpret_meta
from heapquery.projection import EDGE_RELATION, LOCATION_RELATION, NODE_RELATION, project
from heapquery.query_executor import QueryExecutor, QueryResult
from heapquery.snapshot import SnapshotDocument, parse_snapshot, read_snapshot
from heapquery.storage import SqliteStore
from heapquery.strings import StringPool
from heapquery.types import Edge, HeapGraph, Location, Node

__all__ = [
    # Pipeline
    "read_snapshot",
    "parse_snapshot",
    "SnapshotDocument",
    "interpret_meta",
    "decode_graph",
    "decode_document",
    "offset_to_ordinal",
    "project",
    "import_snapshot",
    "open_database",
    # Model
    "DecodingPlan",
    "FieldKind",
    "StringPool",
    "HeapGraph",
    "Node",
    "Edge",
    "Location",
    "NODE_RELATION",
    "EDGE_RELATION",
    "LOCATION_RELATION",
    # Storage
    "SqliteStore",
    "QueryExecutor",
    "QueryResult",
    # Errors
    "Phase",
    "HeapQueryError",
    "SchemaError",
    "StringIndexOutOfRange",
    "GraphInconsistency",
    "StorageError",
    "QuerySyntaxError",
]

__version__ = "0.1.0"
