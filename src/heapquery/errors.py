"""Exception classes for heapquery.

Every error carries the pipeline phase it was raised in, so a failed import
can report whether the snapshot's metadata, its node array, its edge array,
the projection, the load or the user's query was at fault.
"""

from __future__ import annotations

from enum import Enum


class Phase(Enum):
    """Pipeline phases, in execution order."""

    METADATA = "metadata"
    NODE_DECODE = "node decode"
    EDGE_DECODE = "edge decode"
    LOCATION_DECODE = "location decode"
    PROJECTION = "projection"
    LOAD = "load"
    QUERY = "query"


class HeapQueryError(Exception):
    """Base exception for heapquery errors."""

    default_phase = Phase.METADATA

    def __init__(self, message: str, phase: Phase | None = None) -> None:
        self.message = message
        self.phase = phase or self.default_phase
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.phase.value}] {self.message}"


class SchemaError(HeapQueryError):
    """The snapshot's schema section is missing or malformed."""

    def __init__(self, message: str, section: str, phase: Phase | None = None) -> None:
        self.section = section
        super().__init__(f"{section}: {message}", phase)


class StringIndexOutOfRange(HeapQueryError):
    """A string-index field points outside the string table."""

    default_phase = Phase.NODE_DECODE

    def __init__(self, index: object, size: int, phase: Phase | None = None) -> None:
        self.index = index
        self.size = size
        super().__init__(
            f"string index {index!r} out of range for string table of size {size}",
            phase,
        )


class GraphInconsistency(HeapQueryError):
    """The decoded graph violates a structural invariant."""

    default_phase = Phase.EDGE_DECODE


class StorageError(HeapQueryError):
    """Raised by the storage engine; the message is the engine's own."""

    default_phase = Phase.QUERY


class QuerySyntaxError(HeapQueryError):
    """A SQL script could not be split into statements."""

    default_phase = Phase.QUERY
