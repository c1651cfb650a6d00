"""Relational projection of a decoded heap graph."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from heapquery.errors import GraphInconsistency, Phase
from heapquery.types import HeapGraph


@dataclass(frozen=True)
class Column:
    """A column of a relation."""

    name: str
    sql_type: str
    primary_key: bool = False

    def ddl(self) -> str:
        spec = f'"{self.name}" {self.sql_type}'
        if self.primary_key:
            spec += " PRIMARY KEY"
        return spec


@dataclass(frozen=True)
class Relation:
    """A named, ordered list of columns."""

    name: str
    columns: tuple[Column, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)


NODE_RELATION = Relation(
    name="node",
    columns=(
        Column("ordinal", "INTEGER", primary_key=True),
        Column("id", "INTEGER"),
        Column("type", "TEXT"),
        Column("name", "TEXT"),
        Column("self_size", "INTEGER"),
        Column("edge_count", "INTEGER"),
        Column("trace_node_id", "INTEGER"),
        Column("detachedness", "INTEGER"),
    ),
)

# name_or_index holds property names and element indices alike, so it is text
EDGE_RELATION = Relation(
    name="edge",
    columns=(
        Column("from_node", "INTEGER"),
        Column("position", "INTEGER"),
        Column("type", "TEXT"),
        Column("name_or_index", "TEXT"),
        Column("to_node", "INTEGER"),
    ),
)

LOCATION_RELATION = Relation(
    name="location",
    columns=(
        Column("node", "INTEGER"),
        Column("script_id", "INTEGER"),
        Column("line", "INTEGER"),
        Column("col", "INTEGER"),
    ),
)

RELATIONS = (NODE_RELATION, EDGE_RELATION, LOCATION_RELATION)


@dataclass
class Projection:
    """A relation and the rows that populate it.

    ``rows`` is a generator: it can be consumed once.
    """

    relation: Relation
    rows: Iterator[tuple[Any, ...]]


def node_rows(graph: HeapGraph) -> Iterator[tuple[Any, ...]]:
    for ordinal, node in enumerate(graph.nodes):
        if node.ordinal != ordinal:
            raise GraphInconsistency(
                f"node at position {ordinal} carries ordinal {node.ordinal}", Phase.PROJECTION
            )
        yield (
            node.ordinal,
            node.id,
            node.type,
            node.name,
            node.self_size,
            node.edge_count,
            node.trace_node_id,
            node.detachedness,
        )


def edge_rows(graph: HeapGraph) -> Iterator[tuple[Any, ...]]:
    node_count = len(graph.nodes)
    for edge in graph.edges:
        if not (0 <= edge.from_node < node_count and 0 <= edge.to_node < node_count):
            raise GraphInconsistency(
                f"edge {edge.from_node}:{edge.position} references a node outside 0..{node_count - 1}",
                Phase.PROJECTION,
            )
        yield (
            edge.from_node,
            edge.position,
            edge.type,
            str(edge.name_or_index),
            edge.to_node,
        )


def location_rows(graph: HeapGraph) -> Iterator[tuple[Any, ...]]:
    node_count = len(graph.nodes)
    for location in graph.locations:
        if not 0 <= location.node < node_count:
            raise GraphInconsistency(
                f"location references node {location.node} outside 0..{node_count - 1}",
                Phase.PROJECTION,
            )
        yield (location.node, location.script_id, location.line, location.column)


def project(graph: HeapGraph) -> list[Projection]:
    """Project ``graph`` onto the node, edge and location relations."""
    return [
        Projection(NODE_RELATION, node_rows(graph)),
        Projection(EDGE_RELATION, edge_rows(graph)),
        Projection(LOCATION_RELATION, location_rows(graph)),
    ]
