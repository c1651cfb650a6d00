"""Decoded heap graph records."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from heapquery.meta import DecodingPlan
    from heapquery.strings import StringPool


@dataclass(frozen=True)
class Node:
    """A live heap object.

    ``ordinal`` is the node's position in the snapshot; ``id`` is the
    snapshot-assigned identifier that stays stable across snapshots.
    """

    ordinal: int
    type: str
    name: str
    id: int
    self_size: int
    edge_count: int
    trace_node_id: int | None = None
    detachedness: int | None = None
    extra: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False
    )


@dataclass(frozen=True)
class Edge:
    """A reference from one node to another.

    ``position`` is the edge's index within its owner's run of edges.
    ``name_or_index`` is an int for element and hidden edges and the
    resolved property name otherwise.
    """

    from_node: int
    position: int
    type: str
    name_or_index: str | int
    to_node: int


@dataclass(frozen=True)
class Location:
    """Source position of the code that allocated a node."""

    node: int
    script_id: int
    line: int
    column: int


@dataclass(frozen=True)
class HeapGraph:
    """A fully decoded snapshot.

    Edges live in one flat tuple ordered by owning node; ``first_edge[n]``
    is the index of node ``n``'s first edge, and ``first_edge[n + 1]`` is
    one past its last. ``ordinal_by_id`` maps snapshot ids to ordinals.
    """

    plan: DecodingPlan
    strings: StringPool
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    first_edge: tuple[int, ...]
    locations: tuple[Location, ...] = ()
    ordinal_by_id: Mapping[int, int] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    def edges_of(self, ordinal: int) -> tuple[Edge, ...]:
        """Return the outgoing edges of the node at ``ordinal``."""
        if ordinal < 0 or ordinal >= len(self.nodes):
            raise IndexError(f"node ordinal {ordinal} out of range")
        return self.edges[self.first_edge[ordinal]:self.first_edge[ordinal + 1]]

    def node_by_id(self, node_id: int) -> Node | None:
        """Return the node with the given snapshot id, if any."""
        ordinal = self.ordinal_by_id.get(node_id)
        return None if ordinal is None else self.nodes[ordinal]

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)
