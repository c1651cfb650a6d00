"""Graph decoder: turns the flat node and edge arrays into typed records.

The snapshot stores nodes as one flat list of integers, ``stride`` values per
node, and edges the same way. Edges carry no owner: the first node's
``edge_count`` edges come first, then the second node's, and so on. An
edge's ``to_node`` is the offset of the target's first slot in the node
array, so it has to be divided by the node stride to get an ordinal.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from heapquery.errors import GraphInconsistency, Phase
from heapquery.meta import INDEX_EDGE_TYPES, DecodingPlan, FieldKind, FieldLayout
from heapquery.strings import StringPool
from heapquery.types import Edge, HeapGraph, Location, Node

logger = logging.getLogger(__name__)

_NODE_ATTRIBUTES = frozenset({"type", "name", "id", "self_size", "edge_count", "trace_node_id", "detachedness"})


def offset_to_ordinal(raw: Any, stride: int, node_count: int, phase: Phase = Phase.EDGE_DECODE) -> int:
    """Translate a node-array offset into a node ordinal.

    Args:
        raw: Offset of the node's first slot in the flat node array.
        stride: Number of slots per node.
        node_count: Number of decoded nodes.
        phase: Phase to report on failure.

    Returns:
        ``raw // stride``.

    Raises:
        GraphInconsistency: If ``raw`` is not an integer, is negative, is not
            a multiple of ``stride`` or points past the last node.
    """
    if not isinstance(raw, int) or isinstance(raw, bool):
        raise GraphInconsistency(f"node offset {raw!r} is not an integer", phase)
    if raw < 0:
        raise GraphInconsistency(f"node offset {raw} is negative", phase)
    ordinal, remainder = divmod(raw, stride)
    if remainder:
        raise GraphInconsistency(
            f"node offset {raw} is not a multiple of the node stride {stride}", phase
        )
    if ordinal >= node_count:
        raise GraphInconsistency(
            f"node offset {raw} resolves to ordinal {ordinal}, but there are only {node_count} nodes",
            phase,
        )
    return ordinal


def _stride_count(values: Sequence[Any], stride: int, section: str, phase: Phase) -> int:
    if stride == 0:
        raise GraphInconsistency(f"{section} layout declares no fields", phase)
    count, remainder = divmod(len(values), stride)
    if remainder:
        raise GraphInconsistency(
            f"{section} array has {len(values)} values, not a multiple of the stride {stride}",
            phase,
        )
    return count


def _number(value: Any, where: str, phase: Phase) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise GraphInconsistency(f"{where}: expected an integer, got {value!r}", phase)
    return value


class _RecordDecoder:
    """Decodes one stride of a flat array according to a field layout."""

    def __init__(
        self,
        layout: FieldLayout,
        strings: StringPool,
        node_stride: int,
        node_count: int,
        phase: Phase,
    ) -> None:
        self.layout = layout
        self.strings = strings
        self.node_stride = node_stride
        self.node_count = node_count
        self.phase = phase
        self._type_offset = layout.index_of("type")

    def decode(self, values: Sequence[Any], base: int, label: str) -> dict[str, Any]:
        record: dict[str, Any] = {}
        record_type = self._decode_enum(self.layout.fields[self._type_offset], values[base + self._type_offset], label)

        for offset, spec in enumerate(self.layout.fields):
            raw = values[base + offset]
            where = f"{label} field '{spec.name}'"
            if spec.kind is FieldKind.ENUM:
                record[spec.name] = self._decode_enum(spec, raw, label)
            elif spec.kind is FieldKind.STRING:
                record[spec.name] = self.strings.resolve(raw, self.phase)
            elif spec.kind is FieldKind.NUMBER:
                record[spec.name] = _number(raw, where, self.phase)
            elif spec.kind is FieldKind.NODE:
                record[spec.name] = offset_to_ordinal(raw, self.node_stride, self.node_count, self.phase)
            elif spec.kind is FieldKind.STRING_OR_NUMBER:
                if record_type in INDEX_EDGE_TYPES:
                    record[spec.name] = _number(raw, where, self.phase)
                else:
                    record[spec.name] = self.strings.resolve(raw, self.phase)
            else:
                raise GraphInconsistency(f"{where}: unsupported kind {spec.kind}", self.phase)
        return record

    def _decode_enum(self, spec, raw: Any, label: str) -> str:
        index = _number(raw, f"{label} field '{spec.name}'", self.phase)
        if index < 0 or index >= len(spec.enum_values):
            raise GraphInconsistency(
                f"{label} field '{spec.name}': type index {index} out of range for {len(spec.enum_values)} types",
                self.phase,
            )
        return spec.enum_values[index]


def decode_nodes(
    plan: DecodingPlan, strings: StringPool, values: Sequence[Any]
) -> tuple[tuple[Node, ...], Mapping[int, int]]:
    """Decode the flat node array.

    Returns:
        The nodes, and a read-only map from snapshot id to ordinal.

    Raises:
        GraphInconsistency: If the array does not divide into whole nodes,
            disagrees with the declared node count, or holds duplicate ids.
        StringIndexOutOfRange: If a name points outside the string table.
    """
    phase = Phase.NODE_DECODE
    stride = plan.node_stride
    count = _stride_count(values, stride, "node", phase)
    if plan.node_count is not None and plan.node_count != count:
        raise GraphInconsistency(
            f"snapshot declares {plan.node_count} nodes but the node array holds {count}", phase
        )

    decoder = _RecordDecoder(plan.node_layout, strings, stride, count, phase)
    nodes: list[Node] = []
    seen_ids: dict[int, int] = {}

    for ordinal in range(count):
        label = f"node {ordinal}"
        record = decoder.decode(values, ordinal * stride, label)

        if record["edge_count"] < 0:
            raise GraphInconsistency(f"{label}: negative edge_count {record['edge_count']}", phase)
        node_id = record["id"]
        if node_id in seen_ids:
            raise GraphInconsistency(
                f"{label}: id {node_id} already used by node {seen_ids[node_id]}", phase
            )
        seen_ids[node_id] = ordinal

        nodes.append(
            Node(
                ordinal=ordinal,
                type=record["type"],
                name=record["name"],
                id=node_id,
                self_size=record["self_size"],
                edge_count=record["edge_count"],
                trace_node_id=record.get("trace_node_id"),
                detachedness=record.get("detachedness"),
                extra=MappingProxyType({k: v for k, v in record.items() if k not in _NODE_ATTRIBUTES}),
            )
        )

    return tuple(nodes), MappingProxyType(seen_ids)


def decode_edges(
    plan: DecodingPlan,
    strings: StringPool,
    nodes: Sequence[Node],
    values: Sequence[Any],
) -> tuple[tuple[Edge, ...], tuple[int, ...]]:
    """Decode the flat edge array, attributing edges to nodes in order.

    Returns:
        The edges, and the first-edge index of every node followed by the
        total edge count.

    Raises:
        GraphInconsistency: If the edges do not match the nodes' declared
            edge counts, or a ``to_node`` does not resolve to a node.
        StringIndexOutOfRange: If an edge name points outside the string
            table.
    """
    phase = Phase.EDGE_DECODE
    stride = plan.edge_stride
    total = _stride_count(values, stride, "edge", phase)
    if plan.edge_count is not None and plan.edge_count != total:
        raise GraphInconsistency(
            f"snapshot declares {plan.edge_count} edges but the edge array holds {total}", phase
        )

    decoder = _RecordDecoder(plan.edge_layout, strings, plan.node_stride, len(nodes), phase)
    edges: list[Edge] = []
    first_edge: list[int] = []
    edge_index = 0

    for node in nodes:
        first_edge.append(edge_index)
        if edge_index + node.edge_count > total:
            raise GraphInconsistency(
                f"node {node.ordinal} (id {node.id}) declares {node.edge_count} edges "
                f"but only {total - edge_index} remain in the edge array",
                phase,
            )
        for position in range(node.edge_count):
            record = decoder.decode(values, edge_index * stride, f"edge {edge_index}")
            edges.append(
                Edge(
                    from_node=node.ordinal,
                    position=position,
                    type=record["type"],
                    name_or_index=record["name_or_index"],
                    to_node=record["to_node"],
                )
            )
            edge_index += 1

    first_edge.append(edge_index)
    if edge_index != total:
        raise GraphInconsistency(
            f"nodes account for {edge_index} edges but the edge array holds {total}", phase
        )
    return tuple(edges), tuple(first_edge)


def decode_locations(plan: DecodingPlan, node_count: int, values: Sequence[Any]) -> tuple[Location, ...]:
    """Decode the optional ``locations`` array."""
    phase = Phase.LOCATION_DECODE
    stride = plan.location_stride
    count = _stride_count(values, stride, "location", phase)
    fields = plan.location_fields
    offsets = {name: fields.index(name) for name in ("object_index", "script_id", "line", "column")}

    locations: list[Location] = []
    for i in range(count):
        base = i * stride
        label = f"location {i}"
        locations.append(
            Location(
                node=offset_to_ordinal(values[base + offsets["object_index"]], plan.node_stride, node_count, phase),
                script_id=_number(values[base + offsets["script_id"]], f"{label} script_id", phase),
                line=_number(values[base + offsets["line"]], f"{label} line", phase),
                column=_number(values[base + offsets["column"]], f"{label} column", phase),
            )
        )
    return tuple(locations)


def decode_graph(
    plan: DecodingPlan,
    strings: StringPool,
    nodes: Sequence[Any],
    edges: Sequence[Any],
    locations: Sequence[Any] | None = None,
) -> HeapGraph:
    """Decode a snapshot's arrays into a :class:`HeapGraph`.

    Nodes are decoded completely before any edge, since edge attribution
    needs every node's edge count and ``to_node`` needs the node count.
    """
    decoded_nodes, ordinal_by_id = decode_nodes(plan, strings, nodes)
    logger.debug("decoded %d nodes", len(decoded_nodes))

    decoded_edges, first_edge = decode_edges(plan, strings, decoded_nodes, edges)
    logger.debug("decoded %d edges", len(decoded_edges))

    decoded_locations: tuple[Location, ...] = ()
    if locations:
        decoded_locations = decode_locations(plan, len(decoded_nodes), locations)
        logger.debug("decoded %d locations", len(decoded_locations))

    return HeapGraph(
        plan=plan,
        strings=strings,
        nodes=decoded_nodes,
        edges=decoded_edges,
        first_edge=first_edge,
        locations=decoded_locations,
        ordinal_by_id=ordinal_by_id,
    )
