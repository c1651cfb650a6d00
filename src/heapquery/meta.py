"""Metadata interpreter for heap snapshots.

A snapshot describes its own layout in ``snapshot.meta``: the ordered field
names of a node and of an edge, and for each field a kind. A kind is either
a primitive spelling (``"string"``, ``"number"``, ``"node"``,
``"string_or_number"``) or an inline list of names, which makes the field an
index into that enum. For example::

    "node_fields": ["type", "name", "id", "self_size", "edge_count"],
    "node_types": [["hidden", "array", "string", "object"],
                   "string", "number", "number", "number"]

This module turns that section into a :class:`DecodingPlan`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from heapquery.errors import SchemaError

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """How the value stored in a field is interpreted."""

    STRING = "string"
    NUMBER = "number"
    ENUM = "enum"
    NODE = "node"
    STRING_OR_NUMBER = "string_or_number"


# Mapping from the snapshot's kind spellings to FieldKind
FIELD_KIND_NAMES: dict[str, FieldKind] = {
    "string": FieldKind.STRING,
    "number": FieldKind.NUMBER,
    "node": FieldKind.NODE,
    "string_or_number": FieldKind.STRING_OR_NUMBER,
}

# Fields every snapshot must declare, with the kinds each may have
REQUIRED_NODE_FIELDS: dict[str, frozenset[FieldKind]] = {
    "type": frozenset({FieldKind.ENUM}),
    "name": frozenset({FieldKind.STRING}),
    "id": frozenset({FieldKind.NUMBER}),
    "self_size": frozenset({FieldKind.NUMBER}),
    "edge_count": frozenset({FieldKind.NUMBER}),
}
REQUIRED_EDGE_FIELDS: dict[str, frozenset[FieldKind]] = {
    "type": frozenset({FieldKind.ENUM}),
    "name_or_index": frozenset({FieldKind.STRING, FieldKind.STRING_OR_NUMBER, FieldKind.NUMBER}),
    "to_node": frozenset({FieldKind.NODE}),
}
DEFAULT_LOCATION_FIELDS = ("object_index", "script_id", "line", "column")

# Edge types whose name_or_index is a numeric index rather than a string
INDEX_EDGE_TYPES = frozenset({"element", "hidden"})


@dataclass(frozen=True)
class FieldSpec:
    """One positional field of a record."""

    name: str
    kind: FieldKind
    enum_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldLayout:
    """Ordered fields of a node or edge record."""

    fields: tuple[FieldSpec, ...]

    @property
    def stride(self) -> int:
        """Number of array slots one record occupies."""
        return len(self.fields)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def index_of(self, name: str) -> int:
        """Return the offset of ``name`` within a record.

        Raises:
            KeyError: If the layout has no such field.
        """
        for i, f in enumerate(self.fields):
            if f.name == name:
                return i
        raise KeyError(name)

    def get(self, name: str) -> FieldSpec | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)


@dataclass(frozen=True)
class DecodingPlan:
    """Everything the graph decoder needs to know about a snapshot's layout."""

    node_layout: FieldLayout
    edge_layout: FieldLayout
    node_count: int | None = None
    edge_count: int | None = None
    location_fields: tuple[str, ...] = DEFAULT_LOCATION_FIELDS

    @property
    def node_stride(self) -> int:
        return self.node_layout.stride

    @property
    def edge_stride(self) -> int:
        return self.edge_layout.stride

    @property
    def location_stride(self) -> int:
        return len(self.location_fields)

    @property
    def node_types(self) -> tuple[str, ...]:
        """Names a node's ``type`` field indexes into."""
        return self.node_layout.fields[self.node_layout.index_of("type")].enum_values

    @property
    def edge_types(self) -> tuple[str, ...]:
        """Names an edge's ``type`` field indexes into."""
        return self.edge_layout.fields[self.edge_layout.index_of("type")].enum_values


def _require_list(section: dict[str, Any], key: str) -> list[Any]:
    if key not in section:
        raise SchemaError("required section is absent", section=f"snapshot.meta.{key}")
    value = section[key]
    if not isinstance(value, list):
        raise SchemaError(
            f"expected a list, got {type(value).__name__}",
            section=f"snapshot.meta.{key}",
        )
    return value


def _parse_kind(raw: Any, section: str, field_name: str) -> tuple[FieldKind, tuple[str, ...]]:
    """Interpret one entry of a ``*_types`` list."""
    if isinstance(raw, list):
        if not all(isinstance(v, str) for v in raw):
            raise SchemaError(
                f"enum values of field '{field_name}' must all be strings",
                section=section,
            )
        return FieldKind.ENUM, tuple(raw)
    if isinstance(raw, str) and raw in FIELD_KIND_NAMES:
        return FIELD_KIND_NAMES[raw], ()
    raise SchemaError(
        f"unrecognized kind {raw!r} for field '{field_name}'", section=section
    )


def parse_layout(
    meta: dict[str, Any],
    fields_key: str,
    types_key: str,
    required: dict[str, frozenset[FieldKind]],
) -> FieldLayout:
    """Build a :class:`FieldLayout` from a field-name list and its kind list."""
    names = _require_list(meta, fields_key)
    kinds = _require_list(meta, types_key)
    section = f"snapshot.meta.{types_key}"

    if len(names) != len(kinds):
        raise SchemaError(
            f"{len(names)} field names in {fields_key} but {len(kinds)} kinds",
            section=section,
        )

    specs: list[FieldSpec] = []
    seen: set[str] = set()
    for name, raw_kind in zip(names, kinds):
        if not isinstance(name, str):
            raise SchemaError(
                f"field name {name!r} is not a string", section=f"snapshot.meta.{fields_key}"
            )
        if name in seen:
            raise SchemaError(
                f"duplicate field '{name}'", section=f"snapshot.meta.{fields_key}"
            )
        seen.add(name)
        kind, values = _parse_kind(raw_kind, section, name)
        specs.append(FieldSpec(name=name, kind=kind, enum_values=values))

    layout = FieldLayout(tuple(specs))
    for name, allowed in required.items():
        spec = layout.get(name)
        if spec is None:
            raise SchemaError(
                f"required field '{name}' is missing", section=f"snapshot.meta.{fields_key}"
            )
        if spec.kind not in allowed:
            raise SchemaError(
                f"field '{name}' has kind {spec.kind.value!r}, expected one of "
                f"{sorted(k.value for k in allowed)}",
                section=section,
            )
    return layout


def _optional_count(snapshot: dict[str, Any], key: str) -> int | None:
    if key not in snapshot:
        return None
    value = snapshot[key]
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise SchemaError(
            f"expected a non-negative integer, got {value!r}", section=f"snapshot.{key}"
        )
    return value


def interpret_meta(snapshot: Any) -> DecodingPlan:
    """Interpret a snapshot's ``snapshot`` section into a decoding plan.

    Args:
        snapshot: The parsed ``snapshot`` object of the document.

    Returns:
        The decoding plan for the document.

    Raises:
        SchemaError: If a section is absent, list lengths disagree, a kind is
            not recognized or a required field is missing.
    """
    if not isinstance(snapshot, dict):
        raise SchemaError("expected an object", section="snapshot")
    meta = snapshot.get("meta")
    if meta is None:
        raise SchemaError("required section is absent", section="snapshot.meta")
    if not isinstance(meta, dict):
        raise SchemaError("expected an object", section="snapshot.meta")

    node_layout = parse_layout(meta, "node_fields", "node_types", REQUIRED_NODE_FIELDS)
    for spec in node_layout.fields:
        # Only an edge's type decides between a name and an index
        if spec.kind is FieldKind.STRING_OR_NUMBER:
            raise SchemaError(
                f"field '{spec.name}' cannot be string_or_number on a node",
                section="snapshot.meta.node_types",
            )
    edge_layout = parse_layout(meta, "edge_fields", "edge_types", REQUIRED_EDGE_FIELDS)

    location_fields = DEFAULT_LOCATION_FIELDS
    if "location_fields" in meta:
        raw = _require_list(meta, "location_fields")
        missing = [f for f in DEFAULT_LOCATION_FIELDS if f not in raw]
        if missing or not all(isinstance(f, str) for f in raw):
            raise SchemaError(
                f"expected fields {list(DEFAULT_LOCATION_FIELDS)}, got {raw!r}",
                section="snapshot.meta.location_fields",
            )
        location_fields = tuple(raw)

    plan = DecodingPlan(
        node_layout=node_layout,
        edge_layout=edge_layout,
        node_count=_optional_count(snapshot, "node_count"),
        edge_count=_optional_count(snapshot, "edge_count"),
        location_fields=location_fields,
    )
    logger.debug(
        "decoding plan: node fields %s (stride %d), edge fields %s (stride %d)",
        node_layout.names,
        plan.node_stride,
        edge_layout.names,
        plan.edge_stride,
    )
    return plan
