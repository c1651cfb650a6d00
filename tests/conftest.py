"""Shared fixtures: synthetic heap snapshots."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

NODE_TYPES = [
    "hidden", "array", "string", "object", "code", "closure", "regexp", "number",
    "native", "synthetic", "concatenated string", "sliced string", "symbol", "bigint",
    "object shape",
]
EDGE_TYPES = ["context", "element", "property", "internal", "hidden", "shortcut", "weak"]

META = {
    "node_fields": ["type", "name", "id", "self_size", "edge_count", "trace_node_id", "detachedness"],
    "node_types": [NODE_TYPES, "string", "number", "number", "number", "number", "number"],
    "edge_fields": ["type", "name_or_index", "to_node"],
    "edge_types": [EDGE_TYPES, "string_or_number", "node"],
    "trace_function_info_fields": ["function_id", "name", "script_name", "script_id", "line", "column"],
    "trace_node_fields": ["id", "function_info_index", "count", "size", "children"],
    "sample_fields": ["timestamp_us", "last_assigned_id"],
    "location_fields": ["object_index", "script_id", "line", "column"],
}

NODE_STRIDE = len(META["node_fields"])


def build_snapshot(nodes: list[dict[str, Any]], locations: list[tuple[int, int, int, int]] = ()) -> dict[str, Any]:
    """Build a snapshot document from node descriptions.

    Each node is a dict with ``name`` and ``id`` and optionally ``type``,
    ``self_size``, ``trace_node_id``, ``detachedness`` and ``edges``, a list
    of ``(edge_type, name_or_index, to_ordinal)`` tuples. Locations are
    ``(node_ordinal, script_id, line, column)`` tuples.
    """
    strings: list[str] = [""]
    index: dict[str, int] = {"": 0}

    def intern(s: str) -> int:
        if s not in index:
            index[s] = len(strings)
            strings.append(s)
        return index[s]

    node_values: list[int] = []
    edge_values: list[int] = []
    for node in nodes:
        edges = node.get("edges", [])
        node_values += [
            NODE_TYPES.index(node.get("type", "object")),
            intern(node["name"]),
            node["id"],
            node.get("self_size", 0),
            len(edges),
            node.get("trace_node_id", 0),
            node.get("detachedness", 0),
        ]
        for edge_type, name_or_index, to_ordinal in edges:
            if edge_type in ("element", "hidden"):
                name_value = name_or_index
            else:
                name_value = intern(name_or_index)
            edge_values += [EDGE_TYPES.index(edge_type), name_value, to_ordinal * NODE_STRIDE]

    location_values: list[int] = []
    for ordinal, script_id, line, column in locations:
        location_values += [ordinal * NODE_STRIDE, script_id, line, column]

    return {
        "snapshot": {
            "meta": copy.deepcopy(META),
            "node_count": len(nodes),
            "edge_count": len(edge_values) // 3,
            "trace_function_count": 0,
        },
        "nodes": node_values,
        "edges": edge_values,
        "trace_function_infos": [],
        "trace_tree": [],
        "samples": [],
        "locations": location_values,
        "strings": strings,
    }


@pytest.fixture
def snapshot_builder():
    """The :func:`build_snapshot` helper."""
    return build_snapshot


@pytest.fixture
def minimal_document():
    """Two nodes (ids 1 and 2) joined by one property edge named 'ref'."""
    return build_snapshot([
        {"type": "object", "name": "Holder", "id": 1, "self_size": 32, "edges": [("property", "ref", 1)]},
        {"type": "object", "name": "Target", "id": 2, "self_size": 16},
    ])


@pytest.fixture
def sample_document():
    """A small but varied heap: arrays, elements, hidden edges and a location."""
    return build_snapshot(
        [
            {"type": "synthetic", "name": "(GC roots)", "id": 1, "edges": [
                ("shortcut", "global", 1),
                ("element", 0, 2),
            ]},
            {"type": "object", "name": "Window", "id": 3, "self_size": 48, "edges": [
                ("property", "cache", 2),
                ("hidden", 7, 4),
                ("internal", "map", 4),
            ]},
            {"type": "array", "name": "", "id": 5, "self_size": 1024, "edges": [
                ("element", 0, 3),
                ("element", 1, 3),
            ]},
            {"type": "object", "name": "HugeObj", "id": 7, "self_size": 4096, "trace_node_id": 11},
            {"type": "code", "name": "system / Map", "id": 9, "self_size": 80, "detachedness": 1},
        ],
        locations=[(3, 42, 10, 4)],
    )


@pytest.fixture
def write_snapshot(tmp_path: Path):
    """Write a snapshot document to ``tmp_path`` and return its path."""

    def _write(document: dict[str, Any], name: str = "app.heapsnapshot") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path

    return _write
