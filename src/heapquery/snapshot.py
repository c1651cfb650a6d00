"""Reading ``.heapsnapshot`` documents."""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from heapquery.errors import SchemaError

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("snapshot", "nodes", "edges", "strings")


@dataclass(frozen=True)
class SnapshotDocument:
    """The raw sections of a heap snapshot, before decoding."""

    snapshot: dict[str, Any]
    nodes: list[Any]
    edges: list[Any]
    strings: list[Any]
    locations: list[Any] | None = None

    @classmethod
    def from_json(cls, data: Any) -> SnapshotDocument:
        """Check that every mandatory section is present and wrap it.

        Raises:
            SchemaError: If the document is not an object or a mandatory
                section is absent or of the wrong shape.
        """
        if not isinstance(data, dict):
            raise SchemaError("expected a JSON object at the top level", section="document")
        for name in REQUIRED_SECTIONS:
            if name not in data:
                raise SchemaError("required section is absent", section=name)
        if not isinstance(data["snapshot"], dict):
            raise SchemaError("expected an object", section="snapshot")
        for name in ("nodes", "edges", "strings"):
            if not isinstance(data[name], list):
                raise SchemaError(
                    f"expected a list, got {type(data[name]).__name__}", section=name
                )

        locations = data.get("locations")
        if locations is not None and not isinstance(locations, list):
            raise SchemaError(
                f"expected a list, got {type(locations).__name__}", section="locations"
            )

        return cls(
            snapshot=data["snapshot"],
            nodes=data["nodes"],
            edges=data["edges"],
            strings=data["strings"],
            locations=locations,
        )


def parse_snapshot(text: str | bytes) -> SnapshotDocument:
    """Parse a snapshot from its JSON text."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SchemaError(f"invalid JSON: {e}", section="document") from e
    return SnapshotDocument.from_json(data)


def read_snapshot(path: Path | str) -> SnapshotDocument:
    """Read a snapshot file. Files ending in ``.gz`` are decompressed.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        SchemaError: If the file is not a well-formed snapshot, or is a
            damaged gzip stream.
    """
    path = Path(path)
    logger.info("reading %s", path)
    if path.suffix == ".gz":
        try:
            with gzip.open(path, "rb") as f:
                raw = f.read()
        except (EOFError, gzip.BadGzipFile, zlib.error) as e:
            raise SchemaError(f"invalid gzip stream: {e}", section="document") from e
    else:
        raw = path.read_bytes()
    return parse_snapshot(raw)
