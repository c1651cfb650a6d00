"""Import options."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

from heapquery.storage import DEFAULT_BATCH_SIZE


def assoc_db_name(heap_file: Path | str) -> Path:
    """Return the database path associated with a snapshot file.

    ``dumps/app.heapsnapshot`` and ``dumps/app.heapsnapshot.gz`` both map to
    ``dumps/app.db3``.
    """
    path = Path(heap_file)
    if path.suffix == ".gz":
        path = path.with_suffix("")
    return path.with_name(f"{path.stem}.db3")


@dataclass
class ImportOptions:
    """Where a snapshot is read from and where its database lives."""

    heap_file: Path
    db_path: Path
    rebuild: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE

    @classmethod
    def for_heap(cls, heap_file: Path | str, db_path: Path | str | None = None, **kwargs) -> ImportOptions:  # type: ignore
        heap_file = Path(heap_file)
        return cls(
            heap_file=heap_file,
            db_path=Path(db_path) if db_path is not None else assoc_db_name(heap_file),
            **kwargs,
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> ImportOptions:
        """Build options from parsed command-line arguments."""
        return cls.for_heap(
            args.heap,
            args.db,
            rebuild=args.rebuild,
            batch_size=args.batch_size,
        )
