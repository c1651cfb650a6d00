"""String table of a heap snapshot."""

from __future__ import annotations

from typing import Any, Sequence

from heapquery.errors import Phase, SchemaError, StringIndexOutOfRange


class StringPool:
    """Read-only view of the snapshot's ``strings`` section.

    Every name in the snapshot is stored once here and referenced elsewhere
    by its position.
    """

    __slots__ = ("_strings",)

    def __init__(self, strings: Sequence[Any]) -> None:
        if not isinstance(strings, (list, tuple)):
            raise SchemaError("expected a list of strings", section="strings")
        for i, s in enumerate(strings):
            if not isinstance(s, str):
                raise SchemaError(
                    f"entry {i} is {type(s).__name__}, not a string",
                    section="strings",
                )
        self._strings: tuple[str, ...] = tuple(strings)

    def resolve(self, index: Any, phase: Phase | None = None) -> str:
        """Return the string at ``index``.

        Raises:
            StringIndexOutOfRange: If ``index`` is not a valid position.
        """
        # bool is an int subclass but never a valid reference
        if not isinstance(index, int) or isinstance(index, bool):
            raise StringIndexOutOfRange(index, len(self._strings), phase)
        if index < 0 or index >= len(self._strings):
            raise StringIndexOutOfRange(index, len(self._strings), phase)
        return self._strings[index]

    def __getitem__(self, index: int) -> str:
        return self.resolve(index)

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self):
        return iter(self._strings)

    def __repr__(self) -> str:
        return f"StringPool(size={len(self._strings)})"
