"""Tests for the string table."""

from __future__ import annotations

import pytest

from heapquery.errors import SchemaError, StringIndexOutOfRange
from heapquery.strings import StringPool


class TestStringPool:
    def test_resolve(self):
        """Strings are returned by position."""
        pool = StringPool(["", "Window", "HugeObj"])
        assert pool.resolve(0) == ""
        assert pool.resolve(2) == "HugeObj"
        assert len(pool) == 3

    def test_resolve_is_idempotent(self):
        """Resolving the same index twice gives the same string."""
        pool = StringPool(["a", "b"])
        assert pool.resolve(1) == pool.resolve(1) == "b"

    @pytest.mark.parametrize("index", [3, -1, 1.0, "1", None, True])
    def test_invalid_index(self, index):
        """Anything other than an in-range int fails."""
        pool = StringPool(["a", "b", "c"])
        with pytest.raises(StringIndexOutOfRange) as exc_info:
            pool.resolve(index)
        assert exc_info.value.size == 3

    def test_getitem(self):
        """Indexing goes through the same checks."""
        pool = StringPool(["a"])
        assert pool[0] == "a"
        with pytest.raises(StringIndexOutOfRange):
            pool[1]

    def test_rejects_non_strings(self):
        """Every entry must be a string."""
        with pytest.raises(SchemaError) as exc_info:
            StringPool(["a", 1])
        assert exc_info.value.section == "strings"

    def test_rejects_non_list(self):
        with pytest.raises(SchemaError):
            StringPool("abc")  # type: ignore[arg-type]

    def test_read_only(self):
        """The pool keeps its own copy of the table."""
        source = ["a", "b"]
        pool = StringPool(source)
        source[0] = "changed"
        assert pool.resolve(0) == "a"
