"""Tests for the snapshot metadata interpreter."""

from __future__ import annotations

import pytest

from heapquery.errors import Phase, SchemaError
from heapquery.meta import FieldKind, interpret_meta


class TestInterpretMeta:
    """Tests for building a decoding plan."""

    def test_strides(self, minimal_document):
        """Strides equal the number of declared fields."""
        plan = interpret_meta(minimal_document["snapshot"])
        assert plan.node_stride == 7
        assert plan.edge_stride == 3
        assert plan.location_stride == 4

    def test_field_kinds(self, minimal_document):
        """Each field's kind follows its entry in the kinds list."""
        plan = interpret_meta(minimal_document["snapshot"])
        kinds = [f.kind for f in plan.node_layout.fields]
        assert kinds == [
            FieldKind.ENUM,
            FieldKind.STRING,
            FieldKind.NUMBER,
            FieldKind.NUMBER,
            FieldKind.NUMBER,
            FieldKind.NUMBER,
            FieldKind.NUMBER,
        ]
        assert [f.kind for f in plan.edge_layout.fields] == [
            FieldKind.ENUM,
            FieldKind.STRING_OR_NUMBER,
            FieldKind.NODE,
        ]

    def test_type_tables(self, minimal_document):
        """Type enums are taken from the type field's inline list."""
        plan = interpret_meta(minimal_document["snapshot"])
        assert plan.node_types[0] == "hidden"
        assert plan.node_types[3] == "object"
        assert plan.edge_types == ("context", "element", "property", "internal", "hidden", "shortcut", "weak")

    def test_counts(self, minimal_document):
        """Declared counts are carried into the plan."""
        plan = interpret_meta(minimal_document["snapshot"])
        assert plan.node_count == 2
        assert plan.edge_count == 1

    def test_counts_optional(self, minimal_document):
        """Counts may be absent."""
        snapshot = minimal_document["snapshot"]
        del snapshot["node_count"]
        del snapshot["edge_count"]
        plan = interpret_meta(snapshot)
        assert plan.node_count is None
        assert plan.edge_count is None

    def test_field_order_is_not_fixed(self, minimal_document):
        """Field positions are read from the document, not assumed."""
        meta = minimal_document["snapshot"]["meta"]
        meta["node_fields"] = ["id", "name", "type", "edge_count", "self_size"]
        meta["node_types"] = ["number", "string", ["object"], "number", "number"]
        plan = interpret_meta(minimal_document["snapshot"])
        assert plan.node_layout.index_of("type") == 2
        assert plan.node_layout.index_of("id") == 0
        assert plan.node_types == ("object",)

    def test_plan_is_immutable(self, minimal_document):
        """Plans cannot be modified after interpretation."""
        plan = interpret_meta(minimal_document["snapshot"])
        with pytest.raises(AttributeError):
            plan.node_count = 5  # type: ignore[misc]


class TestSchemaErrors:
    """Tests for malformed schema sections."""

    def test_missing_meta(self, minimal_document):
        """A snapshot without meta fails."""
        del minimal_document["snapshot"]["meta"]
        with pytest.raises(SchemaError) as exc_info:
            interpret_meta(minimal_document["snapshot"])
        assert exc_info.value.section == "snapshot.meta"
        assert exc_info.value.phase is Phase.METADATA

    @pytest.mark.parametrize("key", ["node_fields", "node_types", "edge_fields", "edge_types"])
    def test_missing_required_list(self, minimal_document, key):
        """Every field and kind list is mandatory."""
        del minimal_document["snapshot"]["meta"][key]
        with pytest.raises(SchemaError) as exc_info:
            interpret_meta(minimal_document["snapshot"])
        assert exc_info.value.section == f"snapshot.meta.{key}"

    def test_length_mismatch(self, minimal_document):
        """Field names and kinds must pair up."""
        minimal_document["snapshot"]["meta"]["node_types"].pop()
        with pytest.raises(SchemaError, match="7 field names"):
            interpret_meta(minimal_document["snapshot"])

    def test_unknown_kind(self, minimal_document):
        """A kind this decoder does not know is rejected, not ignored."""
        meta = minimal_document["snapshot"]["meta"]
        meta["node_fields"].append("future_field")
        meta["node_types"].append("float128")
        with pytest.raises(SchemaError, match="unrecognized kind 'float128'"):
            interpret_meta(minimal_document["snapshot"])

    def test_missing_required_field(self, minimal_document):
        """Nodes must declare an id."""
        meta = minimal_document["snapshot"]["meta"]
        i = meta["node_fields"].index("id")
        del meta["node_fields"][i]
        del meta["node_types"][i]
        with pytest.raises(SchemaError, match="required field 'id'"):
            interpret_meta(minimal_document["snapshot"])

    def test_type_must_be_enum(self, minimal_document):
        """A type field declared as a plain number is rejected."""
        minimal_document["snapshot"]["meta"]["edge_types"][0] = "number"
        with pytest.raises(SchemaError, match="field 'type'"):
            interpret_meta(minimal_document["snapshot"])

    def test_to_node_must_be_node(self, minimal_document):
        """to_node must be declared as a node reference."""
        minimal_document["snapshot"]["meta"]["edge_types"][2] = "number"
        with pytest.raises(SchemaError, match="field 'to_node'"):
            interpret_meta(minimal_document["snapshot"])

    def test_string_or_number_not_allowed_on_nodes(self, minimal_document):
        """Only edges have a type that picks between a name and an index."""
        meta = minimal_document["snapshot"]["meta"]
        meta["node_fields"].append("label")
        meta["node_types"].append("string_or_number")
        with pytest.raises(SchemaError, match="cannot be string_or_number"):
            interpret_meta(minimal_document["snapshot"])

    def test_duplicate_field(self, minimal_document):
        """Field names must be unique."""
        meta = minimal_document["snapshot"]["meta"]
        meta["edge_fields"][1] = "type"
        with pytest.raises(SchemaError, match="duplicate field 'type'"):
            interpret_meta(minimal_document["snapshot"])

    def test_negative_count(self, minimal_document):
        """Declared counts must be non-negative integers."""
        minimal_document["snapshot"]["node_count"] = -1
        with pytest.raises(SchemaError) as exc_info:
            interpret_meta(minimal_document["snapshot"])
        assert exc_info.value.section == "snapshot.node_count"

    def test_error_names_section(self, minimal_document):
        """The message starts with the phase and names the section."""
        minimal_document["snapshot"]["meta"]["edge_types"] = "nope"
        with pytest.raises(SchemaError) as exc_info:
            interpret_meta(minimal_document["snapshot"])
        assert str(exc_info.value).startswith("[metadata] snapshot.meta.edge_types:")
