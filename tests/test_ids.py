import pytest

from dbmirror.core.errors import MalformedInternalIdError
from dbmirror.core.ids import (
    SchemaRef,
    TableRef,
    database_id,
    node_kind,
    parse_database_id,
    parse_schema_id,
    parse_table_id,
    schema_id,
    table_id,
)
from dbmirror.core.models import NodeKind


def test_ids_spell_out_the_ancestor_path():
    assert database_id("sales") == "sales"
    assert schema_id("sales", "raw") == "sales.raw"
    assert table_id("sales", "raw", "orders") == "sales.raw.orders"


def test_parse_recovers_components():
    assert parse_database_id("sales") == "sales"
    assert parse_schema_id("sales.raw") == SchemaRef(database_name="sales", name="raw")

    ref = parse_table_id("sales.raw.orders")
    assert ref == TableRef(database_name="sales", schema_name="raw", name="orders")
    assert ref.schema_id == "sales.raw"
    assert ref.internal_id == "sales.raw.orders"


@pytest.mark.parametrize(
    "parts",
    [("a.b", "s", "t"), ("d", "", "t"), ("d", "s", "t.x")],
)
def test_components_with_separator_or_empty_are_rejected(parts):
    with pytest.raises(MalformedInternalIdError):
        table_id(*parts)


@pytest.mark.parametrize(
    "parser, value",
    [
        (parse_database_id, "a.b"),
        (parse_database_id, ""),
        (parse_schema_id, "only"),
        (parse_schema_id, "a.b.c"),
        (parse_schema_id, "a."),
        (parse_table_id, "a.b"),
        (parse_table_id, "a.b.c.d"),
        (parse_table_id, "a..c"),
    ],
)
def test_parse_rejects_wrong_shape(parser, value):
    with pytest.raises(MalformedInternalIdError):
        parser(value)


def test_malformed_id_is_a_value_error():
    with pytest.raises(ValueError):
        parse_table_id("nope")


def test_node_kind_counts_components():
    assert node_kind("d") == NodeKind.DATABASE
    assert node_kind("d.s") == NodeKind.SCHEMA
    assert node_kind("d.s.t") == NodeKind.TABLE


@pytest.mark.parametrize("value", ["", "d.s.t.x", ".s", "d..t"])
def test_node_kind_rejects_other_shapes(value):
    with pytest.raises(MalformedInternalIdError):
        node_kind(value)
