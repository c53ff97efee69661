from __future__ import annotations

import pyarrow as pa
import pytest
from osm2parquet.model import ElementKind
from osm2parquet.schema import KIND_TABLES, TABLES, get_schema


def test_eight_tables():
    assert set(TABLES) == {
        "nodes",
        "node-tags",
        "ways",
        "way-tags",
        "way-nodes",
        "relations",
        "relation-tags",
        "relation-members",
    }


def test_every_table_belongs_to_exactly_one_kind():
    owned = [t for tables in KIND_TABLES.values() for t in tables]
    assert sorted(owned) == sorted(TABLES)
    assert set(KIND_TABLES) == set(ElementKind)


@pytest.mark.parametrize("table", list(TABLES))
def test_all_columns_non_nullable(table):
    schema = get_schema(table).to_arrow()
    assert all(not f.nullable for f in schema)


def test_column_layouts():
    assert get_schema("nodes").column_names == ["id", "lat", "lon"]
    assert get_schema("way-nodes").column_names == ["way", "node"]
    assert get_schema("relation-members").column_names == ["relation", "member", "role", "type"]
    for t in ("node-tags", "way-tags", "relation-tags"):
        assert get_schema(t).column_names == ["id", "k", "v"]


def test_arrow_types():
    nodes = get_schema("nodes").to_arrow()
    assert nodes.field("id").type == pa.int64()
    assert nodes.field("lat").type == pa.float64()
    assert get_schema("node-tags").to_arrow().field("k").type == pa.string()


def test_filename():
    assert get_schema("relation-members").filename == "relation-members.parquet"


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        TABLES["extra"] = get_schema("nodes")
    with pytest.raises(TypeError):
        KIND_TABLES[ElementKind.NODE] = ()


def test_unknown_table():
    with pytest.raises(ValueError, match="Unknown table"):
        get_schema("changesets")
