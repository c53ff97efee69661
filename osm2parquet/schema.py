"""
Column layouts of the eight output tables.

Every column is non-nullable. The registry is read-only for the life of the
process; a TableWriter is opened with one of these layouts and keeps it.

    nodes             (id, lat, lon)
    node-tags         (id, k, v)
    ways              (id)
    way-tags          (id, k, v)
    way-nodes         (way, node)
    relations         (id)
    relation-tags     (id, k, v)
    relation-members  (relation, member, role, type)
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import pyarrow as pa

from osm2parquet.model import ElementKind


@dataclass(frozen=True)
class Column:
    name: str
    type: pa.DataType
    nullable: bool = False


@dataclass(frozen=True)
class TableSchema:
    name: str
    columns: tuple[Column, ...]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def filename(self) -> str:
        return f"{self.name}.parquet"

    def to_arrow(self) -> pa.Schema:
        return pa.schema([pa.field(c.name, c.type, nullable=c.nullable) for c in self.columns])


def _tag_schema(name: str) -> TableSchema:
    return TableSchema(
        name,
        (
            Column("id", pa.int64()),
            Column("k", pa.string()),
            Column("v", pa.string()),
        ),
    )


_SCHEMAS = [
    TableSchema(
        "nodes",
        (
            Column("id", pa.int64()),
            Column("lat", pa.float64()),
            Column("lon", pa.float64()),
        ),
    ),
    _tag_schema("node-tags"),
    TableSchema("ways", (Column("id", pa.int64()),)),
    _tag_schema("way-tags"),
    TableSchema(
        "way-nodes",
        (
            Column("way", pa.int64()),
            Column("node", pa.int64()),
        ),
    ),
    TableSchema("relations", (Column("id", pa.int64()),)),
    _tag_schema("relation-tags"),
    TableSchema(
        "relation-members",
        (
            Column("relation", pa.int64()),
            Column("member", pa.int64()),
            Column("role", pa.string()),
            Column("type", pa.string()),
        ),
    ),
]

TABLES: Mapping[str, TableSchema] = MappingProxyType({s.name: s for s in _SCHEMAS})

KIND_TABLES: Mapping[ElementKind, tuple[str, ...]] = MappingProxyType(
    {
        ElementKind.NODE: ("nodes", "node-tags"),
        ElementKind.WAY: ("ways", "way-tags", "way-nodes"),
        ElementKind.RELATION: ("relations", "relation-tags", "relation-members"),
    }
)


def get_schema(table: str) -> TableSchema:
    """Look up a table layout by its logical name."""
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"Unknown table {table!r}; expected one of {tuple(TABLES)}") from None
