"""
Flatten a lane buffer into the column lists of that kind's tables.

One-to-many relationships (tags, way node references, relation members) are
expanded by repeating the owner id once per child row. Elements with no
children contribute no expansion rows but keep their own row.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from osm2parquet.model import Element, ElementKind, Node, Relation, Way

Columns = dict[str, list[Any]]


def tag_columns(elements: Sequence[Element]) -> Columns:
    ids: list[int] = []
    keys: list[str] = []
    values: list[str] = []
    for e in elements:
        for k, v in e.tags:
            ids.append(e.id)
            keys.append(k)
            values.append(v)
    return {"id": ids, "k": keys, "v": values}


def node_columns(nodes: Sequence[Node]) -> Columns:
    ids = [0] * len(nodes)
    lat = [0.0] * len(nodes)
    lon = [0.0] * len(nodes)
    for i, n in enumerate(nodes):
        ids[i] = n.id
        lat[i] = n.lat
        lon[i] = n.lon
    return {"id": ids, "lat": lat, "lon": lon}


def id_columns(elements: Sequence[Element]) -> Columns:
    return {"id": [e.id for e in elements]}


def way_node_columns(ways: Sequence[Way]) -> Columns:
    way_ids: list[int] = []
    refs: list[int] = []
    for w in ways:
        way_ids.extend([w.id] * len(w.nodes))
        refs.extend(w.nodes)
    return {"way": way_ids, "node": refs}


def relation_member_columns(relations: Sequence[Relation]) -> Columns:
    relation_ids: list[int] = []
    member_ids: list[int] = []
    roles: list[str] = []
    types: list[str] = []
    for r in relations:
        for m in r.members:
            relation_ids.append(r.id)
            member_ids.append(m.ref)
            roles.append(m.role)
            types.append(m.type.value)
    return {"relation": relation_ids, "member": member_ids, "role": roles, "type": types}


_NORMALIZERS: dict[ElementKind, tuple[tuple[str, Callable[[Sequence[Any]], Columns]], ...]] = {
    ElementKind.NODE: (
        ("nodes", node_columns),
        ("node-tags", tag_columns),
    ),
    ElementKind.WAY: (
        ("ways", id_columns),
        ("way-tags", tag_columns),
        ("way-nodes", way_node_columns),
    ),
    ElementKind.RELATION: (
        ("relations", id_columns),
        ("relation-tags", tag_columns),
        ("relation-members", relation_member_columns),
    ),
}


def normalize(kind: ElementKind, elements: Sequence[Element]) -> dict[str, Columns]:
    """
    Build the column sets of every table written for ``kind``.

    Returns a dict keyed by logical table name, in the order the tables are
    listed in ``schema.KIND_TABLES``. An empty ``elements`` yields empty
    columns for every table.
    """
    return {table: build(elements) for table, build in _NORMALIZERS[ElementKind(kind)]}
