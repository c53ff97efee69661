from __future__ import annotations

from pathlib import Path

import osmium
import pyarrow.parquet as pq
import pytest
from osm2parquet.model import Batch, ElementKind, Member, Node, Relation, Way
from osmium.osm.mutable import Node as MutableNode
from osmium.osm.mutable import Relation as MutableRelation
from osmium.osm.mutable import Way as MutableWay

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scenario_batches() -> list[Batch]:
    """Two nodes, one way, no relations."""
    return [
        Batch(
            ElementKind.NODE,
            [
                Node(1, 10.0, 20.0, [("name", "A")]),
                Node(2, 30.0, 40.0),
            ],
        ),
        Batch(ElementKind.WAY, [Way(10, [1, 2])]),
    ]


def _mixed_batches() -> list[Batch]:
    """A larger interleaved stream touching every table."""
    return [
        Batch(
            ElementKind.NODE,
            [Node(i, i * 0.5, -i * 0.5, [("idx", str(i))] if i % 2 else []) for i in range(1, 6)],
        ),
        Batch(ElementKind.WAY, [Way(100, [5, 4, 3, 3, 1], [("highway", "path")])]),
        Batch(ElementKind.NODE, [Node(i, 0.0, 0.0) for i in range(6, 9)]),
        Batch(
            ElementKind.RELATION,
            [
                Relation(
                    500,
                    [Member(100, ElementKind.WAY, "outer"), Member(7, ElementKind.NODE, "label")],
                    [("type", "multipolygon"), ("name", "Lake")],
                ),
                Relation(501),
            ],
        ),
        Batch(
            ElementKind.WAY,
            [
                Way(101, [8, 7, 6], [("name", "Main St"), ("lanes", "2")]),
                Way(102, []),
            ],
        ),
        Batch(
            ElementKind.RELATION,
            [Relation(502, [Member(500, ElementKind.RELATION, "subarea")])],
        ),
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def scenario_batches() -> list[Batch]:
    return _scenario_batches()


@pytest.fixture()
def mixed_batches() -> list[Batch]:
    return _mixed_batches()


@pytest.fixture()
def read_rows():
    """Read a committed table back as a dict of column lists."""

    def _read(output_dir: Path, table: str) -> dict[str, list]:
        return pq.read_table(output_dir / f"{table}.parquet").to_pydict()

    return _read


@pytest.fixture()
def out_dir(tmp_path: Path) -> Path:
    d = tmp_path / "out"
    d.mkdir()
    return d


@pytest.fixture()
def scenario_pbf(tmp_path: Path) -> Path:
    """PBF holding the two-node, one-way scenario."""
    fp = tmp_path / "scenario.osm.pbf"
    with osmium.SimpleWriter(str(fp)) as w:
        w.add_node(MutableNode(id=1, location=(20.0, 10.0), tags={"name": "A"}))
        w.add_node(MutableNode(id=2, location=(40.0, 30.0)))
        w.add_way(MutableWay(id=10, nodes=[1, 2]))
    return fp


@pytest.fixture()
def full_osm_xml(tmp_path: Path) -> Path:
    """XML file with nodes, ways and relations."""
    fp = tmp_path / "full.osm"
    with osmium.SimpleWriter(str(fp)) as w:
        w.add_node(MutableNode(id=1, location=(-87.630, 41.878), tags={"amenity": "cafe"}))
        w.add_node(MutableNode(id=2, location=(-87.629, 41.878)))
        w.add_node(MutableNode(id=3, location=(-87.629, 41.879)))
        w.add_way(MutableWay(id=20, nodes=[3, 1, 2], tags={"highway": "residential"}))
        w.add_relation(
            MutableRelation(
                id=30,
                members=[("w", 20, "outer"), ("n", 1, "")],
                tags={"type": "multipolygon"},
            )
        )
    return fp
