from __future__ import annotations

import pytest
from osm2parquet.model import Batch, ElementKind, Member, Node, Relation, Way


class TestBatch:
    def test_kind_and_length(self):
        batch = Batch(ElementKind.WAY, [Way(1, [1, 2]), Way(2, [2, 3])])
        assert batch.kind is ElementKind.WAY
        assert len(batch) == 2

    def test_kind_coerced_from_value(self):
        batch = Batch("relation", [Relation(1)])
        assert batch.kind is ElementKind.RELATION

    def test_empty_batch_rejected(self):
        with pytest.raises(ValueError, match="at least one element"):
            Batch(ElementKind.NODE, [])

    def test_mixed_kinds_rejected(self):
        with pytest.raises(ValueError, match="Way 7 in a node batch"):
            Batch(ElementKind.NODE, [Node(1, 0.0, 0.0), Way(7, [1])])


class TestElementKind:
    @pytest.mark.parametrize(
        "char, kind",
        [("n", ElementKind.NODE), ("w", ElementKind.WAY), ("r", ElementKind.RELATION)],
    )
    def test_from_type_char(self, char, kind):
        assert ElementKind.from_type_char(char) is kind

    def test_unknown_type_char(self):
        with pytest.raises(ValueError, match="Unknown OSM member type"):
            ElementKind.from_type_char("x")


def test_elements_default_to_empty_lists():
    way = Way(1)
    rel = Relation(2)
    assert way.nodes == [] and way.tags == []
    assert rel.members == [] and rel.tags == []
    # defaults are not shared between instances
    way.tags.append(("a", "b"))
    assert Way(3).tags == []


def test_member_default_role():
    assert Member(5, ElementKind.NODE).role == ""
