"""
Streaming OpenStreetMap reader.

Reads .osm.pbf and .osm/.xml files with pyosmium and yields Batch objects:
runs of consecutive same-kind elements, at most ``batch_size`` long. A change
of element kind in the file closes the current batch, so batches of one kind
come out in file order.

pyosmium objects are only valid inside the iteration step that produced them,
so every node, way and relation is copied into the plain dataclasses of
osm2parquet.model before it is batched.

Usage:
    from osm2parquet.parsers.osm import read_batches

    batches, result = read_batches("illinois-latest.osm.pbf", batch_size=8000)
    for batch in batches:
        ...
    print(result.nodes_parsed, result.ways_parsed, result.relations_parsed)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from osm2parquet.exceptions import DecodeError, UnsupportedInputError
from osm2parquet.model import Batch, Element, ElementKind, Member, Node, Relation, Way

logger = logging.getLogger(__name__)

# Outermost suffix -> (input format, pyosmium format string)
SUPPORTED_SUFFIXES = {
    ".pbf": ("pbf", "pbf"),
    ".osm": ("xml", "osm"),
    ".xml": ("xml", "osm"),
}


@dataclass
class ParseResult:
    """Accumulated metadata from a read."""

    input_format: str = ""
    nodes_parsed: int = 0
    ways_parsed: int = 0
    relations_parsed: int = 0
    batches: int = 0

    @property
    def elements_parsed(self) -> int:
        return self.nodes_parsed + self.ways_parsed + self.relations_parsed

    def count(self, kind: ElementKind, n: int) -> None:
        if kind is ElementKind.NODE:
            self.nodes_parsed += n
        elif kind is ElementKind.WAY:
            self.ways_parsed += n
        else:
            self.relations_parsed += n
        self.batches += 1


def input_format(filepath: str | Path) -> str:
    """Return "pbf" or "xml" for ``filepath``, judged by its extension."""
    return _resolve_format(Path(filepath))[0]


def _resolve_format(filepath: Path) -> tuple[str, str]:
    suffix = filepath.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedInputError(
            f"Unrecognized input extension {suffix or '(none)'!r} for {filepath.name}; "
            f"expected one of {tuple(SUPPORTED_SUFFIXES)}"
        )
    return SUPPORTED_SUFFIXES[suffix]


def read_batches(
    filepath: str | Path,
    batch_size: int = 8000,
) -> tuple[Iterator[Batch], ParseResult]:
    """
    Stream an OSM file as kind-tagged batches.

    Args:
        filepath:    Path to a .osm.pbf, .osm or .xml file.
        batch_size:  Maximum elements per batch.

    Returns:
        (batch_iterator, result). The iterator is lazy; result fills in
        as batches are consumed.

    Raises:
        UnsupportedInputError: immediately, for a missing file or unknown
            extension.
        DecodeError: while iterating, when pyosmium rejects the input.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size!r}")

    filepath = Path(filepath)
    fmt, osmium_format = _resolve_format(filepath)
    if not filepath.is_file():
        raise UnsupportedInputError(f"Input file not found: {filepath}")

    result = ParseResult(input_format=fmt)
    return _generate(filepath, osmium_format, batch_size, result), result


def _generate(
    filepath: Path,
    osmium_format: str,
    batch_size: int,
    result: ParseResult,
) -> Iterator[Batch]:
    import osmium
    import osmium.io

    entities = osmium.osm.NODE | osmium.osm.WAY | osmium.osm.RELATION
    source = osmium.io.File(str(filepath), osmium_format)

    kind: ElementKind | None = None
    batch: list[Element] = []

    try:
        for obj in osmium.FileProcessor(source, entities):
            element = _to_element(obj)

            if batch and (element.kind is not kind or len(batch) >= batch_size):
                result.count(kind, len(batch))
                yield Batch(kind, batch)
                batch = []

            kind = element.kind
            batch.append(element)
    except Exception as e:
        raise DecodeError(f"Failed to decode {filepath.name}: {e}") from e

    if batch:
        result.count(kind, len(batch))
        yield Batch(kind, batch)

    _log_summary(filepath, result)


def _to_element(obj) -> Element:
    tags = [(t.k, t.v) for t in obj.tags]

    if obj.is_node():
        return Node(obj.id, obj.location.lat, obj.location.lon, tags)
    if obj.is_way():
        return Way(obj.id, [n.ref for n in obj.nodes], tags)
    if obj.is_relation():
        members = [
            Member(m.ref, ElementKind.from_type_char(m.type), m.role) for m in obj.members
        ]
        return Relation(obj.id, members, tags)
    raise ValueError(f"Unexpected OSM object {obj!r}")


def _log_summary(filepath: Path, result: ParseResult) -> None:
    logger.info(
        "Parsed %d nodes, %d ways and %d relations in %d batches from %s",
        result.nodes_parsed,
        result.ways_parsed,
        result.relations_parsed,
        result.batches,
        filepath.name,
    )
