"""
In-memory OSM primitives as handed from the decoder to the lanes.

Elements are plain dataclasses; a Batch tags a run of same-kind elements
with their kind so the dispatcher never has to guess it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union


class ElementKind(str, Enum):
    NODE = "node"
    WAY = "way"
    RELATION = "relation"

    @classmethod
    def from_type_char(cls, char: str) -> ElementKind:
        """Map pyosmium's one-letter type ("n", "w", "r") to a kind."""
        try:
            return _TYPE_CHARS[char]
        except KeyError:
            raise ValueError(f"Unknown OSM member type {char!r}") from None


_TYPE_CHARS = {
    "n": ElementKind.NODE,
    "w": ElementKind.WAY,
    "r": ElementKind.RELATION,
}

Tag = tuple[str, str]


@dataclass
class Node:
    id: int
    lat: float
    lon: float
    tags: list[Tag] = field(default_factory=list)

    kind: ClassVar[ElementKind] = ElementKind.NODE


@dataclass
class Way:
    id: int
    nodes: list[int] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)

    kind: ClassVar[ElementKind] = ElementKind.WAY


@dataclass
class Member:
    ref: int
    type: ElementKind
    role: str = ""


@dataclass
class Relation:
    id: int
    members: list[Member] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)

    kind: ClassVar[ElementKind] = ElementKind.RELATION


Element = Union[Node, Way, Relation]


@dataclass
class Batch:
    """
    A non-empty, ordered run of elements of a single kind.

    Raises ValueError when empty or when any element belongs to another kind.
    """

    kind: ElementKind
    elements: list[Element]

    def __post_init__(self) -> None:
        self.kind = ElementKind(self.kind)
        if not self.elements:
            raise ValueError(f"A {self.kind.value} batch must contain at least one element")
        for element in self.elements:
            if element.kind is not self.kind:
                raise ValueError(
                    f"{type(element).__name__} {element.id} in a {self.kind.value} batch"
                )

    def __len__(self) -> int:
        return len(self.elements)
