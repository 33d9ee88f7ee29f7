"""Field paths.

A path is an immutable tuple of segments appended by each recursive
descent step. Rendering: ``user.email`` for named fields, ``point.1`` for
tuple positions, ``tags[1]`` for iterable elements, ``$`` for the root.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class SegmentKind(str, Enum):
    FIELD = "field"
    POSITION = "position"
    ELEMENT = "element"


@dataclass(frozen=True, slots=True)
class PathSegment:
    kind: SegmentKind
    key: str | int

    @classmethod
    def field(cls, name: str) -> PathSegment: return cls(SegmentKind.FIELD, name)

    @classmethod
    def position(cls, index: int) -> PathSegment: return cls(SegmentKind.POSITION, index)

    @classmethod
    def element(cls, index: int) -> PathSegment: return cls(SegmentKind.ELEMENT, index)

    def __str__(self) -> str:
        return f"[{self.key}]" if self.kind is SegmentKind.ELEMENT else str(self.key)


FieldPath = tuple[PathSegment, ...]

ROOT: FieldPath = ()


def render_path(path: Sequence[PathSegment]) -> str:
    """Format a path as dotted/bracketed notation."""
    if not path: return "$"
    parts: list[str] = []
    for segment in path:
        if segment.kind is SegmentKind.ELEMENT: parts.append(str(segment))
        elif parts: parts.append(f".{segment}")
        else: parts.append(str(segment))
    return "".join(parts)
