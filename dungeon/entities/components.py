from __future__ import annotations

from dataclasses import dataclass, field
from typing import Set


@dataclass(frozen=True)
class Position:
    """Spatial position on the map.

    Used as map coordinate, pathfinding node and visibility sample, so it is
    immutable and compares/hashes by value.
    """

    x: int
    y: int

    def __iter__(self):
        yield self.x
        yield self.y

    def manhattan(self, other: "Position") -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)


@dataclass
class Viewshed:
    """Visible tiles for an observer.

    ``dirty`` is raised by whoever moves the observer; the FOV update clears it
    after recomputing ``visible_tiles``.
    """

    distance: int
    visible_tiles: Set[Position] = field(default_factory=set)
    dirty: bool = True
