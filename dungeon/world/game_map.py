# dungeon/world/game_map.py
from __future__ import annotations

from enum import IntEnum
from typing import Final, Iterable, List, NamedTuple, Tuple

import numpy as np
import structlog

from dungeon.entities.components import Position
from dungeon.errors import InvalidDimensionsError

log = structlog.get_logger(__name__)


class TileKind(IntEnum):
    FLOOR = 0
    WALL = 1
    UNBREAKABLE_WALL = 2
    DOWN_STAIRS = 3
    UP_STAIRS = 4

    @property
    def is_blocker(self) -> bool:
        return TILE_TYPES[self].blocker

    @property
    def is_opaque(self) -> bool:
        return TILE_TYPES[self].opaque

    @classmethod
    def from_name(cls, name: str) -> "TileKind":
        """Parse ``"unbreakable_wall"`` / ``"UnbreakableWall"`` style names."""
        key = "".join(ch for ch in str(name) if ch.isalnum()).upper()
        for kind in cls:
            if kind.name.replace("_", "") == key:
                return kind
        raise ValueError(f"Unknown tile kind: {name!r}")


class TileType(NamedTuple):
    blocker: bool
    opaque: bool
    glyph: int
    color_fg: tuple[int, int, int]
    color_bg: tuple[int, int, int]


# Glyphs and colours are only here for renderers to look up.
TILE_TYPES: Final[dict[TileKind, TileType]] = {
    TileKind.FLOOR: TileType(
        blocker=False,
        opaque=False,
        glyph=ord("."),
        color_fg=(255, 255, 255),
        color_bg=(0, 0, 0),
    ),
    TileKind.WALL: TileType(
        blocker=True,
        opaque=True,
        glyph=ord("#"),
        color_fg=(255, 255, 255),
        color_bg=(0, 0, 0),
    ),
    TileKind.UNBREAKABLE_WALL: TileType(
        blocker=True,
        opaque=True,
        glyph=178,  # CP437 dark shade
        color_fg=(255, 255, 255),
        color_bg=(0, 0, 0),
    ),
    TileKind.DOWN_STAIRS: TileType(
        blocker=False,
        opaque=False,
        glyph=31,
        color_fg=(255, 255, 255),
        color_bg=(0, 0, 0),
    ),
    TileKind.UP_STAIRS: TileType(
        blocker=False,
        opaque=False,
        glyph=30,
        color_fg=(255, 255, 255),
        color_bg=(0, 0, 0),
    ),
}

# Lookup tables indexed by tile id, for vectorised mask building.
_BLOCKER_LUT: Final[np.ndarray] = np.array(
    [TILE_TYPES[kind].blocker for kind in TileKind], dtype=bool
)
_OPAQUE_LUT: Final[np.ndarray] = np.array(
    [TILE_TYPES[kind].opaque for kind in TileKind], dtype=bool
)

# N, S, E, W, NE, NW, SE, SW
ADJACENT_OFFSETS: Final[Tuple[Tuple[int, int], ...]] = (
    (0, 1),
    (0, -1),
    (1, 0),
    (-1, 0),
    (1, 1),
    (-1, 1),
    (1, -1),
    (-1, -1),
)


def get_glyph(kind: TileKind | int) -> int:
    """Return the display glyph code for ``kind``."""
    return TILE_TYPES[TileKind(kind)].glyph


def get_blocker_map(tiles: np.ndarray) -> np.ndarray:
    """Boolean array marking tiles whose kind blocks movement."""
    return _BLOCKER_LUT[tiles]


def get_opacity_map(tiles: np.ndarray) -> np.ndarray:
    """Boolean array marking tiles whose kind blocks sight."""
    return _OPAQUE_LUT[tiles]


class GameMap:
    def __init__(self, width: int, height: int):
        """
        Initializes the map with every cell set to floor.

        ``tiles`` is a ``(height, width)`` C-ordered array, so the flat offset
        of ``(x, y)`` in ``tiles.ravel()`` is ``width * y + x``.
        """
        if width <= 0 or height <= 0:
            log.error("Invalid map dimensions", width=width, height=height)
            raise InvalidDimensionsError(width, height)
        self._width = width
        self._height = height

        self.tiles: np.ndarray = np.full(
            (height, width), fill_value=TileKind.FLOOR, dtype=np.uint8, order="C"
        )
        # Tiles revealed at any point by an observer; never cleared here.
        self.ever_seen: np.ndarray = np.zeros((height, width), dtype=bool, order="C")
        # Static blockers plus live occupants, owned by the driver.
        self.blocking: np.ndarray = np.zeros((height, width), dtype=bool, order="C")
        self.history: List[np.ndarray] = []
        log.debug("GameMap arrays initialized", shape=(height, width))

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def copy(self) -> "GameMap":
        clone = GameMap.__new__(GameMap)
        clone._width = self._width
        clone._height = self._height
        clone.tiles = self.tiles.copy()
        clone.ever_seen = self.ever_seen.copy()
        clone.blocking = self.blocking.copy()
        clone.history = [frame.copy() for frame in self.history]
        return clone

    # --- Coordinate queries ---
    def index(self, x: int, y: int) -> int:
        """Flat row-major offset of ``(x, y)``. Callers check bounds first."""
        return self._width * y + x

    def in_bounds(self, x: int, y: int) -> bool:
        """Checks if the given coordinates are within the map boundaries."""
        return 0 <= x < self._width and 0 <= y < self._height

    def get_tile(self, x: int, y: int) -> TileKind:
        return TileKind(int(self.tiles[y, x]))

    def set_tile(self, x: int, y: int, kind: TileKind) -> None:
        self.tiles[y, x] = kind

    def is_opaque(self, x: int, y: int) -> bool:
        """True if the tile at (x, y) stops sight. Out of bounds counts as opaque."""
        if not self.in_bounds(x, y):
            return True
        return bool(_OPAQUE_LUT[self.tiles[y, x]])

    def is_blocker(self, x: int, y: int) -> bool:
        """True if (x, y) is blocked by a wall or an occupant.

        Reads the ``blocking`` layer rather than the tile kind, so it only
        reflects walls after :meth:`update_blocking` has run.
        """
        if not self.in_bounds(x, y):
            return True
        return bool(self.blocking[y, x])

    def blocks_movement(self, x: int, y: int) -> bool:
        """True if (x, y) holds a blocking tile kind or a live occupant.

        Unlike :meth:`is_blocker` this does not depend on the ``blocking``
        layer having been derived, so walls block on a freshly generated map.
        """
        if not self.in_bounds(x, y):
            return True
        return bool(_BLOCKER_LUT[self.tiles[y, x]] or self.blocking[y, x])

    # --- Mutation helpers used by generators ---
    def fill(self, kind: TileKind) -> None:
        self.tiles.fill(kind)

    def snapshot(self) -> None:
        self.history.append(self.tiles.copy())

    def clear_history(self) -> None:
        self.history.clear()

    def draw_rectangle(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        fill_kind: TileKind,
        border_kind: TileKind,
    ) -> None:
        """Paint a rectangle with a one cell border, clipping at the map edge."""
        for dx in range(width):
            for dy in range(height):
                tx, ty = x + dx, y + dy
                if not self.in_bounds(tx, ty):
                    continue
                on_border = dx == 0 or dx == width - 1 or dy == 0 or dy == height - 1
                self.tiles[ty, tx] = border_kind if on_border else fill_kind

    # --- Scans ---
    def tiles_of_kind(self, kind: TileKind) -> List[Position]:
        """All positions holding ``kind``, x-major. May be empty."""
        # Transposing gives (x, y) pairs ordered by x first.
        coords = np.argwhere(self.tiles.T == kind)
        return [Position(int(x), int(y)) for x, y in coords]

    def adjacent_tiles(self, x: int, y: int) -> List[Tuple[int, int, TileKind]]:
        res = []
        for dx, dy in ADJACENT_OFFSETS:
            nx, ny = x + dx, y + dy
            if not self.in_bounds(nx, ny):
                continue
            res.append((nx, ny, TileKind(int(self.tiles[ny, nx]))))
        return res

    def adjacent_count_of_kind(self, pos: Position | Tuple[int, int], kind: TileKind) -> int:
        x, y = pos
        return sum(1 for _, _, tile in self.adjacent_tiles(x, y) if tile == kind)

    # --- Driver-owned layers ---
    def update_blocking(self, occupied: Iterable[Position | Tuple[int, int]] = ()) -> None:
        """Rebuild ``blocking`` from tile kinds plus the given occupant positions."""
        blocking = get_blocker_map(self.tiles)
        skipped = 0
        for x, y in occupied:
            if self.in_bounds(x, y):
                blocking[y, x] = True
            else:
                skipped += 1
        if skipped:
            log.warning("Ignored out of bounds occupants", count=skipped)
        self.blocking = blocking

    def reveal(self, positions: Iterable[Position | Tuple[int, int]]) -> None:
        """Mark positions as seen. Monotonic: nothing is ever un-seen."""
        for x, y in positions:
            if self.in_bounds(x, y):
                self.ever_seen[y, x] = True
