# dungeon/world/procgen.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Type, Union

import numpy as np
import structlog

from dungeon.entities.components import Position
from dungeon.errors import ConfigError, GenerationError, NoCandidateTilesError
from dungeon.world.builder import MapBuilder, MapGenerator
from dungeon.world.game_map import GameMap, TileKind
from game_rng import GameRNG

log = structlog.get_logger(__name__)

# --- Configuration ---
DEFAULT_BSP_DEPTH = 4
SPLIT_MIN_FRACTION = 0.3
SPLIT_MAX_FRACTION = 0.7
MIN_SPLIT_ASPECT_RATIO = 0.4
ROOM_INSET_DIVISOR = 3

SPLIT_HORIZONTAL = 0  # cut across the height
SPLIT_VERTICAL = 1  # cut across the width

CARDINAL_DIRECTIONS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (0, -1), (-1, 0))


class Rect(NamedTuple):
    """A rectangle on the map, anchored at its top-left cell."""

    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    @property
    def aspect_ratio(self) -> float:
        """Short side over long side; 0 for an empty rectangle."""
        long_side = max(self.width, self.height)
        if long_side <= 0 or min(self.width, self.height) <= 0:
            return 0.0
        return min(self.width, self.height) / long_side

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def cells(self) -> List[Tuple[int, int]]:
        """Every cell of the rectangle, x-major."""
        return [
            (cx, cy)
            for cx in range(self.x, self.x + self.width)
            for cy in range(self.y, self.y + self.height)
        ]


class BSPNode:
    """Represents a node in the BSP tree."""

    def __init__(self, rect: Rect):
        self.rect: Rect = rect
        self.left: Union[BSPNode, None] = None
        self.right: Union[BSPNode, None] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def get_leaves(self) -> Iterator["BSPNode"]:
        if self.is_leaf:
            yield self
        else:
            if self.left:
                yield from self.left.get_leaves()
            if self.right:
                yield from self.right.get_leaves()


def _cut(rect: Rect, axis: int, offset: int) -> Tuple[Rect, Rect]:
    if axis == SPLIT_HORIZONTAL:
        first = Rect(rect.x, rect.y, rect.width, offset)
        second = Rect(rect.x, rect.y + offset, rect.width, rect.height - offset)
    else:
        first = Rect(rect.x, rect.y, offset, rect.height)
        second = Rect(rect.x + offset, rect.y, rect.width - offset, rect.height)
    return first, second


def _offset_range(rect: Rect, axis: int) -> Tuple[int, int]:
    extent = rect.height if axis == SPLIT_HORIZONTAL else rect.width
    return int(SPLIT_MIN_FRACTION * extent), int(SPLIT_MAX_FRACTION * extent)


def _is_acceptable(halves: Tuple[Rect, Rect]) -> bool:
    return all(half.aspect_ratio >= MIN_SPLIT_ASPECT_RATIO for half in halves)


def _can_split(rect: Rect) -> bool:
    for axis in (SPLIT_HORIZONTAL, SPLIT_VERTICAL):
        low, high = _offset_range(rect, axis)
        if any(_is_acceptable(_cut(rect, axis, offset)) for offset in range(low, high + 1)):
            return True
    return False


def _split_random(rect: Rect, rng: GameRNG) -> Optional[Tuple[Rect, Rect]]:
    """Split ``rect`` at a random axis and offset, retrying slivers.

    Returns ``None`` for rectangles no offset in range can split acceptably;
    otherwise the retry loop is guaranteed to find one eventually.
    """
    if not _can_split(rect):
        return None
    attempts = 0
    while True:
        attempts += 1
        axis = rng.get_int(SPLIT_HORIZONTAL, SPLIT_VERTICAL)
        low, high = _offset_range(rect, axis)
        halves = _cut(rect, axis, rng.get_int(low, high))
        if _is_acceptable(halves):
            if attempts > 1:
                log.debug("Split accepted after retries", rect=rect, attempts=attempts)
            return halves


def _split_node_recursive(node: BSPNode, rng: GameRNG, depth: int) -> None:
    if depth <= 0:
        return
    halves = _split_random(node.rect, rng)
    if halves is None:
        log.debug("Split skipped: no acceptable offset", rect=node.rect, depth=depth)
        return
    node.left = BSPNode(halves[0])
    node.right = BSPNode(halves[1])
    _split_node_recursive(node.left, rng, depth - 1)
    _split_node_recursive(node.right, rng, depth - 1)


def _room_in_leaf(leaf: Rect, rng: GameRNG) -> Rect:
    room_x = leaf.x + rng.get_int(0, leaf.width // ROOM_INSET_DIVISOR)
    room_y = leaf.y + rng.get_int(0, leaf.height // ROOM_INSET_DIVISOR)
    remaining_w = leaf.width - (room_x - leaf.x)
    remaining_h = leaf.height - (room_y - leaf.y)
    room_w = remaining_w - rng.get_int(0, remaining_w // ROOM_INSET_DIVISOR)
    room_h = remaining_h - rng.get_int(0, remaining_h // ROOM_INSET_DIVISOR)
    return Rect(room_x, room_y, room_w, room_h)


def _carve_corridor(game_map: GameMap, previous: Rect, current: Rect, rng: GameRNG) -> str:
    """Join two rooms with a straight corridor if they share a column or row,
    otherwise with a dog-leg. Returns the corridor shape for logging."""
    current_cells = current.cells()
    previous_cells = previous.cells()

    x_pairs: List[Tuple[Tuple[int, int], Tuple[int, int]]] = []
    y_pairs: List[Tuple[Tuple[int, int], Tuple[int, int]]] = []
    for cur in current_cells:
        for prev in previous_cells:
            if cur[0] == prev[0]:
                x_pairs.append((cur, prev))
            if cur[1] == prev[1]:
                y_pairs.append((cur, prev))

    if x_pairs:
        a, b = rng.choice(x_pairs)
        low, high = (a, b) if a[1] < b[1] else (b, a)
        game_map.draw_rectangle(low[0], low[1], 1, high[1] - low[1], TileKind.FLOOR, TileKind.FLOOR)
        return "vertical"
    if y_pairs:
        a, b = rng.choice(y_pairs)
        low, high = (a, b) if a[0] < b[0] else (b, a)
        game_map.draw_rectangle(low[0], low[1], high[0] - low[0], 1, TileKind.FLOOR, TileKind.FLOOR)
        return "horizontal"

    cur_x, cur_y = rng.choice(current_cells)
    prev_x, prev_y = rng.choice(previous_cells)
    # Horizontal leg along the previous room's row, vertical leg down the
    # current room's column; both include the corner (cur_x, prev_y).
    game_map.draw_rectangle(
        min(prev_x, cur_x), prev_y, abs(cur_x - prev_x) + 1, 1, TileKind.FLOOR, TileKind.FLOOR
    )
    game_map.draw_rectangle(
        cur_x, min(prev_y, cur_y), 1, abs(cur_y - prev_y) + 1, TileKind.FLOOR, TileKind.FLOOR
    )
    return "dog-leg"


# --- Generator stages ---


@dataclass
class FillGenerator(MapGenerator):
    """Set every cell to ``tile``."""

    tile: TileKind = TileKind.UNBREAKABLE_WALL

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        game_map.fill(self.tile)
        game_map.snapshot()
        log.debug("Filled map", tile=self.tile.name)
        return game_map


@dataclass
class BSPRoomGenerator(MapGenerator):
    """Rooms in the leaves of a binary space partition, chained by corridors.

    The usable area is the map inset by one cell, so rooms and corridors never
    reach the outer border.  ``depth`` levels of splitting give at most
    ``2 ** depth`` rooms.
    """

    depth: int = DEFAULT_BSP_DEPTH
    last_rooms: List[Rect] = field(default_factory=list, init=False, repr=False)

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        root = BSPNode(Rect(1, 1, game_map.width - 2, game_map.height - 2))
        if root.rect.aspect_ratio == 0.0:
            log.error("Map too small for BSP rooms", width=game_map.width, height=game_map.height)
            raise GenerationError(
                f"Map {game_map.width}x{game_map.height} leaves no interior for rooms",
                stage=self.name,
            )

        log.info("Splitting BSP tree...", root=root.rect, depth=self.depth)
        _split_node_recursive(root, rng, self.depth)
        leaves = [leaf.rect for leaf in root.get_leaves()]

        rooms: List[Rect] = []
        corridor_shapes: Dict[str, int] = {}
        for area in leaves:
            room = _room_in_leaf(area, rng)
            rooms.append(room)
            game_map.draw_rectangle(
                room.x, room.y, room.width, room.height, TileKind.FLOOR, TileKind.FLOOR
            )
            game_map.snapshot()
            log.debug("Carved room", room=room, leaf=area)

            if len(rooms) > 1:
                shape = _carve_corridor(game_map, rooms[-2], room, rng)
                corridor_shapes[shape] = corridor_shapes.get(shape, 0) + 1
                game_map.snapshot()

        self.last_rooms = rooms
        log.info("Rooms carved", count=len(rooms), corridors=corridor_shapes)
        return game_map


@dataclass
class DrunkardsWalkGenerator(MapGenerator):
    """Erode the map with random walkers.

    Each drunkard starts on a random ``start_tile`` cell and wanders for
    ``lifetime`` steps, turning every cell it enters into floor.  Steps that
    would leave the map are dropped and the walker tries again next turn.
    """

    num_drunkards: int = 10
    lifetime: int = 100
    start_tile: TileKind = TileKind.UNBREAKABLE_WALL

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        for drunkard in range(self.num_drunkards):
            candidates = game_map.tiles_of_kind(self.start_tile)
            if not candidates:
                log.error(
                    "Drunkard has nowhere to start",
                    drunkard=drunkard,
                    start_tile=self.start_tile.name,
                )
                raise NoCandidateTilesError(self.start_tile, stage=self.name)

            x, y = rng.choice(candidates)
            game_map.set_tile(x, y, TileKind.FLOOR)
            game_map.snapshot()

            for _ in range(self.lifetime):
                dx, dy = CARDINAL_DIRECTIONS[rng.get_randrange(0, len(CARDINAL_DIRECTIONS))]
                nx, ny = x + dx, y + dy
                if not game_map.in_bounds(nx, ny):
                    continue
                x, y = nx, ny
                game_map.set_tile(x, y, TileKind.FLOOR)
            game_map.snapshot()
            log.debug("Drunkard finished", drunkard=drunkard, end=(x, y))
        return game_map


@dataclass
class SymmetryGenerator(MapGenerator):
    """Mirror the map about its vertical and/or horizontal centre line."""

    horizontal: bool = True
    vertical: bool = False

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        tiles = game_map.tiles
        if self.horizontal:
            mid = game_map.width // 2
            # column x takes column 2*mid - x - 1
            tiles[:, :mid] = tiles[:, mid : 2 * mid][:, ::-1]
            game_map.snapshot()
        if self.vertical:
            mid = game_map.height // 2
            tiles[:mid, :] = tiles[mid : 2 * mid, :][::-1, :]
            game_map.snapshot()
        return game_map


@dataclass
class ReplaceVisibleWallsWithBreakableGenerator(MapGenerator):
    """Turn unbreakable walls that touch floor into breakable walls.

    Walls with no floor among their eight neighbours stay unbreakable and form
    the solid shell around the playable area.
    """

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        replaced = 0
        for x, y in game_map.tiles_of_kind(TileKind.UNBREAKABLE_WALL):
            if game_map.adjacent_count_of_kind((x, y), TileKind.FLOOR) > 0:
                game_map.set_tile(x, y, TileKind.WALL)
                replaced += 1
        game_map.snapshot()
        log.debug("Replaced visible walls", count=replaced)
        return game_map


@dataclass
class RandomFreeSpaceSpawn(MapGenerator):
    """Leave the tiles alone and propose a random floor cell as the spawn."""

    def get_player_spawn(self, game_map: GameMap, rng: GameRNG) -> Optional[Position]:
        floors = game_map.tiles_of_kind(TileKind.FLOOR)
        if not floors:
            log.error("No floor to spawn on")
            raise NoCandidateTilesError(TileKind.FLOOR, stage=self.name)
        return rng.choice(floors)


# --- Stage registry ---

STAGE_TYPES: Dict[str, Type[MapGenerator]] = {
    "fill": FillGenerator,
    "bsp_rooms": BSPRoomGenerator,
    "drunkards_walk": DrunkardsWalkGenerator,
    "symmetry": SymmetryGenerator,
    "replace_visible_walls": ReplaceVisibleWallsWithBreakableGenerator,
    "random_spawn": RandomFreeSpaceSpawn,
}

_TILE_PARAMS = ("tile", "start_tile")


def create_generator(stage_config: Mapping[str, Any]) -> MapGenerator:
    """Build a stage from a config mapping such as ``{"type": "fill", "tile": "floor"}``."""
    params = dict(stage_config)
    stage_type = params.pop("type", None)
    if stage_type not in STAGE_TYPES:
        raise ConfigError(
            f"Unknown generator stage {stage_type!r}; expected one of {sorted(STAGE_TYPES)}"
        )
    for key in _TILE_PARAMS:
        if key in params:
            try:
                params[key] = TileKind.from_name(params[key])
            except ValueError as e:
                raise ConfigError(f"{stage_type}: {e}") from e
    try:
        return STAGE_TYPES[stage_type](**params)
    except TypeError as e:
        raise ConfigError(f"Invalid parameters for stage {stage_type!r}: {e}") from e


def standard_stages(bsp_depth: int = DEFAULT_BSP_DEPTH) -> List[MapGenerator]:
    """Walled shell, BSP rooms, breakable inner walls, random spawn."""
    return [
        FillGenerator(TileKind.UNBREAKABLE_WALL),
        BSPRoomGenerator(depth=bsp_depth),
        ReplaceVisibleWallsWithBreakableGenerator(),
        RandomFreeSpaceSpawn(),
    ]


class GenerationResult(NamedTuple):
    game_map: GameMap
    spawn: Position
    history: List[np.ndarray]


def generate_dungeon(
    map_width: int,
    map_height: int,
    seed: int | None = None,
    stages: Optional[Sequence[MapGenerator]] = None,
    rng: GameRNG | None = None,
) -> GenerationResult:
    """Entry point for dungeon generation.

    Runs ``stages`` (the standard pipeline when omitted) with a freshly seeded
    :class:`GameRNG` unless one is supplied.
    """
    if rng is None:
        rng = GameRNG(seed=seed)
    if stages is None:
        stages = standard_stages()

    log.info(
        "Starting dungeon generation",
        width=map_width,
        height=map_height,
        seed=rng.initial_seed,
        stages=[stage.name for stage in stages],
    )
    builder = MapBuilder(map_width, map_height, rng).build(stages)
    result = GenerationResult(
        game_map=builder.get_map(),
        spawn=builder.get_spawn_position(),
        history=builder.get_history(),
    )
    log.info(
        "Dungeon generation complete",
        player_start=tuple(result.spawn),
        snapshots=len(result.history),
    )
    return result
