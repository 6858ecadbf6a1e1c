import numpy as np
import pytest

from dungeon.entities.components import Position
from dungeon.errors import GenerationError, InvalidDimensionsError
from dungeon.world.game_map import (
    GameMap,
    TileKind,
    get_blocker_map,
    get_glyph,
    get_opacity_map,
)


def test_new_map_is_all_floor_with_empty_layers():
    game_map = GameMap(width=6, height=4)
    assert game_map.tiles.shape == (4, 6)
    assert np.all(game_map.tiles == TileKind.FLOOR)
    assert not game_map.ever_seen.any()
    assert not game_map.blocking.any()
    assert game_map.history == []


@pytest.mark.parametrize("width,height", [(0, 5), (5, 0), (-1, 3)])
def test_invalid_dimensions_raise(width, height):
    with pytest.raises(InvalidDimensionsError) as excinfo:
        GameMap(width, height)
    assert isinstance(excinfo.value, GenerationError)
    assert isinstance(excinfo.value, ValueError)


def test_index_is_row_major():
    game_map = GameMap(width=10, height=5)
    assert game_map.index(0, 0) == 0
    assert game_map.index(3, 2) == 23
    game_map.set_tile(3, 2, TileKind.WALL)
    assert game_map.tiles.ravel()[game_map.index(3, 2)] == TileKind.WALL


def test_in_bounds_edges():
    game_map = GameMap(width=3, height=2)
    assert game_map.in_bounds(0, 0)
    assert game_map.in_bounds(2, 1)
    assert not game_map.in_bounds(3, 0)
    assert not game_map.in_bounds(0, 2)
    assert not game_map.in_bounds(-1, 0)


def test_tile_properties_and_glyphs():
    assert TileKind.WALL.is_blocker and TileKind.WALL.is_opaque
    assert TileKind.UNBREAKABLE_WALL.is_blocker and TileKind.UNBREAKABLE_WALL.is_opaque
    for kind in (TileKind.FLOOR, TileKind.DOWN_STAIRS, TileKind.UP_STAIRS):
        assert not kind.is_blocker and not kind.is_opaque
    assert get_glyph(TileKind.FLOOR) == ord(".")
    assert get_glyph(TileKind.WALL) == ord("#")
    assert get_glyph(TileKind.UNBREAKABLE_WALL) == 178
    assert get_glyph(TileKind.DOWN_STAIRS) == 31
    assert get_glyph(TileKind.UP_STAIRS) == 30


def test_tile_kind_from_name():
    assert TileKind.from_name("unbreakable_wall") is TileKind.UNBREAKABLE_WALL
    assert TileKind.from_name("UnbreakableWall") is TileKind.UNBREAKABLE_WALL
    assert TileKind.from_name("floor") is TileKind.FLOOR
    with pytest.raises(ValueError):
        TileKind.from_name("lava")


def test_blocker_and_opacity_maps():
    game_map = GameMap(width=3, height=1)
    game_map.set_tile(0, 0, TileKind.WALL)
    game_map.set_tile(2, 0, TileKind.UP_STAIRS)
    assert get_blocker_map(game_map.tiles).tolist() == [[True, False, False]]
    assert get_opacity_map(game_map.tiles).tolist() == [[True, False, False]]


def test_draw_rectangle_border_and_fill():
    game_map = GameMap(width=5, height=5)
    game_map.draw_rectangle(0, 0, 5, 5, TileKind.FLOOR, TileKind.WALL)
    assert game_map.get_tile(0, 0) == TileKind.WALL
    assert game_map.get_tile(4, 2) == TileKind.WALL
    assert game_map.get_tile(2, 2) == TileKind.FLOOR
    assert np.count_nonzero(game_map.tiles == TileKind.WALL) == 16


def test_draw_rectangle_clips_at_edge():
    game_map = GameMap(width=4, height=4)
    game_map.draw_rectangle(2, 2, 10, 10, TileKind.WALL, TileKind.WALL)
    assert np.count_nonzero(game_map.tiles == TileKind.WALL) == 4
    game_map.draw_rectangle(-3, -3, 2, 2, TileKind.UP_STAIRS, TileKind.UP_STAIRS)
    assert not np.any(game_map.tiles == TileKind.UP_STAIRS)


def test_tiles_of_kind_is_x_major_and_may_be_empty():
    game_map = GameMap(width=3, height=3)
    assert game_map.tiles_of_kind(TileKind.WALL) == []
    game_map.set_tile(2, 0, TileKind.WALL)
    game_map.set_tile(0, 2, TileKind.WALL)
    game_map.set_tile(0, 1, TileKind.WALL)
    assert game_map.tiles_of_kind(TileKind.WALL) == [
        Position(0, 1),
        Position(0, 2),
        Position(2, 0),
    ]


def test_adjacent_tiles_interior_and_corner():
    game_map = GameMap(width=3, height=3)
    assert len(game_map.adjacent_tiles(1, 1)) == 8
    corner = game_map.adjacent_tiles(0, 0)
    assert sorted((x, y) for x, y, _ in corner) == [(0, 1), (1, 0), (1, 1)]


def test_adjacent_count_of_kind():
    game_map = GameMap(width=3, height=3)
    game_map.fill(TileKind.WALL)
    game_map.set_tile(1, 1, TileKind.FLOOR)
    assert game_map.adjacent_count_of_kind((0, 0), TileKind.FLOOR) == 1
    assert game_map.adjacent_count_of_kind(Position(1, 1), TileKind.FLOOR) == 0
    assert game_map.adjacent_count_of_kind((1, 1), TileKind.WALL) == 8


def test_copy_is_independent():
    game_map = GameMap(width=4, height=4)
    game_map.snapshot()
    clone = game_map.copy()
    clone.set_tile(1, 1, TileKind.WALL)
    clone.snapshot()
    assert game_map.get_tile(1, 1) == TileKind.FLOOR
    assert len(game_map.history) == 1
    assert len(clone.history) == 2


def test_snapshot_copies_tiles():
    game_map = GameMap(width=2, height=2)
    game_map.snapshot()
    game_map.set_tile(0, 0, TileKind.WALL)
    assert game_map.history[0][0, 0] == TileKind.FLOOR
    game_map.clear_history()
    assert game_map.history == []


def test_update_blocking_marks_walls_and_occupants():
    game_map = GameMap(width=4, height=3)
    game_map.set_tile(0, 0, TileKind.WALL)
    assert not game_map.is_blocker(0, 0)  # nothing derived yet

    game_map.update_blocking([Position(2, 1), (3, 2), (9, 9)])
    assert game_map.is_blocker(0, 0)
    assert game_map.is_blocker(2, 1)
    assert game_map.is_blocker(3, 2)
    assert not game_map.is_blocker(1, 1)

    game_map.update_blocking()
    assert not game_map.is_blocker(2, 1)
    assert game_map.is_blocker(0, 0)


def test_out_of_bounds_counts_as_blocked_and_opaque():
    game_map = GameMap(width=2, height=2)
    assert game_map.is_blocker(-1, 0)
    assert game_map.is_opaque(2, 0)
    assert not game_map.is_opaque(1, 1)


def test_reveal_is_monotonic():
    game_map = GameMap(width=3, height=3)
    game_map.reveal([Position(0, 0), (2, 2), (5, 5)])
    game_map.reveal([(1, 1)])
    assert game_map.ever_seen[0, 0]
    assert game_map.ever_seen[2, 2]
    assert game_map.ever_seen[1, 1]
    assert np.count_nonzero(game_map.ever_seen) == 3


def test_blocks_movement_reads_tiles_and_occupants():
    game_map = GameMap(width=4, height=2)
    game_map.set_tile(0, 0, TileKind.UNBREAKABLE_WALL)
    assert game_map.blocks_movement(0, 0)
    assert not game_map.is_blocker(0, 0)
    assert not game_map.blocks_movement(1, 0)
    assert game_map.blocks_movement(4, 0)

    game_map.update_blocking([(1, 0)])
    assert game_map.blocks_movement(1, 0)
