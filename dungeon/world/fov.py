# dungeon/world/fov.py
"""
Field of View (FOV) calculations.

Radial ray casting: 120 rays, one every 3 degrees, are marched outward from
the centre of the observer's cell one unit per step.  A ray marks each cell it
samples as visible and stops on the first opaque cell (which is itself
visible) or when it leaves the map.  The marching loop is Numba-compiled.
"""

import math
import time
from typing import Set

import numba
import numpy as np
import structlog

from dungeon.entities.components import Position, Viewshed
from dungeon.world.game_map import GameMap, get_opacity_map

log = structlog.get_logger(__name__)

# --- Configuration Constants ---
RAY_ANGLE_STEP_DEGREES: int = 3
RAY_COUNT: int = 360 // RAY_ANGLE_STEP_DEGREES


@numba.njit(cache=True)
def _cast_rays(
    opaque_grid: np.ndarray,
    origin_x: int,
    origin_y: int,
    max_distance: int,
    angle_step_degrees: int,
    visible_grid: np.ndarray,
) -> None:
    """March one ray per angle step and mark sampled cells in ``visible_grid``."""
    height, width = opaque_grid.shape
    for angle in range(0, 360, angle_step_degrees):
        radians = angle * math.pi / 180.0
        step_x = math.cos(radians)
        step_y = math.sin(radians)

        fx = origin_x + 0.5
        fy = origin_y + 0.5
        for _ in range(max_distance):
            # int() truncates toward zero: samples in (-1, 0) land on the edge cell.
            cx = int(fx)
            cy = int(fy)
            if cx < 0 or cy < 0 or cx >= width or cy >= height:
                break
            visible_grid[cy, cx] = True
            if opaque_grid[cy, cx]:
                break
            fx += step_x
            fy += step_y


def compute_visible(game_map: GameMap, origin: Position, max_distance: int) -> Set[Position]:
    """Return the cells visible from ``origin`` and record them as seen.

    The origin is always visible.  Cells marked here stay set in
    ``game_map.ever_seen`` for the rest of the session.
    """
    func_log = log.bind(origin=tuple(origin), max_distance=max_distance)
    ox, oy = origin
    if not game_map.in_bounds(ox, oy):
        func_log.warning("FOV origin out of bounds")
        return set()

    start_time = time.perf_counter()
    visible_grid = np.zeros((game_map.height, game_map.width), dtype=np.bool_)
    visible_grid[oy, ox] = True
    if max_distance > 0:
        _cast_rays(
            get_opacity_map(game_map.tiles),
            ox,
            oy,
            int(max_distance),
            RAY_ANGLE_STEP_DEGREES,
            visible_grid,
        )

    game_map.ever_seen |= visible_grid
    visible = {Position(int(x), int(y)) for y, x in np.argwhere(visible_grid)}

    duration_ms = (time.perf_counter() - start_time) * 1000
    func_log.debug(
        "FOV computation finished",
        duration_ms=f"{duration_ms:.2f}",
        visible_count=len(visible),
    )
    return visible


def update_viewshed(game_map: GameMap, origin: Position, viewshed: Viewshed) -> bool:
    """Recompute ``viewshed`` from ``origin`` if it is dirty.

    Returns ``True`` when a recomputation happened.
    """
    if not viewshed.dirty:
        return False
    viewshed.visible_tiles = compute_visible(game_map, origin, viewshed.distance)
    viewshed.dirty = False
    return True
