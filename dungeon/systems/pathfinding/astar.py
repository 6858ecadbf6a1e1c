# dungeon/systems/pathfinding/astar.py
from typing import Dict, Final, Iterator, List, Optional, Tuple

import heapq
import itertools

import structlog

from dungeon.entities.components import Position
from dungeon.world.game_map import ADJACENT_OFFSETS, GameMap

log = structlog.get_logger(__name__)

# Every accepted step costs the same, diagonals included.
STEP_COST: Final[int] = 1

PathResult = Tuple[List[Position], int]


def _successors(
    game_map: GameMap, node: Position, start: Position, goal: Position
) -> Iterator[Position]:
    """In-bounds 8-neighbours of ``node`` that are neither walls nor occupied.

    The start and goal cells are always enterable, so a search can begin on
    or aim at an occupied tile without passing through any other blocker.
    """
    for dx, dy in ADJACENT_OFFSETS:
        nx, ny = node.x + dx, node.y + dy
        if not game_map.in_bounds(nx, ny):
            continue
        neighbour = Position(nx, ny)
        if game_map.blocks_movement(nx, ny) and neighbour != start and neighbour != goal:
            continue
        yield neighbour


def _reconstruct(came_from: Dict[Position, Position], node: Position) -> List[Position]:
    path = [node]
    while node in came_from:
        node = came_from[node]
        path.append(node)
    path.reverse()
    return path


def find_path(game_map: GameMap, start: Position, goal: Position) -> Optional[PathResult]:
    """A* search from ``start`` to ``goal``.

    Returns ``(path, cost)`` with both endpoints included in ``path``, or
    ``None`` if the goal cannot be reached.  Ties in the open set are settled
    by insertion order and carry no meaning.

    The Manhattan heuristic overestimates when diagonal steps cost 1, so the
    path is valid but not guaranteed to be the shortest one.  Wall tiles block
    whether or not the map's ``blocking`` layer has been derived yet.
    """
    if not game_map.in_bounds(*start) or not game_map.in_bounds(*goal):
        log.warning("Path endpoint out of bounds", start=tuple(start), goal=tuple(goal))
        return None

    counter = itertools.count()
    best_cost: Dict[Position, int] = {start: 0}
    came_from: Dict[Position, Position] = {}
    pq = [(start.manhattan(goal), 0, next(counter), start)]  # Min-heap: [(f, g, seq, node)]

    expanded = 0
    while pq:
        _, cost, _, node = heapq.heappop(pq)
        if node == goal:
            log.debug("Path found", start=tuple(start), goal=tuple(goal), cost=cost, expanded=expanded)
            return _reconstruct(came_from, node), cost
        if cost > best_cost[node]:
            continue
        expanded += 1

        for neighbour in _successors(game_map, node, start, goal):
            new_cost = cost + STEP_COST
            if new_cost < best_cost.get(neighbour, new_cost + 1):
                best_cost[neighbour] = new_cost
                came_from[neighbour] = node
                heapq.heappush(
                    pq, (new_cost + neighbour.manhattan(goal), new_cost, next(counter), neighbour)
                )

    log.debug("No path", start=tuple(start), goal=tuple(goal), expanded=expanded)
    return None


def next_step(game_map: GameMap, start: Position, goal: Position) -> Optional[Position]:
    """First move from ``start`` towards ``goal``, if the cell is free.

    Mirrors how a chasing monster moves: it plans the whole path but only
    takes the first step, and waits if that cell is currently blocked (for
    example when the goal itself is the occupied target).
    """
    result = find_path(game_map, start, goal)
    if result is None:
        return None
    path, _ = result
    if len(path) < 2:
        return None
    step = path[1]
    if game_map.blocks_movement(step.x, step.y):
        return None
    return step


def plan_waypoints(game_map: GameMap, start: Position, goal: Position) -> List[Position]:
    """Cells to walk through from ``start`` to ``goal``, excluding ``start``."""
    result = find_path(game_map, start, goal)
    if result is None:
        return []
    return result[0][1:]
