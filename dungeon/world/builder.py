"""Map builder pipeline.

A :class:`MapBuilder` owns one :class:`GameMap` and runs it through an ordered
list of :class:`MapGenerator` stages.  Every stage works on its own copy of the
map and hands back the grid it produced; the builder collects the snapshots
each stage took so the whole generation can be replayed step by step.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import numpy as np
import structlog

from dungeon.entities.components import Position
from dungeon.errors import GenerationError
from dungeon.world.game_map import GameMap
from game_rng import GameRNG

log = structlog.get_logger(__name__)


class MapGenerator:
    """A single generation stage.

    Subclasses override :meth:`generate` to transform the map they are given,
    and :meth:`get_player_spawn` if they want to propose a start position.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def generate(self, game_map: GameMap, rng: GameRNG) -> GameMap:
        return game_map

    def get_player_spawn(self, game_map: GameMap, rng: GameRNG) -> Optional[Position]:
        return None


class MapBuilder:
    def __init__(self, width: int, height: int, rng: GameRNG) -> None:
        self._map = GameMap(width, height)
        self._spawn_position = Position(0, 0)
        self._history: List[np.ndarray] = []
        self.rng = rng

    def with_generator(self, generator: MapGenerator) -> "MapBuilder":
        """Apply ``generator`` to the current map and keep its result."""
        stage_log = log.bind(stage=generator.name)
        stage_log.debug("Running generator stage")
        try:
            new_map = generator.generate(self._map.copy(), self.rng)
            frames = list(new_map.history)
            new_map.clear_history()
            spawn = generator.get_player_spawn(new_map, self.rng)
        except GenerationError as e:
            if e.stage is None:
                e.stage = generator.name
            stage_log.error("Generator stage failed", error=str(e))
            raise

        # Only commit once the whole stage succeeded.
        self._history.extend(frames)
        self._map = new_map
        if spawn is not None:
            self._spawn_position = spawn
            stage_log.debug("Spawn position updated", spawn=tuple(spawn))
        stage_log.info("Generator stage finished", history_len=len(self._history))
        return self

    def build(self, generators: Iterable[MapGenerator]) -> "MapBuilder":
        for generator in generators:
            self.with_generator(generator)
        return self

    def get_map(self) -> GameMap:
        return self._map

    def get_spawn_position(self) -> Position:
        return self._spawn_position

    def get_history(self) -> List[np.ndarray]:
        return list(self._history)


def finalise_map(
    game_map: GameMap, occupied: Iterable[Position | Tuple[int, int]] = ()
) -> GameMap:
    """Prepare a generated map for play.

    Drops the (possibly long) snapshot history and derives the blocking layer
    from wall tiles plus any occupant positions the driver already knows.
    """
    game_map.clear_history()
    game_map.update_blocking(occupied)
    log.info(
        "Map finalised",
        width=game_map.width,
        height=game_map.height,
        blocking=int(np.count_nonzero(game_map.blocking)),
    )
    return game_map
