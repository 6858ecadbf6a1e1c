# main.py
import sys
import time
from pathlib import Path

import structlog

from dungeon.config import load_generation_config
from dungeon.entities.components import Viewshed
from dungeon.errors import ConfigError, GenerationError
from dungeon.systems.pathfinding import plan_waypoints
from dungeon.world.builder import finalise_map
from dungeon.world.fov import update_viewshed
from dungeon.world.game_map import GameMap, TileKind, get_glyph
from dungeon.world.procgen import generate_dungeon
from utils.logging_utils import setup_logging

# --- Paths relative to this script's location ---
SCRIPT_DIR = Path(__file__).parent.resolve()
CONFIG_DIR = SCRIPT_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

log = structlog.get_logger()


def _glyph_char(tile_id: int) -> str:
    code = get_glyph(tile_id)
    # Stairs and the shaded wall are CP437 codes; fall back to ASCII on a plain terminal.
    if code < 32:
        return ">" if tile_id == TileKind.DOWN_STAIRS else "<"
    if code > 126:
        return "%"
    return chr(code)


def print_map_section(game_map: GameMap, center_x: int, center_y: int, radius: int = 5) -> None:
    """Prints a section of the map centered around (x, y) to the console."""
    y_min = max(0, center_y - radius)
    y_max = min(game_map.height, center_y + radius + 1)
    x_min = max(0, center_x - radius)
    x_max = min(game_map.width, center_x + radius + 1)
    print(f"\n--- Map Section around ({center_x},{center_y}) ---")
    header = "   " + "".join(f"{x:<3}" for x in range(x_min, x_max))
    print(header)
    print("  " + "-" * (len(header) - 2))
    for y in range(y_min, y_max):
        row_str = f"{y:<2}|"
        for x in range(x_min, x_max):
            char = _glyph_char(int(game_map.tiles[y, x]))
            if x == center_x and y == center_y:
                row_str += f"[{char}]"
            else:
                row_str += f" {char} "
        print(row_str)
    print("------------------------------------\n")


def main(config_path: Path = CONFIG_FILE) -> int:
    """Generate one dungeon from the config file and report on it."""
    try:
        config = load_generation_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        setup_logging()
        log.error("Could not load configuration", path=str(config_path), error=str(e))
        return 1

    setup_logging(config.log_level)
    log.info("Application starting...", config=str(config_path))

    seed = int(time.time() * 1000) if config.seed is None else config.seed
    log.info("Using dungeon seed", seed=seed)

    try:
        stages = config.build_stages()
        result = generate_dungeon(config.width, config.height, seed=seed, stages=stages)
    except (ConfigError, GenerationError) as e:
        log.error("Dungeon generation failed", error=str(e))
        return 1

    game_map = finalise_map(result.game_map)
    spawn = result.spawn
    print_map_section(game_map, spawn.x, spawn.y, radius=10)

    viewshed = Viewshed(distance=config.fov_radius)
    update_viewshed(game_map, spawn, viewshed)
    log.info(
        "Player viewshed computed",
        visible=len(viewshed.visible_tiles),
        ever_seen=int(game_map.ever_seen.sum()),
    )

    # Walk towards the furthest cell in view, as a click-to-move would.
    if viewshed.visible_tiles:
        target = max(viewshed.visible_tiles, key=lambda p: (spawn.manhattan(p), p.x, p.y))
        if not game_map.is_blocker(target.x, target.y):
            waypoints = plan_waypoints(game_map, spawn, target)
            log.info("Sample route planned", target=tuple(target), steps=len(waypoints))

    log.info("Application finished.", snapshots=len(result.history))
    return 0


if __name__ == "__main__":
    sys.exit(main())
