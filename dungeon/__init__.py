"""Dungeon generation, pathfinding and visibility core.

The :mod:`dungeon.world` package holds the tile grid, the generator pipeline
and the field of view engine; :mod:`dungeon.systems.pathfinding` holds the A*
search used by agents moving across a finished map.
"""
