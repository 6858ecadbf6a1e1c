from dungeon.systems.pathfinding.astar import find_path, next_step, plan_waypoints

__all__ = ["find_path", "next_step", "plan_waypoints"]
