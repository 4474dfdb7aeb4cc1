"""A* pathfinding on the occupancy grid."""

from __future__ import annotations

import heapq
import math
from typing import TYPE_CHECKING

from .constants import AGENT_HEIGHT, SNAP_RADIUS

if TYPE_CHECKING:
    from .geometry import Vec3
    from .grid import Cell, SpatialGrid


def heuristic(a: Cell, b: Cell) -> float:
    """Euclidean distance in cells."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def path_cost(cells: list[Cell]) -> float:
    """Total step cost of a cell sequence (1 per straight, sqrt(2) per diagonal step)."""
    return sum(heuristic(a, b) for a, b in zip(cells, cells[1:]))


def snap_to_free(grid: SpatialGrid, cell: Cell, radius: int = SNAP_RADIUS) -> Cell | None:
    """Return *cell* if free, else the nearest free cell within square rings
    of radius 1..*radius* around it, or ``None``.

    Rings are scanned outwards and the free cells of a ring are ordered by
    Euclidean distance, row-major among equals.
    """
    if grid.is_free(cell):
        return cell
    i, j = cell
    for r in range(1, radius + 1):
        ring = [
            (i + di, j + dj)
            for dj in range(-r, r + 1)
            for di in range(-r, r + 1)
            if max(abs(di), abs(dj)) == r and grid.is_free((i + di, j + dj))
        ]
        if ring:
            return min(ring, key=lambda c: heuristic(c, cell))
    return None


def astar(grid: SpatialGrid, start: Cell, goal: Cell) -> list[Cell] | None:
    """A* with Euclidean heuristic on an 8-connected grid.

    Ties on f-score are broken by insertion order.
    Returns list of cells from *start* to *goal* inclusive, or ``None`` if no path.
    """
    if not grid.is_free(start) or not grid.is_free(goal):
        return None

    counter = 0
    open_set: list[tuple[float, int, Cell]] = [(heuristic(start, goal), counter, start)]
    came_from: dict[Cell, Cell] = {}
    g_score: dict[Cell, float] = {start: 0.0}
    closed: set[Cell] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)
        if current in closed:
            continue

        if current == goal:
            path: list[Cell] = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        closed.add(current)

        for neighbor, step in grid.neighbors(current):
            if neighbor in closed:
                continue
            tentative_g = g_score[current] + step
            if tentative_g < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + heuristic(neighbor, goal), counter, neighbor))

    return None


def find_path(grid: SpatialGrid, start: Vec3, goal: Vec3) -> list[Vec3] | None:
    """Plan between two world points. Returns world waypoints or ``None``.

    Endpoints outside the grid are clamped onto it; endpoints on blocked
    cells are snapped to the nearest free cell within ``SNAP_RADIUS``.
    Waypoints are cell centres at agent height, except that when the goal
    cell did not need snapping the final waypoint is the goal itself, so the
    agent stops on its destination rather than on the cell centre.
    """
    start_cell = grid.clamp_cell(grid.world_to_grid(start))
    goal_cell = grid.clamp_cell(grid.world_to_grid(goal))

    s = snap_to_free(grid, start_cell)
    g = snap_to_free(grid, goal_cell)
    if s is None or g is None:
        return None

    cells = astar(grid, s, g)
    if cells is None:
        return None

    waypoints = [grid.grid_to_world(c) for c in cells]
    if g == grid.world_to_grid(goal):
        waypoints[-1] = (goal[0], AGENT_HEIGHT, goal[2])
    return waypoints
