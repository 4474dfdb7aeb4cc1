"""Factory floor builders: walls, workstations, charger, obstacles and base stations."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

from .enums import BodyKind
from .constants import (
    WALL_THICKNESS, OBSTACLE_PLACEMENT_ATTEMPTS, OBSTACLE_MAX_FOOTPRINT,
    OBSTACLE_EDGE_MARGIN, WORKSTATION_COUNT, WORKSTATION_SIZE,
    CHARGER_RADIUS, BS_SLOTS, BS_MAST_HEIGHT, VENDORS, BANDS, AGENT_HEIGHT,
    SPAWN_MARGIN,
)
from .geometry import Box, Vec3, clamp
from .models import BaseStation, Body, SimParams
from .pathfinding import find_path, path_cost

if TYPE_CHECKING:
    from .grid import SpatialGrid
    from .world import World

logger = logging.getLogger(__name__)


def build_environment(params: SimParams, rng: random.Random) -> list[Body]:
    """Create the factory bodies. Returns walls, workstations, chargers and obstacles.

    Walls may touch anything; every other body is rejected if it overlaps a
    body already placed.
    """
    size = params.factory_size
    h = params.wall_height
    t = WALL_THICKNESS
    bodies: list[Body] = []
    placed: list[Box] = []

    def wall(center: Vec3, dims: Vec3) -> None:
        bodies.append(Body(BodyKind.WALL, Box.from_center(center, dims)))

    def place(kind: BodyKind, box: Box) -> bool:
        if any(box.intersects(other) for other in placed):
            return False
        placed.append(box)
        bodies.append(Body(kind, box))
        return True

    # 1. PERIMETER
    wall((0, h / 2, -size / 2), (size, h, t))
    wall((0, h / 2, size / 2), (size, h, t))
    wall((size / 2, h / 2, 0), (t, h, size))
    wall((-size / 2, h / 2, 0), (t, h, size))

    # 2. INTERIOR WALLS: one running north-south, one east-west
    if params.interior_walls:
        wall((-size / 6, h / 2, size / 8), (t, h, size * 3 / 4))
        wall((size / 4, h / 2, 0), (size / 2, h, t))

    # 3. WORKSTATIONS along the east side
    for i in range(WORKSTATION_COUNT):
        center = (size * 0.4, WORKSTATION_SIZE[1] / 2, -size * 0.35 + i * size * 0.14)
        place(BodyKind.WORKSTATION, Box.from_center(center, WORKSTATION_SIZE))

    # 4. CHARGER in the south-west corner
    pad = (CHARGER_RADIUS * 2, 0.1, CHARGER_RADIUS * 2)
    place(BodyKind.CHARGER, Box.from_center((-size * 0.4, 0.05, size * 0.4), pad))

    # 5. RANDOM OBSTACLES
    edge = size / 2 - OBSTACLE_EDGE_MARGIN
    for _ in range(params.obstacle_density):
        for _attempt in range(OBSTACLE_PLACEMENT_ATTEMPTS):
            dx = (rng.random() + 0.1) * OBSTACLE_MAX_FOOTPRINT
            dy = max(1.0, (rng.random() + 0.1) * h)
            dz = (rng.random() + 0.1) * OBSTACLE_MAX_FOOTPRINT
            x = clamp((rng.random() - 0.5) * size, -edge, edge)
            z = clamp((rng.random() - 0.5) * size, -edge, edge)
            if place(BodyKind.OBSTACLE, Box.from_center((x, dy / 2, z), (dx, dy, dz))):
                break

    counts = {kind: sum(1 for b in bodies if b.kind == kind) for kind in BodyKind}
    logger.info(
        "Created floor with %d walls, %d workstations, %d chargers and %d obstacles.",
        counts[BodyKind.WALL], counts[BodyKind.WORKSTATION],
        counts[BodyKind.CHARGER], counts[BodyKind.OBSTACLE],
    )
    return bodies


def layout_base_stations(params: SimParams, rng: random.Random) -> list[BaseStation]:
    """Place up to ``len(BS_SLOTS)`` gNodeBs at the quadrant centres."""
    stations: list[BaseStation] = []
    count = min(params.bs_density, len(BS_SLOTS))
    if params.bs_density > count:
        logger.warning(
            "Requested %d gNodeBs; only %d slots available.", params.bs_density, count,
        )
    for i in range(count):
        fx, fz = BS_SLOTS[i]
        position = (fx * params.factory_size, 0.0, fz * params.factory_size)
        stations.append(
            BaseStation(
                f"gNodeB-{i + 1}",
                position,
                height=BS_MAST_HEIGHT,
                vendor=rng.choice(VENDORS),
                band=rng.choice(BANDS)["name"],
            )
        )
    return stations


def random_free_position(grid: SpatialGrid, params: SimParams, rng: random.Random) -> Vec3:
    """Random spawn point inside the walls, on a free grid cell when one exists."""
    bound = params.factory_size / 2 - SPAWN_MARGIN
    candidates = [
        c for c in grid.free_cells()
        if abs(grid.grid_to_world(c)[0]) <= bound and abs(grid.grid_to_world(c)[2]) <= bound
    ]
    if candidates:
        return grid.grid_to_world(rng.choice(candidates), AGENT_HEIGHT)
    return (rng.uniform(-bound, bound), AGENT_HEIGHT, rng.uniform(-bound, bound))


def verify_environment(world: World) -> None:
    """Log grid stats and test a few key paths after a reset."""
    grid = world.grid
    logger.info("--- Environment verification ---")
    logger.info("Grid: %dx%d cells of %.1f units", grid.cols, grid.rows, grid.cell_size)
    logger.info(
        "Blocked cells: %d / %d", grid.blocked_count, grid.cols * grid.rows,
    )

    tests: list[tuple[str, Vec3, Vec3]] = []
    if world.chargers and world.workstations:
        tests.append(("Charger -> first workstation", world.chargers[0].position, world.workstations[0].position))
        tests.append(("Last workstation -> charger", world.workstations[-1].position, world.chargers[0].position))
    for agv in world.agvs[:2]:
        if world.stations:
            tests.append((f"{agv.agv_id} -> {world.stations[0].bs_id}", agv.position, world.stations[0].position))

    for desc, start, goal in tests:
        path = find_path(grid, start, goal)
        if path:
            cells = [grid.world_to_grid(p) for p in path]
            logger.info(
                "  %s: %d waypoints, ~%.0f units",
                desc, len(path), path_cost(cells) * grid.cell_size,
            )
        else:
            logger.info("  %s: NO PATH FOUND!", desc)
    logger.info("--- End verification ---")
