"""Occupancy grid rasterised from scene geometry."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Iterator

from .constants import AGENT_HEIGHT, NAV_CELL_SIZE, OBSTACLE_CLEARANCE
from .geometry import Vec3

if TYPE_CHECKING:
    from .models import Body

Cell = tuple[int, int]

# 8-connected neighbourhood: (di, dj, step cost)
_NEIGHBOR_STEPS: list[tuple[int, int, float]] = [
    (1, 0, 1.0), (-1, 0, 1.0), (0, 1, 1.0), (0, -1, 1.0),
    (1, 1, math.sqrt(2)), (1, -1, math.sqrt(2)),
    (-1, 1, math.sqrt(2)), (-1, -1, math.sqrt(2)),
]


class SpatialGrid:
    """Uniform occupancy grid over the square factory floor.

    ``i`` indexes columns along world x, ``j`` indexes rows along world z.
    Cells hold ``0`` (free) or ``1`` (blocked). A grid is never patched in
    place; build a new one whenever the body set or floor size changes.
    """

    def __init__(
        self,
        cols: int,
        rows: int,
        cell_size: float,
        origin_x: float,
        origin_z: float,
        cells: list[bytearray] | None = None,
    ) -> None:
        self.cols: int = cols
        self.rows: int = rows
        self.cell_size: float = cell_size
        self.origin_x: float = origin_x
        self.origin_z: float = origin_z
        self.cells: list[bytearray] = cells or [bytearray(cols) for _ in range(rows)]

    @classmethod
    def build(
        cls,
        bodies: Iterable[Body],
        world_size: float,
        cell_size: float = NAV_CELL_SIZE,
        clearance: float = OBSTACLE_CLEARANCE,
    ) -> SpatialGrid:
        """Rasterise every collidable body, inflated by *clearance*."""
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        cols = rows = math.ceil(world_size / cell_size)
        grid = cls(cols, rows, cell_size, -world_size / 2, -world_size / 2)
        for body in bodies:
            if body.collidable:
                grid._mark_box(body.box.expanded(clearance))
        return grid

    def _mark_box(self, box) -> None:
        cs = self.cell_size
        min_i = max(0, math.floor((box.min[0] - self.origin_x) / cs))
        max_i = min(self.cols - 1, math.floor((box.max[0] - self.origin_x) / cs))
        min_j = max(0, math.floor((box.min[2] - self.origin_z) / cs))
        max_j = min(self.rows - 1, math.floor((box.max[2] - self.origin_z) / cs))
        for j in range(min_j, max_j + 1):
            row = self.cells[j]
            for i in range(min_i, max_i + 1):
                row[i] = 1

    # --- coordinate mapping ---

    def world_to_grid(self, point: Vec3) -> Cell:
        """Cell containing *point*. May lie outside the grid; see ``clamp_cell``."""
        i = math.floor((point[0] - self.origin_x) / self.cell_size)
        j = math.floor((point[2] - self.origin_z) / self.cell_size)
        return (i, j)

    def grid_to_world(self, cell: Cell, height: float = AGENT_HEIGHT) -> Vec3:
        """Centre of *cell* at *height*."""
        i, j = cell
        cs = self.cell_size
        return (self.origin_x + i * cs + cs / 2, height, self.origin_z + j * cs + cs / 2)

    def clamp_cell(self, cell: Cell) -> Cell:
        i, j = cell
        return (min(max(i, 0), self.cols - 1), min(max(j, 0), self.rows - 1))

    # --- queries ---

    def in_bounds(self, cell: Cell) -> bool:
        i, j = cell
        return 0 <= i < self.cols and 0 <= j < self.rows

    def is_blocked(self, cell: Cell) -> bool:
        i, j = cell
        return self.cells[j][i] == 1

    def is_free(self, cell: Cell) -> bool:
        return self.in_bounds(cell) and not self.is_blocked(cell)

    def neighbors(self, cell: Cell) -> Iterator[tuple[Cell, float]]:
        """Yield ``(neighbour, step_cost)`` for free 8-connected neighbours."""
        i, j = cell
        for di, dj, cost in _NEIGHBOR_STEPS:
            nb = (i + di, j + dj)
            if self.is_free(nb):
                yield nb, cost

    def free_cells(self) -> list[Cell]:
        return [
            (i, j)
            for j in range(self.rows)
            for i in range(self.cols)
            if self.cells[j][i] == 0
        ]

    @property
    def blocked_count(self) -> int:
        return sum(sum(row) for row in self.cells)

    def __repr__(self) -> str:
        return (
            f"SpatialGrid({self.cols}x{self.rows}, cell={self.cell_size}, "
            f"blocked={self.blocked_count})"
        )
