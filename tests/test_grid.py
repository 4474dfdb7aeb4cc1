"""
Tests for geometry helpers and the occupancy grid.
"""

import math

import pytest

from factory_sim import Body, BodyKind, Box, SpatialGrid, ray_box_distance, raycast


# -- Helpers ----------------------------------------------------------

def _pillar(x, z, kind=BodyKind.OBSTACLE):
    """1x10x1 body centred on (x, z)."""
    return Body(kind, Box.from_center((x, 5.0, z), (1.0, 10.0, 1.0)))


# -- Geometry ---------------------------------------------------------

def test_box_from_center():
    box = Box.from_center((1.0, 2.0, 3.0), (2.0, 4.0, 6.0))
    assert box.min == (0.0, 0.0, 0.0)
    assert box.max == (2.0, 4.0, 6.0)
    assert box.center == (1.0, 2.0, 3.0)


def test_box_intersects_and_contains():
    a = Box((0, 0, 0), (2, 2, 2))
    b = Box((1, 1, 1), (3, 3, 3))
    c = Box((5, 5, 5), (6, 6, 6))
    assert a.intersects(b)
    assert not a.intersects(c)
    assert a.contains((1, 1, 1))
    assert not a.contains((3, 1, 1))


def test_ray_hits_box_ahead():
    box = Box((4, 0, -1), (6, 2, 1))
    assert ray_box_distance((0, 1, 0), (1, 0, 0), box) == pytest.approx(4.0)


def test_ray_misses_box_behind():
    box = Box((4, 0, -1), (6, 2, 1))
    assert ray_box_distance((0, 1, 0), (-1, 0, 0), box) is None


def test_ray_misses_box_above():
    box = Box((4, 0, -1), (6, 2, 1))
    assert ray_box_distance((0, 5, 0), (1, 0, 0), box) is None


def test_ray_from_inside_reports_exit():
    box = Box((-1, -1, -1), (1, 1, 1))
    assert ray_box_distance((0, 0, 0), (1, 0, 0), box) == pytest.approx(1.0)


def test_raycast_returns_nearest():
    near = Box((2, 0, -1), (3, 2, 1))
    far = Box((8, 0, -1), (9, 2, 1))
    assert raycast((0, 1, 0), (5, 0, 0), [far, near]) == pytest.approx(2.0)
    assert raycast((0, 1, 0), (0, 0, 1), [far, near]) is None
    assert raycast((0, 1, 0), (0, 0, 0), [near]) is None


# -- Grid -------------------------------------------------------------

def test_empty_grid_dimensions():
    grid = SpatialGrid.build([], world_size=100.0, cell_size=2.5)
    assert (grid.cols, grid.rows) == (40, 40)
    assert grid.blocked_count == 0
    assert len(grid.free_cells()) == 1600


def test_grid_size_rounds_up():
    grid = SpatialGrid.build([], world_size=101.0, cell_size=2.5)
    assert grid.cols == math.ceil(101.0 / 2.5)


def test_pillar_blocks_inflated_footprint():
    grid = SpatialGrid.build([_pillar(0.0, 0.0)], world_size=100.0, cell_size=2.5, clearance=0.6)
    # Inflated footprint spans x/z in [-1.1, 1.1] -> cells 19 and 20 on each axis
    assert grid.blocked_count == 4
    for cell in [(19, 19), (19, 20), (20, 19), (20, 20)]:
        assert grid.is_blocked(cell)
    assert grid.is_free((18, 20))


def test_non_collidable_bodies_do_not_block():
    bodies = [_pillar(0.0, 0.0, BodyKind.WORKSTATION), _pillar(10.0, 10.0, BodyKind.CHARGER)]
    grid = SpatialGrid.build(bodies, world_size=100.0, cell_size=2.5)
    assert grid.blocked_count == 0


def test_body_outside_floor_is_clipped():
    grid = SpatialGrid.build([_pillar(49.9, 0.0)], world_size=100.0, cell_size=2.5)
    assert grid.blocked_count > 0
    assert all(grid.in_bounds(c) for c in grid.free_cells())


def test_world_grid_mapping():
    grid = SpatialGrid.build([], world_size=100.0, cell_size=2.5)
    assert grid.world_to_grid((0.0, 0.0, 0.0)) == (20, 20)
    assert grid.world_to_grid((-50.0, 0.0, -50.0)) == (0, 0)
    x, y, z = grid.grid_to_world((20, 20))
    assert (x, z) == pytest.approx((1.25, 1.25))
    assert y == 0.5
    assert grid.grid_to_world((0, 0), height=3.0)[1] == 3.0


def test_clamp_cell_out_of_bounds():
    grid = SpatialGrid.build([], world_size=100.0, cell_size=2.5)
    outside = grid.world_to_grid((-60.0, 0.0, 400.0))
    assert not grid.in_bounds(outside)
    assert grid.clamp_cell(outside) == (0, 39)


def test_corner_has_three_neighbours():
    grid = SpatialGrid.build([], world_size=10.0, cell_size=1.0)
    neighbours = dict(grid.neighbors((0, 0)))
    assert set(neighbours) == {(1, 0), (0, 1), (1, 1)}
    assert neighbours[(1, 1)] == pytest.approx(math.sqrt(2))


def test_neighbors_skip_blocked_cells():
    grid = SpatialGrid.build([], world_size=10.0, cell_size=1.0)
    grid.cells[5][6] = 1
    neighbours = [c for c, _ in grid.neighbors((5, 5))]
    assert (6, 5) not in neighbours
    assert len(neighbours) == 7


def test_invalid_cell_size_rejected():
    with pytest.raises(ValueError):
        SpatialGrid.build([], world_size=100.0, cell_size=0.0)
