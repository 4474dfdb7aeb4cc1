"""
Tests for the headless runner and the environment builders.
"""

import logging
import random
import time

import pytest

from factory_sim import (
    BodyKind, GraphStore, MemoryGraphStore, SimParams, World, build_environment,
    layout_base_stations, run_headless, verify_environment,
)


# -- Helpers ----------------------------------------------------------

class SlowStore(GraphStore):
    def __init__(self, delay):
        self.delay = delay
        self.snapshots = 0
        self.closed = False

    def run_query(self, query, parameters=None):
        return []

    def persist_snapshot(self, stations, agents):
        time.sleep(self.delay)
        self.snapshots += 1

    def close(self):
        self.closed = True


# -- Environment -------------------------------------------------------

def test_environment_bodies_do_not_overlap():
    params = SimParams(factory_size=200.0, obstacle_density=25, seed=4)
    bodies = build_environment(params, random.Random(4))
    placed = [b for b in bodies if b.kind != BodyKind.WALL]
    for i, a in enumerate(placed):
        for b in placed[i + 1:]:
            assert not a.box.intersects(b.box)


def test_obstacles_stand_on_the_floor():
    params = SimParams(factory_size=200.0, obstacle_density=10, seed=5)
    bodies = build_environment(params, random.Random(5))
    obstacles = [b for b in bodies if b.kind == BodyKind.OBSTACLE]
    assert obstacles
    for body in obstacles:
        assert body.box.min[1] == pytest.approx(0.0)
        assert body.box.size[1] >= 1.0


def test_interior_walls_optional():
    params = SimParams(factory_size=100.0, obstacle_density=0, interior_walls=False)
    bodies = build_environment(params, random.Random(0))
    assert sum(1 for b in bodies if b.kind == BodyKind.WALL) == 4


def test_station_layout_quadrants():
    params = SimParams(factory_size=200.0, bs_density=4)
    stations = layout_base_stations(params, random.Random(1))
    assert [bs.bs_id for bs in stations] == ["gNodeB-1", "gNodeB-2", "gNodeB-3", "gNodeB-4"]
    assert {(bs.position[0], bs.position[2]) for bs in stations} == {
        (-50.0, -50.0), (50.0, -50.0), (-50.0, 50.0), (50.0, 50.0),
    }


def test_verify_environment_logs_paths(caplog):
    world = World(SimParams(factory_size=120.0, obstacle_density=3, ue_density=2, bs_density=1, seed=2))
    with caplog.at_level(logging.INFO, logger="factory_sim.environment"):
        verify_environment(world)
    assert "Environment verification" in caplog.text
    assert "Charger -> first workstation" in caplog.text


# -- Headless runner ---------------------------------------------------

def test_headless_run_reports_metrics():
    store = MemoryGraphStore()
    result = run_headless(
        num_agvs=3, num_stations=2, num_obstacles=5, factory_size=120.0,
        sim_duration=12.0, tick_dt=0.1, seed=3, store=store,
    )
    assert result["num_agvs"] == 3
    assert result["num_stations"] == 2
    assert result["total_ticks"] in (120, 121)
    assert 0.0 <= result["coverage"] <= 1.0
    assert 0.0 <= result["agv_utilization"] <= 1.0
    assert result["associations"] >= 3
    assert result["snapshots_pushed"] == 2
    assert store.snapshots == 2
    assert set(store.associations) == {"AGV-1001", "AGV-1002", "AGV-1003"}


def test_slow_store_does_not_stall_the_tick_loop():
    store = SlowStore(delay=1.0)
    result = run_headless(
        num_agvs=1, num_stations=1, num_obstacles=0, factory_size=100.0,
        sim_duration=10.0, tick_dt=0.1, seed=6, store=store,
    )
    assert result["snapshots_pushed"] >= 1
    assert result["wall_clock_seconds"] < 0.9
    # Pending writes finish and the store is closed before the run returns
    assert store.snapshots == result["snapshots_pushed"]
    assert store.closed


def test_headless_run_is_deterministic_for_a_seed():
    kwargs = dict(num_agvs=2, num_stations=2, num_obstacles=4, factory_size=100.0,
                  sim_duration=5.0, seed=12)
    a = run_headless(**kwargs)
    b = run_headless(**kwargs)
    for key in ("coverage", "avg_rsrp_dbm", "handovers", "distance_travelled"):
        assert a[key] == b[key]


def test_headless_rejects_bad_timestep():
    with pytest.raises(ValueError):
        run_headless(sim_duration=1.0, tick_dt=0.0)
