"""Headless (no-GUI) simulation runner."""

from __future__ import annotations

import logging
import random
import time as _time

from .enums import AGVStatus
from .graph_store import GraphStore, GraphSync, MemoryGraphStore
from .models import SimParams
from .world import World

logger = logging.getLogger(__name__)


def run_headless(
    num_agvs: int = 10,
    num_stations: int = 4,
    num_obstacles: int = 30,
    factory_size: float = 250.0,
    sim_duration: float = 600.0,
    tick_dt: float = 0.1,
    seed: int | None = None,
    store: GraphStore | None = None,
) -> dict:
    """Run the simulation without rendering, using a fixed timestep.

    Snapshots and association updates go to *store* through the background
    sync worker, so a slow store never holds up the tick loop. When *store*
    is omitted an in-memory store is written inline instead, keeping the run
    deterministic for a seed. The store is closed when the run ends.
    Returns a dict of performance metrics.
    """
    if tick_dt <= 0:
        raise ValueError(f"tick_dt must be positive, got {tick_dt}")
    wall_start = _time.monotonic()

    params = SimParams(
        factory_size=factory_size,
        obstacle_density=num_obstacles,
        ue_density=num_agvs,
        bs_density=num_stations,
        seed=seed,
    )
    if store is None:
        sync = GraphSync(MemoryGraphStore(), synchronous=True)
    else:
        sync = GraphSync(store)
    world = World(params, store=sync, rng=random.Random(seed))
    world.resume()

    total_ticks = 0
    moving_ticks = 0
    blocked_ticks = 0
    connected_ticks = 0
    agent_ticks = 0
    sinr_sum = 0.0
    rsrp_sum = 0.0
    throughput_sum = 0.0

    try:
        while world.sim_time < sim_duration:
            world.tick(tick_dt)
            total_ticks += 1
            for agv in world.agvs:
                agent_ticks += 1
                if agv.status == AGVStatus.MOVING:
                    moving_ticks += 1
                if agv.is_blocked:
                    blocked_ticks += 1
                if agv.connected_bs is not None:
                    connected_ticks += 1
                    sinr_sum += agv.sinr_db
                    rsrp_sum += agv.rsrp_dbm
                    throughput_sum += agv.throughput_mbps
        wall_elapsed = _time.monotonic() - wall_start
    finally:
        world.pause()
        world.shutdown()

    final = world.network_stats()
    return {
        "num_agvs": len(world.agvs),
        "num_stations": len(world.stations),
        "num_obstacles": num_obstacles,
        "coverage": connected_ticks / agent_ticks if agent_ticks else 0.0,
        "avg_rsrp_dbm": rsrp_sum / connected_ticks if connected_ticks else final.avg_rsrp_dbm,
        "avg_sinr_db": sinr_sum / connected_ticks if connected_ticks else final.avg_sinr_db,
        "avg_throughput_mbps": throughput_sum / connected_ticks if connected_ticks else 0.0,
        "final_total_throughput_mbps": final.total_throughput_mbps,
        "handovers": sum(agv.handovers for agv in world.agvs),
        "associations": world.total_handovers,
        "replans": sum(agv.replans for agv in world.agvs),
        "planning_failures": sum(agv.planning_failures for agv in world.agvs),
        "agv_utilization": moving_ticks / agent_ticks if agent_ticks else 0.0,
        "agv_blocked_fraction": blocked_ticks / agent_ticks if agent_ticks else 0.0,
        "distance_travelled": sum(agv.distance_travelled for agv in world.agvs),
        "snapshots_pushed": world.snapshots_pushed,
        "sim_duration": world.sim_time,
        "wall_clock_seconds": wall_elapsed,
        "total_ticks": total_ticks,
    }
