"""World: owns the simulated factory and drives the per-tick update order."""

from __future__ import annotations

import logging
import random
from dataclasses import fields, replace

from .enums import AGVTask, BodyKind
from .constants import (
    AGENT_HEIGHT, AGENT_SPEED_MIN, AGENT_SPEED_SPREAD, SNAPSHOT_INTERVAL,
    SPAWN_MARGIN, BS_MAST_HEIGHT, RETRY_DELAY_RANGE, RSRP_FLOOR_DBM,
    SINR_FLOOR_DB,
)
from .agv import AGV, generate_imei
from .environment import build_environment, layout_base_stations, random_free_position
from .errors import EnvironmentInconsistency, PlanningFailure
from .geometry import Box, Vec3, clamp
from .graph_store import GraphStore, GraphSync
from .grid import SpatialGrid
from .models import BaseStation, Body, NetworkStats, SimParams, WorldSnapshot
from .radio import Handover, update_connectivity
from .scheduler import EventQueue

logger = logging.getLogger(__name__)

# Changing any of these rebuilds the whole world
RESET_PARAMS = ("factory_size", "wall_height", "obstacle_density", "ue_density", "bs_density", "interior_walls")


class World:
    """One independent simulation instance.

    Holds bodies, the occupancy grid, base stations, AGVs and the event queue.
    ``tick`` advances agents one after another, then recomputes every radio
    link. A world starts paused, as the interactive viewer does.
    """

    def __init__(
        self,
        params: SimParams | None = None,
        store: GraphStore | GraphSync | None = None,
        rng: random.Random | None = None,
        populate: bool = True,
    ) -> None:
        self.params: SimParams = params or SimParams()
        self.params.validate()
        self.rng: random.Random = rng or random.Random(self.params.seed)
        if isinstance(store, GraphStore):
            store = GraphSync(store)
        self.sync: GraphSync | None = store

        self.generation: int = 0
        self.sim_time: float = 0.0
        self.paused: bool = True
        self.bodies: list[Body] = []
        self.stations: list[BaseStation] = []
        self.agvs: list[AGV] = []
        self.scheduler: EventQueue = EventQueue()
        self.grid: SpatialGrid = SpatialGrid.build([], self.params.factory_size, self.params.cell_size)
        self.handover_log: list[Handover] = []
        self.total_handovers: int = 0
        self.snapshots_pushed: int = 0
        self._last_snapshot: float = 0.0
        self._blockers: list[Box] | None = None

        if populate:
            self.reset()

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    def clear(self) -> None:
        """Drop every body, station, agent and pending event; start a new generation."""
        self.scheduler.clear()
        self.scheduler = EventQueue()
        self.generation += 1
        self.sim_time = 0.0
        self._last_snapshot = 0.0
        self.bodies = []
        self.stations = []
        self.agvs = []
        self.handover_log = []
        self._blockers = None
        self.rebuild_grid()

    def reset(self) -> None:
        """Replace the whole world state and pause."""
        logger.info("Resetting simulation...")
        self.clear()
        self.paused = True

        self.bodies = build_environment(self.params, self.rng)
        self.rebuild_grid()
        self.stations = layout_base_stations(self.params, self.rng)

        for i in range(self.params.ue_density):
            position = random_free_position(self.grid, self.params, self.rng)
            self.add_agv(f"AGV-{1001 + i}", position, assign=True)

        logger.info("Created %d gNodeBs and %d AGVs.", len(self.stations), len(self.agvs))

    def shutdown(self) -> None:
        if self.sync is not None:
            self.sync.shutdown()

    def pause(self) -> None:
        if not self.paused:
            self.paused = True
            logger.info("Simulation paused.")

    def resume(self) -> None:
        if self.paused:
            self.paused = False
            logger.info("Simulation running...")

    def toggle_pause(self) -> bool:
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def set_params(self, **changes) -> bool:
        """Apply parameter changes. Returns ``True`` if the world was reset."""
        known = {f.name for f in fields(SimParams)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown parameters: {sorted(unknown)}")
        new_params = replace(self.params, **changes)
        new_params.validate()
        needs_reset = any(
            getattr(new_params, name) != getattr(self.params, name) for name in RESET_PARAMS
        )
        cell_changed = new_params.cell_size != self.params.cell_size
        self.params = new_params
        if needs_reset:
            logger.info("Parameters %s changed. Resetting simulation.", sorted(changes))
            self.reset()
            return True
        if cell_changed:
            self.rebuild_grid()
            for agv in self.agvs:
                agv.position = self.clamp_to_bounds(agv.position)
        return False

    def set_station_height(self, bs_id: str, height: float) -> None:
        self.station(bs_id).height = height
        logger.info("Updated %s height to %s", bs_id, height)

    # ------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------

    def add_body(self, kind: BodyKind, center: Vec3, size: Vec3) -> Body:
        """Add a body. Call ``rebuild_grid`` before planning around it."""
        body = Body(kind, Box.from_center(center, size))
        self.bodies.append(body)
        self._blockers = None
        return body

    def add_station(
        self,
        bs_id: str,
        position: Vec3,
        height: float = BS_MAST_HEIGHT,
        vendor: str = "Ericsson",
        band: str = "n78",
    ) -> BaseStation:
        bs = BaseStation(bs_id, position, height=height, vendor=vendor, band=band)
        self.stations.append(bs)
        return bs

    def add_agv(
        self,
        agv_id: str,
        position: Vec3,
        speed: float | None = None,
        battery_percentage: float = 100.0,
        assign: bool = False,
    ) -> AGV:
        if speed is None:
            speed = AGENT_SPEED_MIN + self.rng.random() * AGENT_SPEED_SPREAD
        agv = AGV(
            agv_id,
            self.clamp_to_bounds((position[0], AGENT_HEIGHT, position[2])),
            speed,
            imei=generate_imei(self.rng),
            battery_percentage=battery_percentage,
        )
        self.agvs.append(agv)
        if assign:
            agv.assign_task(self)
        return agv

    # ------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------

    @property
    def bounds(self) -> float:
        """Half extent agents are kept within on x and z."""
        return self.params.factory_size / 2 - SPAWN_MARGIN

    def in_bounds(self, point: Vec3) -> bool:
        b = self.bounds
        return abs(point[0]) <= b and abs(point[2]) <= b

    def clamp_to_bounds(self, point: Vec3) -> Vec3:
        b = self.bounds
        return (clamp(point[0], -b, b), point[1], clamp(point[2], -b, b))

    def rebuild_grid(self) -> SpatialGrid:
        self.grid = SpatialGrid.build(self.bodies, self.params.factory_size, self.params.cell_size)
        self._blockers = None
        return self.grid

    def blocker_boxes(self) -> list[Box]:
        """Boxes of bodies that block movement and line of sight."""
        if self._blockers is None:
            self._blockers = [b.box for b in self.bodies if b.collidable]
        return self._blockers

    @property
    def workstations(self) -> list[Body]:
        return [b for b in self.bodies if b.kind == BodyKind.WORKSTATION]

    @property
    def chargers(self) -> list[Body]:
        return [b for b in self.bodies if b.kind == BodyKind.CHARGER]

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------

    def station(self, bs_id: str) -> BaseStation:
        for bs in self.stations:
            if bs.bs_id == bs_id:
                return bs
        raise KeyError(bs_id)

    def agv(self, agv_id: str) -> AGV:
        for agv in self.agvs:
            if agv.agv_id == agv_id:
                return agv
        raise KeyError(agv_id)

    # ------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------

    def command_agent(self, agv_id: str, target: Vec3, strict: bool = False) -> bool:
        """Send an agent to *target*, replacing its current task.

        Targets outside the floor are clamped onto it. On failure the agent
        retries a normal task later. With *strict*, an out-of-bounds target
        raises ``EnvironmentInconsistency`` and a failed plan raises
        ``PlanningFailure``.
        """
        agv = self.agv(agv_id)
        if strict and not self.in_bounds(target):
            raise EnvironmentInconsistency(f"{agv_id}: target {target} outside the factory floor")
        self.scheduler.cancel(agv.assignment_key)
        agv.charging = False
        if agv.task == AGVTask.CHARGING:
            # Only a trip to the charger may end in docking
            agv.task = AGVTask.NONE
        if agv.plan_to(target, self):
            logger.info("%s -> (%.1f, %.1f) (%d waypoints)", agv_id, target[0], target[2], len(agv.path))
            return True
        if strict:
            raise PlanningFailure(f"{agv_id}: no path to {target}")
        logger.warning("%s: no path to (%.1f, %.1f)!", agv_id, target[0], target[2])
        agv.schedule_assignment(self, RETRY_DELAY_RANGE)
        return False

    # ------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------

    def tick(self, dt: float) -> list[Handover]:
        """Advance the simulation by *dt* seconds. No-op when paused or ``dt <= 0``.

        Returns the handovers that happened during this tick.
        """
        if dt <= 0 or self.paused:
            return []

        self.sim_time += dt
        self.scheduler.run_due(self.sim_time)

        for agv in self.agvs:
            agv.update(dt, self)

        handovers = update_connectivity(self)
        for event in handovers:
            self.total_handovers += 1
            self.handover_log.append(event)
            if self.sync is not None:
                self.sync.record_association(event.agv_id, event.to_bs)

        if self.sim_time - self._last_snapshot >= SNAPSHOT_INTERVAL:
            self._last_snapshot = self.sim_time
            self.push_snapshot()

        return handovers

    def push_snapshot(self) -> None:
        """Hand the full station/agent attribute set to the graph store."""
        if self.sync is None:
            return
        self.sync.push_snapshot(
            [bs.to_record() for bs in self.stations],
            [agv.to_record() for agv in self.agvs],
        )
        self.snapshots_pushed += 1
        logger.debug("Knowledge graph snapshot queued at t=%.1fs.", self.sim_time)

    # ------------------------------------------------------------
    # Views
    # ------------------------------------------------------------

    def network_stats(self) -> NetworkStats:
        connected = [a for a in self.agvs if a.connected_bs]
        stats = NetworkStats(total_agents=len(self.agvs), connected_agents=len(connected))
        if self.agvs:
            stats.coverage = len(connected) / len(self.agvs)
        if connected:
            stats.avg_rsrp_dbm = sum(a.rsrp_dbm for a in connected) / len(connected)
            stats.avg_sinr_db = sum(a.sinr_db for a in connected) / len(connected)
            stats.total_throughput_mbps = sum(a.throughput_mbps for a in connected)
        else:
            stats.avg_rsrp_dbm = RSRP_FLOOR_DBM
            stats.avg_sinr_db = SINR_FLOOR_DB
        return stats

    def snapshot(self) -> WorldSnapshot:
        return WorldSnapshot(
            sim_time=self.sim_time,
            paused=self.paused,
            generation=self.generation,
            factory_size=self.params.factory_size,
            stations=[bs.snapshot() for bs in self.stations],
            agents=[agv.snapshot() for agv in self.agvs],
            bodies=[(b.kind, b.box) for b in self.bodies],
            stats=self.network_stats(),
        )
