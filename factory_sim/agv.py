"""AGV (Automated Guided Vehicle) class."""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING

from .enums import AGVStatus, AGVTask, WORK_TASKS
from .constants import (
    AGENT_HEIGHT, BATTERY_DRAIN_RATE, BATTERY_CHARGE_RATE,
    LOW_BATTERY_THRESHOLD, WAYPOINT_REACHED_FACTOR, COLLISION_LOOKAHEAD_FACTOR,
    STUCK_TIMEOUT, MAX_CONSECUTIVE_REPLANS, RETRY_DELAY_RANGE,
    ARRIVAL_DELAY_RANGE, IMEI_PREFIX, RSRP_FLOOR_DBM, SINR_FLOOR_DB,
    THROUGHPUT_FLOOR_MBPS,
)
from .geometry import Vec3, add_scaled, clamp, normalize, raycast
from .models import AgentSnapshot
from .pathfinding import find_path

if TYPE_CHECKING:
    from .world import World

logger = logging.getLogger(__name__)


def generate_imei(rng: random.Random) -> str:
    return IMEI_PREFIX + str(rng.randint(1_000_000, 9_999_999))


class AGV:
    """A mobile agent that plans over the occupancy grid and follows its path.

    Every controller method takes the owning :class:`World` as context; the
    AGV itself holds no reference to it.
    """

    def __init__(
        self,
        agv_id: str,
        position: Vec3,
        speed: float,
        imei: str = "",
        battery_percentage: float = 100.0,
    ) -> None:
        self.agv_id: str = agv_id
        self.imei: str = imei
        self.position: Vec3 = position
        self.heading: float = 0.0   # radians, 0 faces +z
        self.speed: float = speed
        self.battery_percentage: float = clamp(battery_percentage, 0.0, 100.0)
        self.task: AGVTask = AGVTask.NONE
        self.status: AGVStatus = AGVStatus.IDLE
        self.target_position: Vec3 | None = None
        self.path: list[Vec3] | None = None
        self.path_index: int = 0
        self.charging: bool = False
        self.stuck_timer: float = 0.0
        self.is_blocked: bool = False
        self.consecutive_replans: int = 0

        # Radio state, owned by the link model
        self.connected_bs: str | None = None
        self.rsrp_dbm: float = RSRP_FLOOR_DBM
        self.sinr_db: float = SINR_FLOOR_DB
        self.throughput_mbps: float = THROUGHPUT_FLOOR_MBPS

        # Counters
        self.replans: int = 0
        self.planning_failures: int = 0
        self.handovers: int = 0
        self.distance_travelled: float = 0.0

    @property
    def assignment_key(self) -> tuple[str, str]:
        return ("assign", self.agv_id)

    # ------------------------------------------------------------
    # Task assignment
    # ------------------------------------------------------------

    def assign_task(self, world: World) -> bool:
        """Pick a task and destination, then plan to it.

        Falls back to a delayed retry when no path exists. Returns ``True`` if
        a path was found.
        """
        world.scheduler.cancel(self.assignment_key)
        self.charging = False

        if self.battery_percentage < LOW_BATTERY_THRESHOLD and world.chargers:
            self.task = AGVTask.CHARGING
            target = world.chargers[0].position
            logger.warning("%s battery low. Moving to charging station.", self.agv_id)
        else:
            self.task = world.rng.choice(WORK_TASKS)
            if world.workstations:
                target = world.rng.choice(world.workstations).position
            else:
                bound = world.bounds
                target = (
                    world.rng.uniform(-bound, bound),
                    AGENT_HEIGHT,
                    world.rng.uniform(-bound, bound),
                )

        if self.plan_to(target, world):
            return True

        logger.warning("%s path not found. Retrying shortly.", self.agv_id)
        self.schedule_assignment(world, RETRY_DELAY_RANGE)
        return False

    def plan_to(self, target: Vec3, world: World) -> bool:
        """Rebuild the grid and plan from the current position to *target*."""
        target = world.clamp_to_bounds((target[0], AGENT_HEIGHT, target[2]))
        self.stuck_timer = 0.0
        self.is_blocked = False
        self.consecutive_replans = 0

        world.rebuild_grid()
        path = find_path(world.grid, self.position, target)
        if path:
            self.target_position = target
            self.path = path
            self.path_index = 0
            self.status = AGVStatus.MOVING
            return True

        self.target_position = None
        self.path = None
        self.path_index = 0
        self.status = AGVStatus.IDLE
        self.planning_failures += 1
        return False

    def schedule_assignment(self, world: World, delay_range: tuple[float, float]) -> None:
        """Queue ``assign_task`` after a random delay, bound to the current world generation."""
        delay = world.rng.uniform(*delay_range)
        generation = world.generation

        def _assign() -> None:
            if world.generation == generation and self in world.agvs:
                self.assign_task(world)

        world.scheduler.schedule(delay, _assign, key=self.assignment_key)

    # ------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------

    def update(self, dt: float, world: World) -> None:
        """Drain or charge the battery, then advance along the path."""
        if dt <= 0:
            return
        self._update_battery(dt, world)

        if self.target_position is None or not self.path:
            return

        if self.path_index >= len(self.path):
            self._arrive(world)
            return

        waypoint = self.path[self.path_index]
        to_wp = (waypoint[0] - self.position[0], 0.0, waypoint[2] - self.position[2])
        dist = math.hypot(to_wp[0], to_wp[2])

        if dist < WAYPOINT_REACHED_FACTOR * world.grid.cell_size:
            self.path_index += 1
            self.consecutive_replans = 0
            if self.path_index >= len(self.path):
                self._arrive(world)
            return

        direction = normalize(to_wp)

        # --- collision lookahead ---
        hit = self._lookahead(direction, world)
        if hit is not None and hit < COLLISION_LOOKAHEAD_FACTOR * world.grid.cell_size:
            self.is_blocked = True
            self.stuck_timer += dt
            if self.stuck_timer > STUCK_TIMEOUT:
                self._replan(world)
            return

        # --- clear to advance ---
        self.is_blocked = False
        self.stuck_timer = 0.0
        self._move(direction, min(self.speed * dt, dist), world)

    def _update_battery(self, dt: float, world: World) -> None:
        if self.task == AGVTask.CHARGING:
            if not self.charging:
                return
            self.battery_percentage = min(100.0, self.battery_percentage + BATTERY_CHARGE_RATE * dt)
            if self.battery_percentage >= 100.0:
                self.charging = False
                logger.info("%s fully charged.", self.agv_id)
                self.assign_task(world)
        else:
            self.battery_percentage = max(0.0, self.battery_percentage - BATTERY_DRAIN_RATE * dt)

    def _lookahead(self, direction: Vec3, world: World) -> float | None:
        # Ignore bodies the agent is already inside so it can drive out of them
        boxes = [b for b in world.blocker_boxes() if not b.contains(self.position)]
        return raycast(self.position, direction, boxes)

    def _move(self, direction: Vec3, step: float, world: World) -> None:
        before = self.position
        moved = add_scaled(self.position, direction, step)
        self.position = world.clamp_to_bounds((moved[0], AGENT_HEIGHT, moved[2]))
        self.heading = math.atan2(direction[0], direction[2])
        self.distance_travelled += math.hypot(
            self.position[0] - before[0], self.position[2] - before[2],
        )

    def _replan(self, world: World) -> None:
        """Replan to the current target after being blocked too long."""
        self.stuck_timer = 0.0
        self.consecutive_replans += 1
        if self.consecutive_replans > MAX_CONSECUTIVE_REPLANS:
            logger.warning(
                "%s still blocked after %d replans. Assigning new task.",
                self.agv_id, MAX_CONSECUTIVE_REPLANS,
            )
            self.assign_task(world)
            return

        logger.debug("%s obstruction on path; replanning.", self.agv_id)
        world.rebuild_grid()
        new_path = find_path(world.grid, self.position, self.target_position)
        if new_path:
            self.path = new_path
            self.path_index = 0
            self.replans += 1
        else:
            logger.warning("%s cannot replan. Assigning new task.", self.agv_id)
            self.planning_failures += 1
            self.assign_task(world)

    def _arrive(self, world: World) -> None:
        self.target_position = None
        self.path = None
        self.path_index = 0
        self.stuck_timer = 0.0
        self.is_blocked = False
        self.consecutive_replans = 0
        self.status = AGVStatus.IDLE
        if self.task == AGVTask.CHARGING:
            self.charging = True
            logger.info("%s docked at charger.", self.agv_id)
        else:
            self.schedule_assignment(world, ARRIVAL_DELAY_RANGE)

    # ------------------------------------------------------------
    # Views
    # ------------------------------------------------------------

    def snapshot(self) -> AgentSnapshot:
        return AgentSnapshot(
            agv_id=self.agv_id,
            imei=self.imei,
            position=self.position,
            heading=self.heading,
            speed=self.speed,
            battery_percentage=self.battery_percentage,
            task=self.task,
            status=self.status,
            target_position=self.target_position,
            path=list(self.path or []),
            path_index=self.path_index,
            connected_bs=self.connected_bs,
            rsrp_dbm=self.rsrp_dbm,
            sinr_db=self.sinr_db,
            throughput_mbps=self.throughput_mbps,
            is_blocked=self.is_blocked,
        )

    def to_record(self) -> dict:
        """Flat attribute dict as written to the graph store."""
        x, y, z = self.position
        return {
            "id": self.agv_id,
            "task": self.task.value,
            "imei": self.imei,
            "label": self.agv_id,
            "speed": self.speed,
            "sinr_db": self.sinr_db,
            "status": self.status.value,
            "rsrp_dbm": self.rsrp_dbm,
            "throughput_mbps": self.throughput_mbps,
            "battery_percentage": self.battery_percentage,
            "x": x, "y": y, "z": z,
        }

    def __repr__(self) -> str:
        return f"AGV({self.agv_id}, {self.status.value}, pos={self.position})"
