"""
Tests for the AGV controller: battery, task assignment, path following,
collision lookahead and replanning.
"""

import math
import random

import pytest

from factory_sim import (
    AGV, AGVStatus, AGVTask, BodyKind, EnvironmentInconsistency, PlanningFailure,
    SimParams, World, WORK_TASKS, generate_imei,
)
from factory_sim.constants import MAX_CONSECUTIVE_REPLANS


# -- Helpers ----------------------------------------------------------

def _empty_world(seed=3):
    params = SimParams(
        factory_size=100.0, obstacle_density=0, ue_density=0, bs_density=0,
        interior_walls=False, seed=seed,
    )
    return World(params, populate=False)


def _tick(world, seconds, dt=0.1):
    for _ in range(int(round(seconds / dt))):
        world.tick(dt)


# -- Identity ---------------------------------------------------------

def test_imei_format():
    imei = generate_imei(random.Random(0))
    assert imei.startswith("35824005")
    assert len(imei) == 15
    assert imei.isdigit()


def test_record_attributes():
    world = _empty_world()
    agv = world.add_agv("AGV-1001", (5.0, 0.0, -5.0), speed=4.0)
    record = agv.to_record()
    assert record["id"] == "AGV-1001"
    assert record["label"] == "AGV-1001"
    assert record["task"] == "None"
    assert record["status"] == "Idle"
    assert (record["x"], record["y"], record["z"]) == (5.0, 0.5, -5.0)
    assert record["battery_percentage"] == 100.0


# -- Battery ----------------------------------------------------------

def test_battery_drains_while_working():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    agv.update(10.0, world)
    assert agv.battery_percentage == pytest.approx(99.0)


def test_battery_never_negative():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0, battery_percentage=0.05)
    agv.update(5.0, world)
    assert agv.battery_percentage == 0.0


def test_initial_battery_clamped():
    agv = AGV("AGV-1", (0.0, 0.5, 0.0), 3.0, battery_percentage=150.0)
    assert agv.battery_percentage == 100.0


def test_no_drain_on_the_way_to_charger():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0, battery_percentage=15.0)
    agv.task = AGVTask.CHARGING
    agv.update(1.0, world)
    assert agv.battery_percentage == 15.0


def test_charging_is_monotonic_and_reassigns_when_full():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0, battery_percentage=50.0)
    agv.task = AGVTask.CHARGING
    agv.charging = True

    levels = []
    for _ in range(4):
        agv.update(1.0, world)
        levels.append(agv.battery_percentage)
    assert levels == pytest.approx([60.0, 70.0, 80.0, 90.0])

    agv.update(2.0, world)
    assert agv.battery_percentage == 100.0
    assert not agv.charging
    assert agv.task in WORK_TASKS


def test_low_battery_goes_to_charger():
    world = _empty_world()
    world.add_body(BodyKind.CHARGER, (-30.0, 0.05, 30.0), (20.0, 0.1, 20.0))
    agv = world.add_agv("AGV-1", (10.0, 0.0, 10.0), speed=3.0, battery_percentage=10.0)

    assert agv.assign_task(world)
    assert agv.task == AGVTask.CHARGING
    assert agv.status == AGVStatus.MOVING
    assert agv.target_position == (-30.0, 0.5, 30.0)


def test_low_battery_without_charger_keeps_working():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (10.0, 0.0, 10.0), speed=3.0, battery_percentage=10.0)
    agv.assign_task(world)
    assert agv.task in WORK_TASKS


def test_docking_at_charger_starts_charging():
    world = _empty_world()
    world.add_body(BodyKind.CHARGER, (-30.0, 0.05, 30.0), (20.0, 0.1, 20.0))
    agv = world.add_agv("AGV-1", (-25.0, 0.0, 25.0), speed=5.0, battery_percentage=10.0)
    agv.assign_task(world)
    world.resume()

    _tick(world, 5.0)
    assert agv.charging
    assert agv.status == AGVStatus.IDLE
    assert agv.battery_percentage > 10.0


def test_commanded_agent_does_not_charge_away_from_charger():
    world = _empty_world()
    world.add_body(BodyKind.CHARGER, (-30.0, 0.05, 30.0), (20.0, 0.1, 20.0))
    agv = world.add_agv("AGV-1", (25.0, 0.0, -25.0), speed=5.0, battery_percentage=10.0)
    agv.assign_task(world)
    assert agv.task == AGVTask.CHARGING

    assert world.command_agent("AGV-1", (30.0, 0.5, -30.0))
    assert agv.task != AGVTask.CHARGING
    world.resume()

    for _ in range(40):
        world.tick(0.1)
        assert not agv.charging
        assert agv.battery_percentage <= 10.0


# -- Assignment -------------------------------------------------------

def test_assign_targets_workstation():
    world = _empty_world()
    ws = world.add_body(BodyKind.WORKSTATION, (30.0, 0.25, -20.0), (12.0, 0.5, 12.0))
    agv = world.add_agv("AGV-1", (-30.0, 0.0, 0.0), speed=3.0)

    assert agv.assign_task(world)
    assert agv.task in WORK_TASKS
    assert agv.status == AGVStatus.MOVING
    assert agv.target_position == (ws.position[0], 0.5, ws.position[2])
    assert agv.path[-1] == agv.target_position


def test_assign_clamps_target_to_bounds():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    assert agv.plan_to((500.0, 0.0, -500.0), world)
    assert agv.target_position == (48.0, 0.5, -48.0)


def test_unreachable_target_schedules_retry():
    world = _empty_world()
    world.add_body(BodyKind.OBSTACLE, (30.0, 2.0, 30.0), (30.0, 4.0, 30.0))
    agv = world.add_agv("AGV-1", (-30.0, 0.0, -30.0), speed=3.0)

    assert not world.command_agent("AGV-1", (30.0, 0.5, 30.0))
    assert agv.status == AGVStatus.IDLE
    assert agv.path is None
    assert agv.target_position is None
    assert agv.planning_failures == 1
    assert world.scheduler.pending(agv.assignment_key)

    # The retry fires within 2 s and hands out a normal task
    world.resume()
    _tick(world, 2.1)
    assert agv.task in WORK_TASKS


def test_strict_command_raises():
    world = _empty_world()
    world.add_body(BodyKind.OBSTACLE, (30.0, 2.0, 30.0), (30.0, 4.0, 30.0))
    world.add_agv("AGV-1", (-30.0, 0.0, -30.0), speed=3.0)
    with pytest.raises(PlanningFailure):
        world.command_agent("AGV-1", (30.0, 0.5, 30.0), strict=True)


def test_strict_command_rejects_target_off_the_floor():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    with pytest.raises(EnvironmentInconsistency):
        world.command_agent("AGV-1", (80.0, 0.5, 0.0), strict=True)
    assert agv.status == AGVStatus.IDLE
    assert world.command_agent("AGV-1", (80.0, 0.5, 0.0))
    assert agv.target_position == (48.0, 0.5, 0.0)


def test_command_unknown_agent():
    world = _empty_world()
    with pytest.raises(KeyError):
        world.command_agent("AGV-404", (0.0, 0.5, 0.0))


# -- Motion -----------------------------------------------------------

def test_step_never_exceeds_speed():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    assert world.command_agent("AGV-1", (30.0, 0.5, 0.0))

    before = agv.position
    agv.update(0.1, world)
    moved = math.hypot(agv.position[0] - before[0], agv.position[2] - before[2])
    assert 0.0 < moved <= 0.3 + 1e-9
    assert agv.distance_travelled == pytest.approx(moved)


def test_agent_stays_in_bounds():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (47.0, 0.0, 47.0), speed=5.0)
    agv.target_position = (60.0, 0.5, 60.0)
    agv.path = [(60.0, 0.5, 60.0)]
    agv.status = AGVStatus.MOVING
    for _ in range(50):
        agv.update(0.1, world)
    assert abs(agv.position[0]) <= world.bounds
    assert abs(agv.position[2]) <= world.bounds


def test_heading_faces_travel_direction():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    agv.target_position = (20.0, 0.5, 0.0)
    agv.path = [(20.0, 0.5, 0.0)]
    agv.status = AGVStatus.MOVING
    agv.update(0.1, world)
    assert agv.heading == pytest.approx(math.pi / 2)


def test_obstruction_triggers_replan():
    world = _empty_world()
    world.add_body(BodyKind.OBSTACLE, (5.0, 1.0, 0.0), (2.0, 2.0, 10.0))
    agv = world.add_agv("AGV-1", (2.0, 0.0, 0.0), speed=3.0)
    straight = [(20.0, 0.5, 0.0)]
    agv.target_position = (20.0, 0.5, 0.0)
    agv.path = list(straight)
    agv.status = AGVStatus.MOVING

    agv.update(0.5, world)
    assert agv.is_blocked
    assert agv.position == (2.0, 0.5, 0.0)
    assert agv.replans == 0

    agv.update(0.5, world)
    assert agv.replans == 1
    assert agv.path != straight
    assert agv.path[-1] == (20.0, 0.5, 0.0)
    for waypoint in agv.path:
        assert world.grid.is_free(world.grid.world_to_grid(waypoint))


def test_repeated_replans_give_up_the_task():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    agv.target_position = (20.0, 0.5, 0.0)
    agv.path = [(20.0, 0.5, 0.0)]
    agv.consecutive_replans = MAX_CONSECUTIVE_REPLANS

    agv._replan(world)
    assert agv.task in WORK_TASKS
    assert agv.consecutive_replans == 0


def test_agent_drives_out_of_body_it_stands_in():
    world = _empty_world()
    world.add_body(BodyKind.OBSTACLE, (0.0, 1.0, 0.0), (4.0, 2.0, 4.0))
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    agv.target_position = (20.0, 0.5, 0.0)
    agv.path = [(20.0, 0.5, 0.0)]
    agv.status = AGVStatus.MOVING

    agv.update(0.1, world)
    assert not agv.is_blocked
    assert agv.position[0] > 0.0


def test_arrival_goes_idle_and_schedules_next_task():
    world = _empty_world()
    agv = world.add_agv("AGV-1", (0.0, 0.0, 0.0), speed=3.0)
    agv.task = AGVTask.TOOL_DELIVERY
    agv.target_position = (1.0, 0.5, 0.0)
    agv.path = [(1.0, 0.5, 0.0)]
    agv.status = AGVStatus.MOVING

    agv.update(0.1, world)
    assert agv.status == AGVStatus.IDLE
    assert agv.path is None
    assert agv.target_position is None
    assert world.scheduler.pending(agv.assignment_key)
