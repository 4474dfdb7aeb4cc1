"""
Factory radio-connectivity and navigation simulation package.

Public API re-exports.
"""

from .enums import AGVStatus, AGVTask, BodyKind, LinkQuality, StationStatus, WORK_TASKS
from .constants import *  # noqa: F401,F403
from .errors import (
    FactorySimError, PlanningFailure, EnvironmentInconsistency,
    PersistenceFailure, ConfigurationError,
)
from .geometry import Box, raycast, ray_box_distance
from .models import (
    Body, BaseStation, SimParams, AgentSnapshot, StationSnapshot,
    NetworkStats, WorldSnapshot,
)
from .grid import SpatialGrid
from .pathfinding import astar, find_path, snap_to_free, path_cost, heuristic
from .scheduler import EventQueue
from .radio import (
    Signal, Handover, path_loss_db, received_power_dbm, dbm_to_watts,
    thermal_noise_watts, measure_signals, select_serving, compute_sinr_db,
    estimate_throughput, link_quality, update_connectivity, steering_angles,
)
from .agv import AGV, generate_imei
from .graph_store import GraphStore, Neo4jGraphStore, MemoryGraphStore, GraphSync
from .environment import build_environment, layout_base_stations, verify_environment
from .world import World
from .headless import run_headless

__all__ = [
    "AGVStatus", "AGVTask", "BodyKind", "LinkQuality", "StationStatus", "WORK_TASKS",
    "FactorySimError", "PlanningFailure", "EnvironmentInconsistency",
    "PersistenceFailure", "ConfigurationError",
    "Box", "raycast", "ray_box_distance",
    "Body", "BaseStation", "SimParams", "AgentSnapshot", "StationSnapshot",
    "NetworkStats", "WorldSnapshot",
    "SpatialGrid",
    "astar", "find_path", "snap_to_free", "path_cost", "heuristic",
    "EventQueue",
    "Signal", "Handover", "path_loss_db", "received_power_dbm", "dbm_to_watts",
    "thermal_noise_watts", "measure_signals", "select_serving", "compute_sinr_db",
    "estimate_throughput", "link_quality", "update_connectivity", "steering_angles",
    "AGV", "generate_imei",
    "GraphStore", "Neo4jGraphStore", "MemoryGraphStore", "GraphSync",
    "build_environment", "layout_base_stations", "verify_environment",
    "World",
    "run_headless",
]
