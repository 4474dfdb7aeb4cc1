"""Data models: bodies, base stations, world parameters and snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import AGVStatus, AGVTask, BodyKind, StationStatus
from .constants import (
    COLLIDABLE_KINDS, FACTORY_SIZE, WALL_HEIGHT, OBSTACLE_DENSITY,
    UE_DENSITY, BS_DENSITY, NAV_CELL_SIZE, BS_MAST_HEIGHT, UES_PER_FULL_LOAD,
)
from .geometry import Box, Vec3


class Body:
    """A static piece of scene geometry: wall, obstacle, workstation or charger."""

    _next_id: int = 1

    def __init__(self, kind: BodyKind, box: Box) -> None:
        self.body_id: int = Body._next_id
        Body._next_id += 1
        self.kind: BodyKind = kind
        self.box: Box = box

    @property
    def position(self) -> Vec3:
        return self.box.center

    @property
    def collidable(self) -> bool:
        """Walls and obstacles block navigation and radio; pads do not."""
        return self.kind in COLLIDABLE_KINDS

    def __repr__(self) -> str:
        return f"Body({self.kind.value}, {self.box!r})"


class BaseStation:
    """A gNodeB at a fixed position on the factory floor."""

    def __init__(
        self,
        bs_id: str,
        position: Vec3,
        height: float = BS_MAST_HEIGHT,
        vendor: str = "Ericsson",
        band: str = "n78",
    ) -> None:
        self.bs_id: str = bs_id
        self.position: Vec3 = position
        self.height: float = height
        self.vendor: str = vendor
        self.band: str = band
        self.status: StationStatus = StationStatus.ACTIVE
        # View recomputed every tick from agent associations
        self.connected_ues: list[str] = []

    @property
    def load(self) -> float:
        """Load in percent, 100 % at ``UES_PER_FULL_LOAD`` connected UEs."""
        return len(self.connected_ues) / UES_PER_FULL_LOAD * 100.0

    def snapshot(self) -> StationSnapshot:
        return StationSnapshot(
            bs_id=self.bs_id,
            position=self.position,
            height=self.height,
            vendor=self.vendor,
            band=self.band,
            status=self.status.value,
            connected_ues=list(self.connected_ues),
            load=self.load,
        )

    def to_record(self) -> dict:
        """Flat attribute dict as written to the graph store."""
        x, y, z = self.position
        return {
            "id": self.bs_id,
            "band": self.band,
            "load": self.load,
            "label": self.bs_id,
            "status": self.status.value,
            "vendor": self.vendor,
            "x": x, "y": y, "z": z,
        }


@dataclass
class SimParams:
    """Parameters that shape a world at reset time."""

    factory_size: float = FACTORY_SIZE
    wall_height: float = WALL_HEIGHT
    obstacle_density: int = OBSTACLE_DENSITY
    ue_density: int = UE_DENSITY
    bs_density: int = BS_DENSITY
    cell_size: float = NAV_CELL_SIZE
    interior_walls: bool = True
    seed: int | None = None

    def validate(self) -> None:
        if self.factory_size <= 0:
            raise ValueError(f"factory_size must be positive, got {self.factory_size}")
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")
        for name in ("obstacle_density", "ue_density", "bs_density"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass
class StationSnapshot:
    bs_id: str
    position: Vec3
    height: float
    vendor: str
    band: str
    status: str
    connected_ues: list[str]
    load: float


@dataclass
class AgentSnapshot:
    agv_id: str
    imei: str
    position: Vec3
    heading: float
    speed: float
    battery_percentage: float
    task: AGVTask
    status: AGVStatus
    target_position: Vec3 | None
    path: list[Vec3]
    path_index: int
    connected_bs: str | None
    rsrp_dbm: float
    sinr_db: float
    throughput_mbps: float
    is_blocked: bool


@dataclass
class NetworkStats:
    total_agents: int = 0
    connected_agents: int = 0
    coverage: float = 0.0
    avg_rsrp_dbm: float = 0.0
    avg_sinr_db: float = 0.0
    total_throughput_mbps: float = 0.0


@dataclass
class WorldSnapshot:
    sim_time: float
    paused: bool
    generation: int
    factory_size: float
    stations: list[StationSnapshot] = field(default_factory=list)
    agents: list[AgentSnapshot] = field(default_factory=list)
    bodies: list[tuple[BodyKind, Box]] = field(default_factory=list)
    stats: NetworkStats = field(default_factory=NetworkStats)
