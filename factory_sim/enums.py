from enum import Enum


class AGVStatus(Enum):
    IDLE   = "Idle"
    MOVING = "Moving"


class AGVTask(Enum):
    NONE                 = "None"
    TRANSPORTING_PARTS   = "Transporting Parts"
    MATERIAL_SUPPLY      = "Material Supply"
    WASTE_REMOVAL        = "Waste Removal"
    TOOL_DELIVERY        = "Tool Delivery"
    ASSEMBLY_TRANSFER    = "Assembly Transfer"
    CHARGING             = "Charging"


# Tasks an AGV can be given when its battery is healthy
WORK_TASKS = (
    AGVTask.TRANSPORTING_PARTS,
    AGVTask.MATERIAL_SUPPLY,
    AGVTask.WASTE_REMOVAL,
    AGVTask.TOOL_DELIVERY,
    AGVTask.ASSEMBLY_TRANSFER,
)


class StationStatus(Enum):
    ACTIVE   = "active"
    INACTIVE = "inactive"


class BodyKind(Enum):
    WALL        = "wall"          # Perimeter and interior walls
    OBSTACLE    = "obstacle"      # Machines, racks, pallets
    WORKSTATION = "workstation"   # Low pads AGVs drive onto
    CHARGER     = "charger"       # Charging pad


class LinkQuality(Enum):
    EXCELLENT = "excellent"   # SINR > 15 dB
    GOOD      = "good"        # SINR > 5 dB
    FAIR      = "fair"        # SINR > -5 dB
    POOR      = "poor"
