from .enums import BodyKind, LinkQuality

# ============================================================
# WORLD
# ============================================================
FACTORY_SIZE     = 250.0   # floor is FACTORY_SIZE x FACTORY_SIZE units, centred on origin
WALL_HEIGHT      = 10.0
WALL_THICKNESS   = 1.0
OBSTACLE_DENSITY = 30      # random obstacles placed at reset
UE_DENSITY       = 10      # AGVs created at reset
BS_DENSITY       = 4       # gNodeBs created at reset (max len(BS_SLOTS))
SPAWN_MARGIN     = 2.0     # keep agents this far inside the outer walls

OBSTACLE_PLACEMENT_ATTEMPTS = 20
OBSTACLE_MAX_FOOTPRINT      = 20.0   # obstacle x/z extent is (0.1..1.1) * this
OBSTACLE_EDGE_MARGIN        = 5.0

WORKSTATION_COUNT = 6
WORKSTATION_SIZE  = (12.0, 0.5, 12.0)
CHARGER_RADIUS    = 10.0

# Quadrant slots for base stations, as fractions of FACTORY_SIZE
BS_SLOTS = [(-0.25, -0.25), (0.25, -0.25), (-0.25, 0.25), (0.25, 0.25)]
BS_MAST_HEIGHT = 18.0

# Only these bodies block navigation and radio line of sight
COLLIDABLE_KINDS = (BodyKind.WALL, BodyKind.OBSTACLE)

# ============================================================
# NAVIGATION
# ============================================================
NAV_CELL_SIZE              = 2.5
OBSTACLE_CLEARANCE         = 0.6    # AABB inflation when rasterising bodies
SNAP_RADIUS                = 3      # rings searched for a free endpoint cell
WAYPOINT_REACHED_FACTOR    = 0.6    # x cell size
COLLISION_LOOKAHEAD_FACTOR = 1.2    # x cell size
STUCK_TIMEOUT              = 0.8    # seconds blocked before replanning
MAX_CONSECUTIVE_REPLANS    = 3      # replans without progress before giving up the task

# ============================================================
# AGENTS
# ============================================================
AGENT_HEIGHT          = 0.5
AGENT_SPEED_MIN       = 3.0     # units per second
AGENT_SPEED_SPREAD    = 2.0
BATTERY_DRAIN_RATE    = 0.1     # percent per second
BATTERY_CHARGE_RATE   = 10.0    # percent per second at the charger
LOW_BATTERY_THRESHOLD = 20.0

RETRY_DELAY_RANGE   = (0.5, 2.0)   # seconds before retrying after a planning failure
ARRIVAL_DELAY_RANGE = (0.8, 2.0)   # seconds idle at a destination before the next task

IMEI_PREFIX = "35824005"

# ============================================================
# RADIO
# ============================================================
REFERENCE_DISTANCE      = 1.0     # distances below this are clamped (log10 stays defined)
REFERENCE_LOSS_DB       = 32.45
PATH_LOSS_EXPONENT      = 2.5
OBSTACLE_SHADOW_LOSS_DB = 10.0
BS_TX_POWER_DBM         = 23.0
THERMAL_NOISE_DBM_HZ    = -174.0
NOISE_BANDWIDTH_HZ      = 20e6
HANDOVER_MARGIN_DB      = 3.0

SPECTRAL_SCALE       = 20.0      # Mbps per bit/s/Hz
THROUGHPUT_CAP_MBPS  = 400.0
THROUGHPUT_JITTER    = (0.8, 1.2)

RSRP_FLOOR_DBM        = -140.0
SINR_FLOOR_DB         = -20.0
THROUGHPUT_FLOOR_MBPS = 0.0

UES_PER_FULL_LOAD = 10   # a station serving this many UEs reports 100 % load

# Lower SINR bound (dB) for each quality bucket, best first
LINK_QUALITY_THRESHOLDS = [
    (15.0, LinkQuality.EXCELLENT),
    (5.0,  LinkQuality.GOOD),
    (-5.0, LinkQuality.FAIR),
]

VENDORS = ["Ericsson", "Nokia", "Huawei", "Samsung"]
BANDS = [
    {"name": "n78",  "freq": 3500},
    {"name": "n257", "freq": 28000},
    {"name": "n258", "freq": 26000},
]

# ============================================================
# PERSISTENCE
# ============================================================
SNAPSHOT_INTERVAL = 5.0   # sim-seconds between graph snapshots while running

# ============================================================
# VIEWER
# ============================================================
MAP_PIXELS    = 800
PANEL_WIDTH   = 320
WINDOW_WIDTH  = MAP_PIXELS + PANEL_WIDTH
WINDOW_HEIGHT = MAP_PIXELS
FPS = 30

SPEED_STEPS = [0.5, 1.0, 2.0, 5.0, 10.0]

PANEL_BG        = (30, 30, 40)
PANEL_TEXT      = (200, 200, 210)
PANEL_HEADER    = (140, 160, 255)
PANEL_SEPARATOR = (60, 60, 80)
PANEL_GREEN     = (80, 220, 100)
PANEL_YELLOW    = (230, 200, 60)
PANEL_RED       = (230, 70, 70)

FLOOR_COLOR   = (69, 73, 69)
GRID_COLOR    = (88, 96, 104)
BODY_COLORS = {
    BodyKind.WALL:        (150, 155, 160),
    BodyKind.OBSTACLE:    (113, 128, 150),
    BodyKind.WORKSTATION: (66, 153, 225),
    BodyKind.CHARGER:     (255, 255, 0),
}
STATION_COLOR  = (0, 170, 255)
SELECTED_COLOR = (255, 68, 68)
AGENT_OUTLINE  = (0, 0, 0)
LINK_COLORS = {
    LinkQuality.EXCELLENT: (0, 255, 0),
    LinkQuality.GOOD:      (255, 255, 0),
    LinkQuality.FAIR:      (255, 165, 0),
    LinkQuality.POOR:      (255, 0, 0),
}
