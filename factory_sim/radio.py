"""Radio link budget, cell selection with handover hysteresis, SINR and throughput."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from .enums import LinkQuality
from .constants import (
    REFERENCE_DISTANCE, REFERENCE_LOSS_DB, PATH_LOSS_EXPONENT,
    OBSTACLE_SHADOW_LOSS_DB, BS_TX_POWER_DBM, THERMAL_NOISE_DBM_HZ,
    NOISE_BANDWIDTH_HZ, HANDOVER_MARGIN_DB, SPECTRAL_SCALE,
    THROUGHPUT_CAP_MBPS, THROUGHPUT_JITTER, RSRP_FLOOR_DBM, SINR_FLOOR_DB,
    THROUGHPUT_FLOOR_MBPS, LINK_QUALITY_THRESHOLDS,
)
from .geometry import Box, Vec3, distance, raycast, sub

if TYPE_CHECKING:
    from .models import BaseStation
    from .world import World

logger = logging.getLogger(__name__)


@dataclass
class Signal:
    """Received power from one station at one agent."""

    bs_id: str
    rsrp_dbm: float
    distance: float
    line_of_sight: bool


@dataclass
class Handover:
    """An agent changed (or acquired) its serving station."""

    agv_id: str
    from_bs: str | None
    to_bs: str
    rsrp_dbm: float
    sim_time: float


# ============================================================
# LINK BUDGET
# ============================================================

def path_loss_db(dist: float, obstructed: bool = False) -> float:
    """Log-distance path loss, plus a fixed shadowing penalty without line of sight."""
    d = max(dist, REFERENCE_DISTANCE)
    loss = REFERENCE_LOSS_DB + 10 * PATH_LOSS_EXPONENT * math.log10(d)
    if obstructed:
        loss += OBSTACLE_SHADOW_LOSS_DB
    return loss


def received_power_dbm(dist: float, obstructed: bool = False, tx_power_dbm: float = BS_TX_POWER_DBM) -> float:
    return tx_power_dbm - path_loss_db(dist, obstructed)


def dbm_to_watts(dbm: float) -> float:
    return 10 ** ((dbm - 30) / 10)


def thermal_noise_watts() -> float:
    return dbm_to_watts(THERMAL_NOISE_DBM_HZ + 10 * math.log10(NOISE_BANDWIDTH_HZ))


def line_of_sight(origin: Vec3, target: Vec3, blockers: Iterable[Box]) -> bool:
    """``True`` unless some blocker is hit strictly before *target*."""
    dist = distance(origin, target)
    if dist == 0.0:
        return True
    hit = raycast(origin, sub(target, origin), blockers)
    return hit is None or hit >= dist


def measure_signals(
    position: Vec3,
    stations: Iterable[BaseStation],
    blockers: list[Box],
) -> list[Signal]:
    """Received power from every station, strongest first."""
    signals: list[Signal] = []
    for bs in stations:
        dist = distance(position, bs.position)
        los = line_of_sight(position, bs.position, blockers)
        signals.append(Signal(bs.bs_id, received_power_dbm(dist, not los), dist, los))
    signals.sort(key=lambda s: s.rsrp_dbm, reverse=True)
    return signals


# ============================================================
# CELL SELECTION
# ============================================================

def select_serving(
    signals: list[Signal],
    current_bs: str | None,
    margin_db: float = HANDOVER_MARGIN_DB,
) -> tuple[str | None, bool]:
    """Pick the serving station for one agent.

    The current station is kept unless the strongest station beats it by more
    than *margin_db*. An agent with no (or a vanished) serving station always
    attaches to the strongest one. Returns ``(serving_id, changed)``.
    """
    if not signals:
        return None, current_bs is not None
    best = max(signals, key=lambda s: s.rsrp_dbm)
    current = next((s for s in signals if s.bs_id == current_bs), None)
    if current is None:
        return best.bs_id, True
    if best.bs_id != current.bs_id and best.rsrp_dbm > current.rsrp_dbm + margin_db:
        return best.bs_id, True
    return current.bs_id, False


# ============================================================
# LINK QUALITY
# ============================================================

def compute_sinr_db(serving_dbm: float, interferers_dbm: Iterable[float]) -> float:
    interference = sum(dbm_to_watts(p) for p in interferers_dbm)
    return 10 * math.log10(dbm_to_watts(serving_dbm) / (interference + thermal_noise_watts()))


def estimate_throughput(sinr_db: float, rng: random.Random | None = None) -> float:
    """Shannon-style throughput estimate in Mbps with cosmetic random jitter.

    Zero at or below the SINR floor.
    """
    if sinr_db <= SINR_FLOOR_DB:
        return THROUGHPUT_FLOOR_MBPS
    spectral_efficiency = math.log2(1 + 10 ** (sinr_db / 10))
    jitter = (rng or random).uniform(*THROUGHPUT_JITTER)
    return min(spectral_efficiency * SPECTRAL_SCALE, THROUGHPUT_CAP_MBPS) * jitter


def link_quality(sinr_db: float) -> LinkQuality:
    for threshold, quality in LINK_QUALITY_THRESHOLDS:
        if sinr_db > threshold:
            return quality
    return LinkQuality.POOR


# ============================================================
# PER-TICK UPDATE
# ============================================================

def update_connectivity(world: World) -> list[Handover]:
    """Recompute association and link metrics for every agent against every station."""
    handovers: list[Handover] = []
    blockers = world.blocker_boxes()
    for bs in world.stations:
        bs.connected_ues = []

    for agv in world.agvs:
        signals = measure_signals(agv.position, world.stations, blockers)
        serving_id, changed = select_serving(signals, agv.connected_bs)

        if changed and serving_id is not None:
            serving = next(s for s in signals if s.bs_id == serving_id)
            logger.debug(
                "%s -> %s (RSRP: %.1f dBm)", agv.agv_id, serving_id, serving.rsrp_dbm,
            )
            handovers.append(
                Handover(agv.agv_id, agv.connected_bs, serving_id, serving.rsrp_dbm, world.sim_time)
            )
            if agv.connected_bs is not None:
                agv.handovers += 1
        agv.connected_bs = serving_id

        if serving_id is None:
            agv.rsrp_dbm = RSRP_FLOOR_DBM
            agv.sinr_db = SINR_FLOOR_DB
            agv.throughput_mbps = THROUGHPUT_FLOOR_MBPS
            continue

        serving_dbm = 0.0
        interferers: list[float] = []
        for s in signals:
            if s.bs_id == serving_id:
                serving_dbm = s.rsrp_dbm
            else:
                interferers.append(s.rsrp_dbm)
        agv.rsrp_dbm = serving_dbm
        agv.sinr_db = compute_sinr_db(serving_dbm, interferers)
        agv.throughput_mbps = estimate_throughput(agv.sinr_db, world.rng)
        world.station(serving_id).connected_ues.append(agv.agv_id)

    return handovers


def steering_angles(world: World) -> dict[str, list[dict]]:
    """Beam steering towards each connected agent, per station.

    Returns ``{bs_id: [{"agv_id", "azimuth_deg", "elevation_deg"}, ...]}``;
    azimuth is measured in the floor plane from +z towards +x.
    """
    solutions: dict[str, list[dict]] = {bs.bs_id: [] for bs in world.stations}
    for bs in world.stations:
        antenna = (bs.position[0], bs.position[1] + bs.height, bs.position[2])
        for agv_id in bs.connected_ues:
            agv = world.agv(agv_id)
            dx, dy, dz = sub(agv.position, antenna)
            dist = math.sqrt(dx * dx + dy * dy + dz * dz)
            if dist == 0.0:
                continue
            solutions[bs.bs_id].append({
                "agv_id": agv_id,
                "azimuth_deg": round(math.degrees(math.atan2(dx, dz)), 1),
                "elevation_deg": round(math.degrees(math.asin(dy / dist)), 1),
            })
    return solutions
