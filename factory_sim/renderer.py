"""All pygame rendering functions for the factory simulation viewer."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import pygame

from .enums import AGVStatus, BodyKind
from .constants import (
    MAP_PIXELS, PANEL_WIDTH, FLOOR_COLOR, GRID_COLOR, BODY_COLORS,
    STATION_COLOR, SELECTED_COLOR, AGENT_OUTLINE, LINK_COLORS,
    PANEL_BG, PANEL_TEXT, PANEL_HEADER, PANEL_SEPARATOR,
    PANEL_GREEN, PANEL_YELLOW, PANEL_RED,
)
from .radio import link_quality

if TYPE_CHECKING:
    from .geometry import Box, Vec3
    from .models import AgentSnapshot, StationSnapshot, WorldSnapshot


class View:
    """Maps world x/z coordinates to map pixels."""

    def __init__(self, factory_size: float) -> None:
        self.factory_size = factory_size
        self.scale = MAP_PIXELS / factory_size

    def to_screen(self, point: Vec3) -> tuple[int, int]:
        half = self.factory_size / 2
        return (int((point[0] + half) * self.scale), int((point[2] + half) * self.scale))

    def to_world(self, px: int, py: int) -> Vec3:
        half = self.factory_size / 2
        return (px / self.scale - half, 0.5, py / self.scale - half)

    def rect(self, box: Box) -> pygame.Rect:
        x0, y0 = self.to_screen(box.min)
        x1, y1 = self.to_screen(box.max)
        return pygame.Rect(x0, y0, max(1, x1 - x0), max(1, y1 - y0))


def draw_floor(surface: pygame.Surface, view: View, grid_step: float = 12.5) -> None:
    pygame.draw.rect(surface, FLOOR_COLOR, pygame.Rect(0, 0, MAP_PIXELS, MAP_PIXELS))
    steps = int(view.factory_size / grid_step)
    for k in range(steps + 1):
        p = int(k * grid_step * view.scale)
        pygame.draw.line(surface, GRID_COLOR, (p, 0), (p, MAP_PIXELS))
        pygame.draw.line(surface, GRID_COLOR, (0, p), (MAP_PIXELS, p))


def draw_body(surface: pygame.Surface, view: View, kind: BodyKind, box: Box) -> None:
    """Draw a body footprint; the charger is drawn as a disc."""
    color = BODY_COLORS[kind]
    rect = view.rect(box)
    if kind == BodyKind.CHARGER:
        pygame.draw.circle(surface, color, rect.center, rect.width // 2, 3)
    else:
        pygame.draw.rect(surface, color, rect)
        if kind == BodyKind.OBSTACLE:
            pygame.draw.rect(surface, (60, 70, 85), rect, 1)


def draw_station(
    surface: pygame.Surface,
    view: View,
    bs: StationSnapshot,
    font: pygame.font.Font,
    selected: bool = False,
) -> None:
    cx, cy = view.to_screen(bs.position)
    radius = 9
    if bs.load > 75:
        color = PANEL_RED
    elif bs.load > 50:
        color = PANEL_YELLOW
    else:
        color = STATION_COLOR
    pygame.draw.circle(surface, color, (cx, cy), radius)
    pygame.draw.circle(surface, SELECTED_COLOR if selected else (255, 255, 255), (cx, cy), radius, 2)
    txt = font.render(bs.bs_id, True, (0, 255, 255))
    surface.blit(txt, txt.get_rect(center=(cx, cy - radius - 8)))


def draw_link(
    surface: pygame.Surface,
    view: View,
    agent: AgentSnapshot,
    bs: StationSnapshot,
) -> None:
    color = LINK_COLORS[link_quality(agent.sinr_db)]
    pygame.draw.line(surface, color, view.to_screen(agent.position), view.to_screen(bs.position), 1)


def draw_agent(
    surface: pygame.Surface,
    view: View,
    agent: AgentSnapshot,
    font: pygame.font.Font,
    selected: bool = False,
) -> None:
    """Draw an AGV coloured by link quality, with heading tick and path dots when selected."""
    if selected and agent.path and agent.status == AGVStatus.MOVING:
        for wp in agent.path[agent.path_index:]:
            pygame.draw.circle(surface, (0, 200, 0), view.to_screen(wp), 2)

    cx, cy = view.to_screen(agent.position)
    radius = 6
    color = LINK_COLORS[link_quality(agent.sinr_db)] if agent.connected_bs else (120, 120, 120)
    pygame.draw.circle(surface, color, (cx, cy), radius)
    pygame.draw.circle(surface, SELECTED_COLOR if selected else AGENT_OUTLINE, (cx, cy), radius, 2)
    hx = cx + int(math.sin(agent.heading) * (radius + 4))
    hy = cy + int(math.cos(agent.heading) * (radius + 4))
    pygame.draw.line(surface, AGENT_OUTLINE, (cx, cy), (hx, hy), 2)

    if agent.is_blocked:
        pygame.draw.circle(surface, (255, 140, 0), (cx, cy), radius + 3, 2)

    label = agent.agv_id.split("-")[-1]
    txt = font.render(label, True, (255, 215, 0))
    surface.blit(txt, txt.get_rect(center=(cx, cy - radius - 7)))


def draw_metrics_panel(
    surface: pygame.Surface,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
    snap: WorldSnapshot,
    time_scale: float,
    selected_agent: AgentSnapshot | None = None,
    selected_station: StationSnapshot | None = None,
) -> None:
    """Draw the metrics panel on the right side of the window."""
    px = MAP_PIXELS
    pygame.draw.rect(surface, PANEL_BG, pygame.Rect(px, 0, PANEL_WIDTH, MAP_PIXELS))

    y = 10
    line_h = 16
    section_gap = 8

    def header(text: str) -> None:
        nonlocal y
        pygame.draw.line(surface, PANEL_SEPARATOR, (px + 10, y), (px + PANEL_WIDTH - 10, y))
        y += 4
        surface.blit(font_md.render(text, True, PANEL_HEADER), (px + 10, y))
        y += line_h + 4

    def row(label_text: str, value: str, color: tuple = PANEL_TEXT) -> None:
        nonlocal y
        surface.blit(font_sm.render(f"  {label_text}: {value}", True, color), (px + 8, y))
        y += line_h

    # 1. SIMULATION
    header("SIMULATION")
    mins = int(snap.sim_time // 60)
    secs = int(snap.sim_time % 60)
    row("Elapsed", f"{mins:02d}:{secs:02d}")
    row("Speed", f"{time_scale}x")
    row("Status", "PAUSED" if snap.paused else "Running", PANEL_RED if snap.paused else PANEL_GREEN)
    row("Generation", str(snap.generation))
    y += section_gap

    # 2. NETWORK HEALTH
    header("NETWORK HEALTH")
    stats = snap.stats
    row("Throughput", f"{stats.total_throughput_mbps:.1f} Mbps")
    row("Connected", f"{stats.connected_agents}/{stats.total_agents} UEs")
    row("Avg. RSRP", f"{stats.avg_rsrp_dbm:.1f} dBm")
    row("Avg. SINR", f"{stats.avg_sinr_db:.1f} dB")
    y += section_gap

    # 3. SELECTED gNodeB
    header("SELECTED gNodeB")
    if selected_station:
        bs = selected_station
        row("ID", bs.bs_id)
        row("Status", bs.status)
        row("Vendor", bs.vendor)
        row("Band", bs.band)
        row("Position", f"X:{bs.position[0]:.0f} Y:{bs.position[1]:.0f} Z:{bs.position[2]:.0f}")
        row("Connected UEs", str(len(bs.connected_ues)))
        load_color = PANEL_RED if bs.load > 75 else PANEL_YELLOW if bs.load > 50 else PANEL_GREEN
        row("Load", f"{bs.load:.0f}%", load_color)
    else:
        row("None", "(S to select)")
    y += section_gap

    # 4. SELECTED AGV
    header("SELECTED AGV")
    if selected_agent:
        a = selected_agent
        row("ID", a.agv_id)
        row("IMEI", a.imei)
        row("Status", a.status.value)
        row("Task", a.task.value)
        row("Speed", f"{a.speed if a.status == AGVStatus.MOVING else 0.0:.1f} m/s")
        row("Position", f"X:{a.position[0]:.1f} Z:{a.position[2]:.1f}")
        battery_color = PANEL_RED if a.battery_percentage < 20 else PANEL_TEXT
        row("Battery", f"{a.battery_percentage:.0f}%", battery_color)
        row("Serving", a.connected_bs or "None")
        row("RSRP", f"{a.rsrp_dbm:.1f} dBm")
        row("SINR", f"{a.sinr_db:.1f} dB")
        row("Throughput", f"{a.throughput_mbps:.1f} Mbps")
        if a.is_blocked:
            row("Blocked", "yes", PANEL_RED)
    else:
        row("None", "(TAB to select)")

    controls_y = MAP_PIXELS - 20
    ctrl_txt = font_sm.render(
        "Space:Pause R:Reset Up/Dn:Speed TAB:AGV S:gNodeB", True, PANEL_SEPARATOR,
    )
    surface.blit(ctrl_txt, (px + 10, controls_y))


def render(
    screen: pygame.Surface,
    snap: WorldSnapshot,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
    time_scale: float = 1.0,
    selected_agent_id: str | None = None,
    selected_station_id: str | None = None,
) -> None:
    """Full frame render: floor → bodies → links → stations → AGVs → panel."""
    view = View(snap.factory_size)
    draw_floor(screen, view)

    layer_order = [BodyKind.WORKSTATION, BodyKind.CHARGER, BodyKind.OBSTACLE, BodyKind.WALL]
    for kind in layer_order:
        for body_kind, box in snap.bodies:
            if body_kind == kind:
                draw_body(screen, view, body_kind, box)

    stations = {bs.bs_id: bs for bs in snap.stations}
    for agent in snap.agents:
        if agent.connected_bs in stations:
            draw_link(screen, view, agent, stations[agent.connected_bs])

    for bs in snap.stations:
        draw_station(screen, view, bs, font_sm, selected=bs.bs_id == selected_station_id)

    selected_agent = None
    for agent in snap.agents:
        is_selected = agent.agv_id == selected_agent_id
        if is_selected:
            selected_agent = agent
        draw_agent(screen, view, agent, font_sm, selected=is_selected)

    draw_metrics_panel(
        screen, font_sm, font_md, snap, time_scale,
        selected_agent=selected_agent,
        selected_station=stations.get(selected_station_id) if selected_station_id else None,
    )
