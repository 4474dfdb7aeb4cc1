"""Interactive pygame entry point.

Run with::

    python -m factory_sim

Set ``NEO4J_URI`` (and ``NEO4J_USER`` / ``NEO4J_PASS``) in the environment or
a ``.env`` file to mirror the simulation into a Neo4j knowledge graph.
"""

from __future__ import annotations

import logging
import os
import sys

import pygame

from .constants import WINDOW_WIDTH, WINDOW_HEIGHT, MAP_PIXELS, FPS, SPEED_STEPS
from .environment import verify_environment
from .errors import ConfigurationError, PersistenceFailure
from .graph_store import Neo4jGraphStore
from .renderer import View, render
from .world import World

logger = logging.getLogger(__name__)


def _open_store() -> Neo4jGraphStore | None:
    if not os.getenv("NEO4J_URI"):
        logger.info("NEO4J_URI not set; running without a knowledge graph.")
        return None
    try:
        store = Neo4jGraphStore.from_env()
        store.connect()
    except (ConfigurationError, PersistenceFailure, ValueError) as exc:
        logger.warning("Knowledge graph disabled: %s", exc)
        return None
    return store


def _cycle(ids: list[str], current: str | None) -> str | None:
    if not ids:
        return None
    if current not in ids:
        return ids[0]
    return ids[(ids.index(current) + 1) % len(ids)]


def main() -> None:
    """Launch the interactive factory simulation."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
    )

    pygame.init()
    screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
    pygame.display.set_caption("Factory Radio Simulation")
    clock = pygame.time.Clock()

    font_sm = pygame.font.SysFont("Arial", 11)
    font_md = pygame.font.SysFont("Arial", 14, bold=True)

    world = World(store=_open_store())
    verify_environment(world)

    logger.info("Window:    %dx%d px", WINDOW_WIDTH, WINDOW_HEIGHT)
    logger.info("Controls: Space=pause, R=reset, Up/Down=speed steps, TAB=cycle AGV, S=cycle gNodeB")
    logger.info("          Click=send selected AGV")
    logger.info("Press Q or close window to quit.")

    selected_agv: str | None = None
    selected_bs: str | None = None
    speed_index: int = 1
    time_scale: float = SPEED_STEPS[speed_index]

    running = True
    while running:
        dt = clock.tick(FPS) / 1000.0

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_q, pygame.K_ESCAPE):
                    running = False

                elif event.key == pygame.K_UP:
                    speed_index = min(speed_index + 1, len(SPEED_STEPS) - 1)
                    time_scale = SPEED_STEPS[speed_index]
                    logger.info("Speed: %sx", time_scale)

                elif event.key == pygame.K_DOWN:
                    speed_index = max(speed_index - 1, 0)
                    time_scale = SPEED_STEPS[speed_index]
                    logger.info("Speed: %sx", time_scale)

                elif event.key == pygame.K_SPACE:
                    world.toggle_pause()

                elif event.key == pygame.K_r:
                    world.reset()
                    verify_environment(world)
                    selected_agv = None
                    selected_bs = None

                elif event.key == pygame.K_TAB:
                    selected_agv = _cycle([a.agv_id for a in world.agvs], selected_agv)
                    if selected_agv:
                        logger.info("Selected %s", selected_agv)

                elif event.key == pygame.K_s:
                    selected_bs = _cycle([bs.bs_id for bs in world.stations], selected_bs)
                    if selected_bs:
                        logger.info("Selected %s", selected_bs)

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                mx, my = event.pos
                if mx >= MAP_PIXELS:
                    continue
                if selected_agv is None:
                    logger.info("Select an AGV with TAB first")
                    continue
                target = View(world.params.factory_size).to_world(mx, my)
                world.command_agent(selected_agv, target)

        world.tick(dt * time_scale)

        render(
            screen, world.snapshot(), font_sm, font_md, time_scale,
            selected_agent_id=selected_agv,
            selected_station_id=selected_bs,
        )
        pygame.display.flip()

    world.shutdown()
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
