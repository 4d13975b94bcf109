from __future__ import annotations

import logging

from drive_sim.core.simulator import AUTONOMOUS, Simulation
from drive_sim.scenarios.registry import load_bundled


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_simulation(scenario: str, mode: str = AUTONOMOUS) -> Simulation:
    return Simulation(load_bundled(scenario), mode=mode)
