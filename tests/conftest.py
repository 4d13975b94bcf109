from __future__ import annotations

import copy
from typing import Any, Callable

import pytest

from drive_sim.core.scenario import Scenario, scenario_from_dict
from drive_sim.core.types import VehicleParams
from drive_sim.scenarios.registry import load_bundled


OPEN_FIELD: dict[str, Any] = {
    "name": "open_field",
    "space": {"kind": "plane"},
    "bounds": {"min": [-500, -500], "max": [500, 500]},
    "bounds_margin": 2,
    "obstacles": [],
    "goal": {"position": [300, 0], "radius": 3, "arrival_margin": 1.2},
    "start": {"position": [0, 0], "heading": 0.0},
    "vehicle": {
        "half_length": 3,
        "half_width": 1.5,
        "max_speed": 18,
        "accel": 25,
        "brake": 40,
        "friction": 10,
        "turn_rate": 1.8,
        "sensor_range": 22,
    },
    "controller": {"steer_gain": 1.4, "avoid_gain": 0.05, "turn_limit": 1.6, "danger_floor": 0.2, "speed_gain": 8.0},
    "collision": {"bounce": -0.3, "pushback": 2},
    "sensor": {"step": 0.4, "method": "march"},
}


@pytest.fixture
def scenario_data() -> dict[str, Any]:
    return copy.deepcopy(OPEN_FIELD)


@pytest.fixture
def make_scenario(scenario_data: dict[str, Any]) -> Callable[..., Scenario]:
    def _make(**overrides: Any) -> Scenario:
        data = copy.deepcopy(scenario_data)
        data.update(overrides)
        return scenario_from_dict(data)

    return _make


@pytest.fixture
def open_scenario(make_scenario: Callable[..., Scenario]) -> Scenario:
    return make_scenario()


@pytest.fixture
def canvas_scenario() -> Scenario:
    return load_bundled("canvas_2d")


@pytest.fixture
def plaza_scenario() -> Scenario:
    return load_bundled("plaza_3d")


@pytest.fixture
def params() -> VehicleParams:
    return VehicleParams(
        half_length=3.0,
        half_width=1.5,
        max_speed=18.0,
        accel=25.0,
        brake=40.0,
        friction=10.0,
        turn_rate=1.8,
        sensor_range=22.0,
    )
