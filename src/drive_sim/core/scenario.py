from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

from drive_sim.core.errors import ScenarioError
from drive_sim.core.geometry import RAY_METHODS
from drive_sim.core.space import Space, make_space
from drive_sim.core.traffic import TRAFFIC_AXES, TrafficCar
from drive_sim.core.types import (
    DEFAULT_SENSOR_ANGLES,
    Box,
    CollisionResponse,
    ControllerGains,
    Goal,
    Rect,
    VehicleParams,
    VehicleState,
)


TUNABLE_FIELDS = ("max_speed", "accel", "brake", "friction", "turn_rate", "sensor_range")


@dataclass
class ParameterRange:
    name: str
    unit: str
    min: float
    max: float
    description: str = ""

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass
class Scenario:
    name: str
    space: Space
    bounds: Rect
    goal: Goal
    start: VehicleState
    vehicle: VehicleParams
    obstacles: list[Box] = field(default_factory=list)
    bounds_margin: float = 0.0
    gains: ControllerGains = field(default_factory=ControllerGains)
    collision: CollisionResponse = field(default_factory=CollisionResponse)
    sensor_step: float = 1.0
    sensor_method: str = "march"
    traffic_margin: float = 1.0
    traffic: list[TrafficCar] = field(default_factory=list)
    tunables: dict[str, ParameterRange] = field(default_factory=dict)


def _read_float(data: Mapping[str, Any], key: str, default: Any = None) -> float:
    if key not in data:
        if default is None:
            raise ScenarioError(f"missing required field '{key}'")
        return float(default)
    try:
        return float(data[key])
    except (TypeError, ValueError) as exc:
        raise ScenarioError(f"field '{key}' must be a number, got {data[key]!r}") from exc


def _read_point(space: Space, values: Sequence[float]) -> tuple[float, float]:
    if len(values) not in (2, space.dims):
        raise ScenarioError(f"point {list(values)!r} does not match a {space.dims}D space")
    return space.planar([float(v) for v in values])


def _read_box(data: Mapping[str, Any]) -> Box:
    if "min" in data and "max" in data:
        return Box(min=tuple(float(v) for v in data["min"]), max=tuple(float(v) for v in data["max"]))
    # 2D shorthand: top-left corner plus width/height.
    x = _read_float(data, "x")
    y = _read_float(data, "y")
    return Box(min=(x, y), max=(x + _read_float(data, "w"), y + _read_float(data, "h")))


def _read_vehicle(data: Mapping[str, Any]) -> VehicleParams:
    angles = data.get("sensor_angles", DEFAULT_SENSOR_ANGLES)
    return VehicleParams(
        half_length=_read_float(data, "half_length"),
        half_width=_read_float(data, "half_width"),
        max_speed=_read_float(data, "max_speed"),
        accel=_read_float(data, "accel"),
        brake=_read_float(data, "brake"),
        friction=_read_float(data, "friction"),
        turn_rate=_read_float(data, "turn_rate"),
        sensor_range=_read_float(data, "sensor_range"),
        sensor_angles=tuple(float(a) for a in angles),
        reverse_factor=_read_float(data, "reverse_factor", 0.4),
    )


def _read_gains(data: Mapping[str, Any]) -> ControllerGains:
    defaults = ControllerGains()
    return ControllerGains(
        steer_gain=_read_float(data, "steer_gain", defaults.steer_gain),
        avoid_gain=_read_float(data, "avoid_gain", defaults.avoid_gain),
        turn_limit=_read_float(data, "turn_limit", defaults.turn_limit),
        danger_floor=_read_float(data, "danger_floor", defaults.danger_floor),
        speed_gain=_read_float(data, "speed_gain", defaults.speed_gain),
    )


def _read_traffic(space: Space, items: Sequence[Mapping[str, Any]]) -> list[TrafficCar]:
    cars: list[TrafficCar] = []
    for i, item in enumerate(items):
        x, y = _read_point(space, item["position"])
        axis = str(item.get("axis", "x"))
        # World z is the planar y axis on a ground plane.
        if axis == "z":
            axis = "y"
        speed = _read_float(item, "speed")
        cars.append(
            TrafficCar(
                id=i,
                x=x,
                y=y,
                axis=axis,
                cruise_speed=speed,
                speed=speed,
                limit=_read_float(item, "limit", 45.0),
                half_length=_read_float(item, "half_length", 2.0),
                half_width=_read_float(item, "half_width", 1.0),
            )
        )
    return cars


def _read_tunables(data: Mapping[str, Any]) -> dict[str, ParameterRange]:
    out: dict[str, ParameterRange] = {}
    for name, spec in data.items():
        out[name] = ParameterRange(
            name=name,
            unit=str(spec.get("unit", "")),
            min=_read_float(spec, "min"),
            max=_read_float(spec, "max"),
            description=str(spec.get("description", "")),
        )
    return out


def scenario_from_dict(data: Mapping[str, Any]) -> Scenario:
    try:
        space = make_space(data.get("space", {}))
        bounds_min = _read_point(space, data["bounds"]["min"])
        bounds_max = _read_point(space, data["bounds"]["max"])
        goal_data = data["goal"]
        goal_x, goal_y = _read_point(space, goal_data["position"])
        start_data = data["start"]
        start_x, start_y = _read_point(space, start_data["position"])
        collision_data = data.get("collision", {})
        sensor_data = data.get("sensor", {})
        defaults = CollisionResponse()

        scenario = Scenario(
            name=str(data["name"]),
            space=space,
            bounds=Rect(min_x=bounds_min[0], min_y=bounds_min[1], max_x=bounds_max[0], max_y=bounds_max[1]),
            bounds_margin=_read_float(data, "bounds_margin", 0.0),
            obstacles=[_read_box(item) for item in data.get("obstacles", [])],
            goal=Goal(
                x=goal_x,
                y=goal_y,
                radius=_read_float(goal_data, "radius"),
                arrival_margin=_read_float(goal_data, "arrival_margin", 0.0),
            ),
            start=VehicleState(
                x=start_x,
                y=start_y,
                heading=_read_float(start_data, "heading", 0.0),
                speed=_read_float(start_data, "speed", 0.0),
            ),
            vehicle=_read_vehicle(data["vehicle"]),
            gains=_read_gains(data.get("controller", {})),
            collision=CollisionResponse(
                bounce=_read_float(collision_data, "bounce", defaults.bounce),
                pushback=_read_float(collision_data, "pushback", defaults.pushback),
            ),
            sensor_step=_read_float(sensor_data, "step", 1.0),
            sensor_method=str(sensor_data.get("method", "march")),
            traffic_margin=_read_float(sensor_data, "traffic_margin", 1.0),
            traffic=_read_traffic(space, data.get("traffic", [])),
            tunables=_read_tunables(data.get("tunables", {})),
        )
    except KeyError as exc:
        raise ScenarioError(f"missing required field {exc}") from exc
    except ValueError as exc:
        if isinstance(exc, ScenarioError):
            raise
        raise ScenarioError(str(exc)) from exc
    validate_scenario(scenario)
    return scenario


def load_scenario(path: Union[str, Path]) -> Scenario:
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    return scenario_from_dict(data)


def _require_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ScenarioError(f"{name} must be finite, got {value}")


def _require_positive(name: str, value: float) -> None:
    _require_finite(name, value)
    if value <= 0.0:
        raise ScenarioError(f"{name} must be > 0, got {value}")


def _require_non_negative(name: str, value: float) -> None:
    _require_finite(name, value)
    if value < 0.0:
        raise ScenarioError(f"{name} must be >= 0, got {value}")


def validate_vehicle(params: VehicleParams) -> None:
    for name in ("half_length", "half_width", "max_speed", "accel", "brake", "turn_rate"):
        _require_positive(f"vehicle.{name}", getattr(params, name))
    _require_non_negative("vehicle.friction", params.friction)
    _require_non_negative("vehicle.sensor_range", params.sensor_range)
    _require_finite("vehicle.reverse_factor", params.reverse_factor)
    if not 0.0 < params.reverse_factor <= 1.0:
        raise ScenarioError(f"vehicle.reverse_factor must be within (0, 1], got {params.reverse_factor}")
    if not params.sensor_angles:
        raise ScenarioError("vehicle.sensor_angles must not be empty")
    for angle in params.sensor_angles:
        _require_finite("vehicle.sensor_angles", angle)
    if list(params.sensor_angles) != sorted(params.sensor_angles):
        raise ScenarioError("vehicle.sensor_angles must be ordered left to right (ascending)")


def validate_scenario(scenario: Scenario) -> None:
    bounds = scenario.bounds
    for name in ("min_x", "min_y", "max_x", "max_y"):
        _require_finite(f"bounds.{name}", getattr(bounds, name))
    if bounds.min_x >= bounds.max_x or bounds.min_y >= bounds.max_y:
        raise ScenarioError(f"bounds are empty or inverted: {bounds}")
    _require_non_negative("bounds_margin", scenario.bounds_margin)
    if 2.0 * scenario.bounds_margin >= min(bounds.max_x - bounds.min_x, bounds.max_y - bounds.min_y):
        raise ScenarioError("bounds_margin leaves no drivable area")

    validate_vehicle(scenario.vehicle)

    gains = scenario.gains
    for name in ("steer_gain", "avoid_gain", "speed_gain"):
        _require_non_negative(f"controller.{name}", getattr(gains, name))
    _require_positive("controller.turn_limit", gains.turn_limit)
    _require_finite("controller.danger_floor", gains.danger_floor)
    if not 0.0 <= gains.danger_floor <= 1.0:
        raise ScenarioError(f"controller.danger_floor must be within [0, 1], got {gains.danger_floor}")

    _require_finite("collision.bounce", scenario.collision.bounce)
    _require_non_negative("collision.pushback", scenario.collision.pushback)
    _require_positive("sensor.step", scenario.sensor_step)
    _require_non_negative("sensor.traffic_margin", scenario.traffic_margin)
    if scenario.sensor_method not in RAY_METHODS:
        raise ScenarioError(
            f"sensor.method must be one of {', '.join(RAY_METHODS)}, got '{scenario.sensor_method}'"
        )

    goal = scenario.goal
    _require_positive("goal.radius", goal.radius)
    _require_non_negative("goal.arrival_margin", goal.arrival_margin)
    if not bounds.contains(goal.x, goal.y):
        raise ScenarioError(f"goal ({goal.x}, {goal.y}) lies outside the world bounds")

    start = scenario.start
    for name in ("x", "y", "heading", "speed"):
        _require_finite(f"start.{name}", getattr(start, name))
    if not bounds.contains(start.x, start.y):
        raise ScenarioError(f"start ({start.x}, {start.y}) lies outside the world bounds")

    for i, box in enumerate(scenario.obstacles):
        if len(box.min) != scenario.space.dims or len(box.max) != scenario.space.dims:
            raise ScenarioError(f"obstacle {i} does not match a {scenario.space.dims}D space")
        for lo, hi in zip(box.min, box.max):
            _require_finite(f"obstacle {i}", lo)
            _require_finite(f"obstacle {i}", hi)
            if lo > hi:
                raise ScenarioError(f"obstacle {i} has min > max: {box}")

    for car in scenario.traffic:
        if car.axis not in TRAFFIC_AXES:
            raise ScenarioError(f"traffic car {car.id} axis must be 'x' or 'z', got '{car.axis}'")
        _require_positive(f"traffic car {car.id} limit", car.limit)
        _require_positive(f"traffic car {car.id} half_length", car.half_length)
        _require_positive(f"traffic car {car.id} half_width", car.half_width)
        _require_finite(f"traffic car {car.id} speed", car.cruise_speed)

    for name, spec in scenario.tunables.items():
        if name not in TUNABLE_FIELDS:
            raise ScenarioError(f"unknown tunable '{name}', expected one of {', '.join(TUNABLE_FIELDS)}")
        if spec.min > spec.max:
            raise ScenarioError(f"tunable '{name}' has min > max")
        current = getattr(scenario.vehicle, name)
        if not spec.contains(current):
            raise ScenarioError(f"vehicle.{name}={current} lies outside its tunable range [{spec.min}, {spec.max}]")
