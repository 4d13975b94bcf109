from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


DEFAULT_SENSOR_ANGLES = (-0.7, -0.35, 0.0, 0.35, 0.7)


@dataclass
class VehicleState:
    x: float
    y: float
    heading: float
    speed: float


@dataclass
class VehicleParams:
    half_length: float
    half_width: float
    max_speed: float
    accel: float
    brake: float
    friction: float
    turn_rate: float
    sensor_range: float
    sensor_angles: tuple[float, ...] = DEFAULT_SENSOR_ANGLES
    reverse_factor: float = 0.4


@dataclass
class ControllerGains:
    steer_gain: float = 1.2
    avoid_gain: float = 0.01
    turn_limit: float = 1.5
    danger_floor: float = 0.2
    speed_gain: float = 4.0


@dataclass
class CollisionResponse:
    bounce: float = -0.3
    pushback: float = 10.0


@dataclass
class ControlCommand:
    longitudinal: float = 0.0
    turn: float = 0.0


@dataclass(frozen=True)
class SensorReading:
    hit: bool
    distance: float


@dataclass(frozen=True)
class Rect:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def expanded(self, margin: float) -> Rect:
        return Rect(
            min_x=self.min_x - margin,
            min_y=self.min_y - margin,
            max_x=self.max_x + margin,
            max_y=self.max_y + margin,
        )


@dataclass(frozen=True)
class Box:
    min: tuple[float, ...]
    max: tuple[float, ...]


@dataclass(frozen=True)
class Goal:
    x: float
    y: float
    radius: float
    arrival_margin: float = 0.0


class SimulationStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COLLIDED = "collided"
    GOAL_REACHED = "goal_reached"


@dataclass
class Metrics:
    elapsed_s: float
    collisions: int
    distance_to_goal: float


@dataclass
class StepResult:
    state: VehicleState
    pose: tuple[float, ...]
    readings: list[SensorReading]
    status: SimulationStatus
    metrics: Metrics
    command: ControlCommand
    event: Optional[str] = None
    status_text: str = ""
