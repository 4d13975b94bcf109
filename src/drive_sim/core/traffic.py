from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Sequence

from drive_sim.core.geometry import dot
from drive_sim.core.types import Rect, VehicleState


log = logging.getLogger(__name__)

TRAFFIC_AXES = ("x", "y")


@dataclass
class TrafficCar:
    """Background vehicle driving back and forth along one planar axis."""

    id: int
    x: float
    y: float
    axis: str
    cruise_speed: float
    speed: float
    limit: float = 45.0
    half_length: float = 2.0
    half_width: float = 1.0

    @property
    def forward(self) -> tuple[float, float]:
        sign = 1.0 if self.cruise_speed >= 0.0 else -1.0
        if self.axis == "x":
            return (sign, 0.0)
        return (0.0, sign)

    @property
    def heading(self) -> float:
        fx, fy = self.forward
        return math.atan2(fy, fx)

    def footprint(self) -> Rect:
        if self.axis == "x":
            hx, hy = self.half_length, self.half_width
        else:
            hx, hy = self.half_width, self.half_length
        return Rect(min_x=self.x - hx, min_y=self.y - hy, max_x=self.x + hx, max_y=self.y + hy)


@dataclass
class YieldPolicy:
    check_radius: float = 6.0
    ego_extra_radius: float = 2.0
    cone_cos: float = 0.7
    stop_rate: float = 5.0
    resume_rate: float = 2.0


def _ahead(car: TrafficCar, point: tuple[float, float], radius: float, cone_cos: float) -> bool:
    dx = point[0] - car.x
    dy = point[1] - car.y
    dist = math.hypot(dx, dy)
    if dist >= radius or dist < 1e-9:
        return False
    return dot(car.forward, (dx / dist, dy / dist)) > cone_cos


def is_blocked(
    car: TrafficCar,
    others: Sequence[TrafficCar],
    ego: VehicleState,
    policy: YieldPolicy,
) -> bool:
    for other in others:
        if other.id == car.id:
            continue
        if _ahead(car, (other.x, other.y), policy.check_radius, policy.cone_cos):
            return True
    return _ahead(car, (ego.x, ego.y), policy.check_radius + policy.ego_extra_radius, policy.cone_cos)


def _ease(current: float, target: float, rate: float, dt: float) -> float:
    alpha = min(1.0, max(0.0, rate * dt))
    return current + (target - current) * alpha


def _wrap_coordinate(value: float, limit: float) -> float:
    if value > limit:
        return -limit
    if value < -limit:
        return limit
    return value


def update_traffic(
    cars: Sequence[TrafficCar],
    ego: VehicleState,
    dt: float,
    policy: YieldPolicy,
) -> list[TrafficCar]:
    # Blocking is judged on the positions at the start of the tick for every car.
    updated: list[TrafficCar] = []
    for car in cars:
        blocked = is_blocked(car, cars, ego, policy)
        if blocked:
            speed = _ease(car.speed, 0.0, policy.stop_rate, dt)
        else:
            speed = _ease(car.speed, car.cruise_speed, policy.resume_rate, dt)

        x, y = car.x, car.y
        if car.axis == "x":
            x = _wrap_coordinate(x + speed * dt, car.limit)
        else:
            y = _wrap_coordinate(y + speed * dt, car.limit)

        if blocked and abs(car.speed) > 0.5 >= abs(speed):
            log.debug("traffic car %d yielding at (%.1f, %.1f)", car.id, x, y)
        updated.append(replace(car, x=x, y=y, speed=speed))
    return updated
