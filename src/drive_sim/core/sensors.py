from __future__ import annotations

import math
from typing import Sequence

from drive_sim.core.geometry import RAY_METHODS, heading_vector, ray_rect_intersection_distance, raycast
from drive_sim.core.types import Rect, SensorReading, VehicleParams, VehicleState


class SensorArray:
    """Fixed fan of range sensors mounted on the vehicle.

    Readings come back in mount-angle order, most negative (leftmost) first.
    The array keeps no state between calls, so reading twice with unchanged
    inputs yields identical results.
    """

    def __init__(self, step: float, method: str = "march", traffic_margin: float = 1.0) -> None:
        if step <= 0.0:
            raise ValueError("sensor step must be > 0")
        if method not in RAY_METHODS:
            raise ValueError(f"unknown ray method '{method}', expected one of {', '.join(RAY_METHODS)}")
        self.step = step
        self.method = method
        self.traffic_margin = traffic_margin

    def ray_angles(self, state: VehicleState, params: VehicleParams) -> list[float]:
        return [state.heading + rel for rel in params.sensor_angles]

    def read_all(
        self,
        state: VehicleState,
        params: VehicleParams,
        obstacles: Sequence[Rect],
        bounds: Rect,
        traffic: Sequence[Rect] = (),
    ) -> list[SensorReading]:
        origin = (state.x, state.y)
        readings: list[SensorReading] = []
        for angle in self.ray_angles(state, params):
            reading = raycast(
                origin,
                angle,
                params.sensor_range,
                obstacles,
                bounds,
                step=self.step,
                method=self.method,
            )
            if traffic:
                reading = self._nearest_traffic(origin, angle, reading, traffic)
            readings.append(reading)
        return readings

    def _nearest_traffic(
        self,
        origin: tuple[float, float],
        angle: float,
        reading: SensorReading,
        traffic: Sequence[Rect],
    ) -> SensorReading:
        # Traffic is only reported when it is strictly closer than the static hit.
        direction = heading_vector(angle)
        best = reading.distance
        found = False
        for rect in traffic:
            d = ray_rect_intersection_distance(origin, direction, rect.expanded(self.traffic_margin))
            if d is not None and d < best:
                best = d
                found = True
        if found:
            return SensorReading(hit=True, distance=best)
        return reading

    def endpoints(
        self,
        state: VehicleState,
        params: VehicleParams,
        readings: Sequence[SensorReading],
    ) -> list[tuple[float, float]]:
        out: list[tuple[float, float]] = []
        for angle, reading in zip(self.ray_angles(state, params), readings):
            out.append(
                (
                    state.x + math.cos(angle) * reading.distance,
                    state.y + math.sin(angle) * reading.distance,
                )
            )
        return out


def left_reading(readings: Sequence[SensorReading]) -> SensorReading:
    return readings[0]


def right_reading(readings: Sequence[SensorReading]) -> SensorReading:
    return readings[-1]


def center_reading(readings: Sequence[SensorReading]) -> SensorReading:
    return readings[len(readings) // 2]


def danger_level(reading: SensorReading, sensor_range: float) -> float:
    """0 when the ray is blocked at the mount point, 1 when nothing is detected."""
    if not reading.hit or sensor_range <= 0.0:
        return 1.0
    return max(0.0, min(1.0, reading.distance / sensor_range))
