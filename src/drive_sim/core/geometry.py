from __future__ import annotations

import math
from typing import Optional, Sequence

from drive_sim.core.types import Rect, SensorReading


RAY_METHODS = ("march", "exact")


def clip(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def wrap_angle(angle: float) -> float:
    # Result lies in (-pi, pi]; angles already in range come back unchanged.
    if -math.pi < angle <= math.pi:
        return angle
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    wrapped -= math.pi
    return wrapped if wrapped > -math.pi else math.pi


def heading_vector(angle: float) -> tuple[float, float]:
    return (math.cos(angle), math.sin(angle))


def dot(a: tuple[float, float], b: tuple[float, float]) -> float:
    return a[0] * b[0] + a[1] * b[1]


def distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def bearing_to(origin: tuple[float, float], heading: float, target: tuple[float, float]) -> float:
    """Signed shortest angle from ``heading`` to the direction of ``target`` seen from ``origin``."""
    target_angle = math.atan2(target[1] - origin[1], target[0] - origin[0])
    return wrap_angle(target_angle - heading)


def local_to_world(
    origin: tuple[float, float],
    heading: float,
    lx: float,
    ly: float,
) -> tuple[float, float]:
    c = math.cos(heading)
    s = math.sin(heading)
    return (
        origin[0] + lx * c - ly * s,
        origin[1] + lx * s + ly * c,
    )


def point_in_rect(p: tuple[float, float], rect: Rect) -> bool:
    return rect.contains(p[0], p[1])


def ray_rect_intersection_distance(
    origin: tuple[float, float],
    direction: tuple[float, float],
    rect: Rect,
) -> Optional[float]:
    # Slab test. Direction should be unit-length; an origin inside the rect yields 0.
    t_near = 0.0
    t_far = math.inf
    for o, d, lo, hi in (
        (origin[0], direction[0], rect.min_x, rect.max_x),
        (origin[1], direction[1], rect.min_y, rect.max_y),
    ):
        if abs(d) < 1e-12:
            if o < lo or o > hi:
                return None
            continue
        t1 = (lo - o) / d
        t2 = (hi - o) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_near = max(t_near, t1)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return None
    return t_near


def _exit_distance(origin: tuple[float, float], direction: tuple[float, float], bounds: Rect) -> float:
    if not point_in_rect(origin, bounds):
        return 0.0
    t_exit = math.inf
    for o, d, lo, hi in (
        (origin[0], direction[0], bounds.min_x, bounds.max_x),
        (origin[1], direction[1], bounds.min_y, bounds.max_y),
    ):
        if d > 1e-12:
            t_exit = min(t_exit, (hi - o) / d)
        elif d < -1e-12:
            t_exit = min(t_exit, (lo - o) / d)
    return t_exit


def march_ray(
    origin: tuple[float, float],
    angle: float,
    max_distance: float,
    obstacles: Sequence[Rect],
    bounds: Rect,
    step: float,
) -> SensorReading:
    """Stepped ray march.

    The probe advances ``step`` at a time; leaving ``bounds`` or entering any
    obstacle stops it. Hit distances are multiples of ``step`` and overshoot the
    true surface by less than one step. Obstacles thinner than ``step`` can be missed.
    """
    dx, dy = heading_vector(angle)
    dist = 0.0
    while dist < max_distance:
        px = origin[0] + dx * dist
        py = origin[1] + dy * dist
        if px < bounds.min_x or px > bounds.max_x or py < bounds.min_y or py > bounds.max_y:
            return SensorReading(hit=True, distance=dist)
        for rect in obstacles:
            if rect.contains(px, py):
                return SensorReading(hit=True, distance=dist)
        dist += step
    return SensorReading(hit=False, distance=max_distance)


def exact_ray(
    origin: tuple[float, float],
    angle: float,
    max_distance: float,
    obstacles: Sequence[Rect],
    bounds: Rect,
) -> SensorReading:
    direction = heading_vector(angle)
    best = _exit_distance(origin, direction, bounds)
    for rect in obstacles:
        d = ray_rect_intersection_distance(origin, direction, rect)
        if d is not None and d < best:
            best = d
    if best < max_distance:
        return SensorReading(hit=True, distance=best)
    return SensorReading(hit=False, distance=max_distance)


def raycast(
    origin: tuple[float, float],
    angle: float,
    max_distance: float,
    obstacles: Sequence[Rect],
    bounds: Rect,
    step: float = 1.0,
    method: str = "march",
) -> SensorReading:
    if method == "march":
        return march_ray(origin, angle, max_distance, obstacles, bounds, step)
    if method == "exact":
        return exact_ray(origin, angle, max_distance, obstacles, bounds)
    raise ValueError(f"unknown ray method '{method}', expected one of {', '.join(RAY_METHODS)}")
