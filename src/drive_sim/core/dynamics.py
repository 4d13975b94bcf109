from __future__ import annotations

import math

from drive_sim.core.geometry import clip, wrap_angle
from drive_sim.core.types import ControlCommand, Rect, VehicleParams, VehicleState


def apply_friction(speed: float, friction: float, dt: float) -> float:
    # Friction only ever brings speed toward zero; it never flips the sign.
    if speed > 0.0:
        return max(0.0, speed - friction * dt)
    if speed < 0.0:
        return min(0.0, speed + friction * dt)
    return speed


def clamp_speed(speed: float, params: VehicleParams) -> float:
    return clip(speed, -params.max_speed * params.reverse_factor, params.max_speed)


def integrate(
    state: VehicleState,
    command: ControlCommand,
    params: VehicleParams,
    bounds: Rect,
    margin: float,
    dt: float,
) -> VehicleState:
    if dt <= 0.0:
        return VehicleState(x=state.x, y=state.y, heading=wrap_angle(state.heading), speed=state.speed)

    speed = state.speed + command.longitudinal * dt
    speed = apply_friction(speed, params.friction, dt)
    speed = clamp_speed(speed, params)

    # Turning authority scales with the current speed fraction.
    heading = wrap_angle(state.heading + command.turn * params.turn_rate * dt * (speed / params.max_speed))

    x = state.x + math.cos(heading) * speed * dt
    y = state.y + math.sin(heading) * speed * dt

    x = clip(x, bounds.min_x + margin, bounds.max_x - margin)
    y = clip(y, bounds.min_y + margin, bounds.max_y - margin)

    return VehicleState(x=x, y=y, heading=heading, speed=speed)
