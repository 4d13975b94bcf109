from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from drive_sim.core.geometry import distance, local_to_world
from drive_sim.core.types import CollisionResponse, Goal, Rect, VehicleParams, VehicleState


@dataclass
class Evaluation:
    state: VehicleState
    collided: bool
    goal_reached: bool
    obstacle_index: Optional[int] = None


def vehicle_corners(state: VehicleState, params: VehicleParams) -> tuple[tuple[float, float], ...]:
    origin = (state.x, state.y)
    hl = params.half_length
    hw = params.half_width
    return (
        local_to_world(origin, state.heading, hl, hw),
        local_to_world(origin, state.heading, hl, -hw),
        local_to_world(origin, state.heading, -hl, hw),
        local_to_world(origin, state.heading, -hl, -hw),
    )


def find_collision(state: VehicleState, params: VehicleParams, obstacles: Sequence[Rect]) -> Optional[int]:
    corners = vehicle_corners(state, params)
    for index, rect in enumerate(obstacles):
        if any(rect.contains(px, py) for px, py in corners):
            return index
    return None


def goal_reached(state: VehicleState, goal: Goal) -> bool:
    return distance((state.x, state.y), (goal.x, goal.y)) < goal.radius + goal.arrival_margin


def evaluate(
    state: VehicleState,
    params: VehicleParams,
    obstacles: Sequence[Rect],
    goal: Goal,
    response: CollisionResponse,
) -> Evaluation:
    # Only the first penetrated obstacle is resolved per call.
    hit_index = find_collision(state, params, obstacles)
    collided = hit_index is not None
    if collided:
        state = VehicleState(
            x=state.x - math.cos(state.heading) * response.pushback,
            y=state.y - math.sin(state.heading) * response.pushback,
            heading=state.heading,
            speed=state.speed * response.bounce,
        )

    reached = goal_reached(state, goal)
    if reached:
        state = VehicleState(x=state.x, y=state.y, heading=state.heading, speed=0.0)

    return Evaluation(state=state, collided=collided, goal_reached=reached, obstacle_index=hit_index)
