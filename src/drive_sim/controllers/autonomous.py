from __future__ import annotations

from typing import Optional, Sequence

from drive_sim.controllers.base import Controller, Observation
from drive_sim.core.geometry import bearing_to, clip
from drive_sim.core.sensors import center_reading, danger_level, left_reading, right_reading
from drive_sim.core.types import ControlCommand, ControllerGains, SensorReading, VehicleParams, VehicleState


class AutonomousController(Controller):
    """Reactive goal seeker.

    Steering adds a proportional bearing term and a differential avoidance
    term from the outermost sensors; neither overrides the other. Speed
    tracks a desired value scaled by the front sensor's clearance, through a
    proportional term bounded by the vehicle's accel and brake capacity.
    """

    def __init__(self, gains: Optional[ControllerGains] = None) -> None:
        gains = gains or ControllerGains()
        if gains.turn_limit <= 0.0:
            raise ValueError("turn_limit must be > 0")
        if not 0.0 <= gains.danger_floor <= 1.0:
            raise ValueError("danger_floor must be within [0, 1]")
        self.gains = gains

    def bearing_error(self, state: VehicleState, goal_xy: tuple[float, float]) -> float:
        return bearing_to((state.x, state.y), state.heading, goal_xy)

    def avoidance_bias(self, readings: Sequence[SensorReading]) -> float:
        left = left_reading(readings)
        right = right_reading(readings)
        if not (left.hit or right.hit):
            return 0.0
        return (right.distance - left.distance) * self.gains.avoid_gain

    def desired_speed(self, readings: Sequence[SensorReading], params: VehicleParams) -> float:
        danger = danger_level(center_reading(readings), params.sensor_range)
        return params.max_speed * clip(danger, self.gains.danger_floor, 1.0)

    def decide(self, obs: Observation) -> ControlCommand:
        state = obs.state
        params = obs.params
        if not obs.readings:
            raise ValueError("autonomous control needs at least one sensor reading")

        error = self.bearing_error(state, (obs.goal.x, obs.goal.y))
        bias = self.avoidance_bias(obs.readings)
        turn = clip(error * self.gains.steer_gain + bias, -self.gains.turn_limit, self.gains.turn_limit)

        speed_diff = self.desired_speed(obs.readings, params) - state.speed
        longitudinal = clip(speed_diff * self.gains.speed_gain, -params.brake, params.accel)

        return ControlCommand(longitudinal=longitudinal, turn=turn)
