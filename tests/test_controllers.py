import math

import pytest

from drive_sim.controllers.autonomous import AutonomousController
from drive_sim.controllers.base import Observation
from drive_sim.controllers.external import ExternalController
from drive_sim.controllers.manual import ManualController
from drive_sim.core.types import ControlCommand, ControllerGains, Goal, SensorReading, VehicleState


GAINS = ControllerGains(steer_gain=1.4, avoid_gain=0.05, turn_limit=1.6, danger_floor=0.2, speed_gain=8.0)
CLEAR = [SensorReading(hit=False, distance=22.0) for _ in range(5)]


def _obs(params, readings=CLEAR, state=None, goal=None, keys=()):
    return Observation(
        state=state or VehicleState(x=0.0, y=0.0, heading=0.0, speed=0.0),
        params=params,
        readings=readings,
        goal=goal or Goal(x=100.0, y=0.0, radius=3.0),
        keys=frozenset(keys),
    )


def test_manual_maps_keys_to_command(params):
    ctl = ManualController()
    assert ctl.decide(_obs(params)) == ControlCommand(0.0, 0.0)
    assert ctl.decide(_obs(params, keys={"KeyW"})) == ControlCommand(params.accel, 0.0)
    assert ctl.decide(_obs(params, keys={"KeyS"})) == ControlCommand(-params.brake, 0.0)
    assert ctl.decide(_obs(params, keys={"KeyA"})).turn == -1.0
    assert ctl.decide(_obs(params, keys={"ArrowRight"})).turn == 1.0
    assert ctl.decide(_obs(params, keys={"KeyA", "KeyD"})).turn == 0.0


def test_manual_throttle_and_brake_stack(params):
    cmd = ManualController().decide(_obs(params, keys={"KeyW", "KeyS"}))
    assert cmd.longitudinal == pytest.approx(params.accel - params.brake)


def test_autonomous_accelerates_toward_clear_goal(params):
    cmd = AutonomousController(GAINS).decide(_obs(params))
    assert cmd.turn == pytest.approx(0.0)
    assert cmd.longitudinal == pytest.approx(params.accel)


def test_autonomous_turn_is_clamped(params):
    # Goal directly behind: bearing error is pi.
    cmd = AutonomousController(GAINS).decide(_obs(params, goal=Goal(x=-100.0, y=0.0, radius=3.0)))
    assert cmd.turn == pytest.approx(GAINS.turn_limit)


def test_autonomous_steers_toward_goal_side(params):
    ctl = AutonomousController(GAINS)
    right_goal = ctl.decide(_obs(params, goal=Goal(x=10.0, y=3.0, radius=1.0)))
    left_goal = ctl.decide(_obs(params, goal=Goal(x=10.0, y=-3.0, radius=1.0)))
    assert right_goal.turn > 0.0
    assert left_goal.turn < 0.0


def test_avoidance_steers_away_from_nearer_side(params):
    ctl = AutonomousController(GAINS)
    left_blocked = [
        SensorReading(hit=True, distance=4.0),
        SensorReading(hit=False, distance=22.0),
        SensorReading(hit=False, distance=22.0),
        SensorReading(hit=False, distance=22.0),
        SensorReading(hit=False, distance=22.0),
    ]
    assert ctl.avoidance_bias(left_blocked) == pytest.approx((22.0 - 4.0) * GAINS.avoid_gain)
    cmd = ctl.decide(_obs(params, readings=left_blocked))
    assert cmd.turn > 0.0

    right_blocked = list(reversed(left_blocked))
    assert ctl.decide(_obs(params, readings=right_blocked)).turn < 0.0


def test_front_obstacle_reduces_desired_speed(params):
    ctl = AutonomousController(GAINS)
    blocked = list(CLEAR)
    blocked[2] = SensorReading(hit=True, distance=5.0)

    assert ctl.desired_speed(CLEAR, params) == pytest.approx(params.max_speed)
    assert ctl.desired_speed(blocked, params) == pytest.approx(params.max_speed * 5.0 / 22.0)

    cruising = VehicleState(x=0.0, y=0.0, heading=0.0, speed=params.max_speed)
    assert ctl.decide(_obs(params, readings=blocked, state=cruising)).longitudinal < 0.0
    assert ctl.decide(_obs(params, readings=CLEAR, state=cruising)).longitudinal == pytest.approx(0.0)


def test_danger_floor_keeps_vehicle_moving(params):
    ctl = AutonomousController(GAINS)
    touching = list(CLEAR)
    touching[2] = SensorReading(hit=True, distance=0.0)
    assert ctl.desired_speed(touching, params) == pytest.approx(params.max_speed * GAINS.danger_floor)


def test_longitudinal_is_bounded_by_capacity(params):
    ctl = AutonomousController(GAINS)
    reversing = VehicleState(x=0.0, y=0.0, heading=0.0, speed=-7.0)
    assert ctl.decide(_obs(params, state=reversing)).longitudinal == pytest.approx(params.accel)
    blocked = list(CLEAR)
    blocked[2] = SensorReading(hit=True, distance=0.0)
    cruising = VehicleState(x=0.0, y=0.0, heading=0.0, speed=params.max_speed)
    assert ctl.decide(_obs(params, readings=blocked, state=cruising)).longitudinal == pytest.approx(-params.brake)


def test_bearing_error_is_wrapped(params):
    ctl = AutonomousController(GAINS)
    state = VehicleState(x=0.0, y=0.0, heading=3.0, speed=0.0)
    error = ctl.bearing_error(state, (-10.0, -1.0))
    assert -math.pi < error <= math.pi
    assert abs(error) < 0.5


def test_external_controller_replays_command(params):
    ctl = ExternalController()
    assert ctl.decide(_obs(params)) == ControlCommand()
    ctl.set_command(ControlCommand(longitudinal=3.0, turn=-0.5))
    assert ctl.decide(_obs(params)) == ControlCommand(longitudinal=3.0, turn=-0.5)


def test_default_gains_are_not_shared():
    first = AutonomousController()
    second = AutonomousController()
    first.gains.steer_gain = 9.0
    assert second.gains.steer_gain == ControllerGains().steer_gain
