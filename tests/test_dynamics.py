import math

import pytest

from drive_sim.core.dynamics import apply_friction, integrate
from drive_sim.core.types import ControlCommand, Rect, VehicleState


BOUNDS = Rect(min_x=-500.0, min_y=-500.0, max_x=500.0, max_y=500.0)


@pytest.mark.parametrize("dt", [0.0, 0.001, 1 / 60, 0.1, 0.5, 2.0])
@pytest.mark.parametrize("longitudinal", [-1000.0, -40.0, 0.0, 25.0, 1000.0])
def test_speed_never_exceeds_max(params, dt, longitudinal):
    state = VehicleState(x=0.0, y=0.0, heading=0.0, speed=17.5)
    out = integrate(state, ControlCommand(longitudinal=longitudinal, turn=1.0), params, BOUNDS, 2.0, dt)
    assert abs(out.speed) <= params.max_speed
    assert -math.pi < out.heading <= math.pi


def test_reverse_speed_is_capped_to_fraction_of_max(params):
    state = VehicleState(x=0.0, y=0.0, heading=0.0, speed=0.0)
    out = integrate(state, ControlCommand(longitudinal=-1000.0), params, BOUNDS, 2.0, 1.0)
    assert out.speed == pytest.approx(-params.max_speed * params.reverse_factor)
    assert out.x < 0.0


def test_zero_dt_is_a_noop(params):
    state = VehicleState(x=1.0, y=2.0, heading=0.5, speed=30.0)
    out = integrate(state, ControlCommand(longitudinal=25.0, turn=1.0), params, BOUNDS, 2.0, 0.0)
    assert out == state
    assert out is not state


def test_friction_never_reverses_sign():
    assert apply_friction(1.0, 10.0, 1.0) == 0.0
    assert apply_friction(-1.0, 10.0, 1.0) == 0.0
    assert apply_friction(0.0, 10.0, 1.0) == 0.0
    assert apply_friction(5.0, 10.0, 0.1) == pytest.approx(4.0)
    assert apply_friction(-5.0, 10.0, 0.1) == pytest.approx(-4.0)


def test_coasting_vehicle_slows_down(params):
    state = VehicleState(x=0.0, y=0.0, heading=0.0, speed=10.0)
    out = integrate(state, ControlCommand(), params, BOUNDS, 2.0, 0.1)
    assert out.speed == pytest.approx(9.0)
    assert out.x == pytest.approx(0.9)


def test_stationary_vehicle_cannot_pivot(params):
    state = VehicleState(x=0.0, y=0.0, heading=0.3, speed=0.0)
    out = integrate(state, ControlCommand(turn=1.0), params, BOUNDS, 2.0, 0.1)
    assert out.heading == pytest.approx(0.3)


def test_turn_rate_scales_with_speed_fraction(params):
    dt = 0.01
    slow = integrate(VehicleState(0.0, 0.0, 0.0, 9.0), ControlCommand(turn=1.0), params, BOUNDS, 2.0, dt)
    fast = integrate(VehicleState(0.0, 0.0, 0.0, 18.0), ControlCommand(turn=1.0), params, BOUNDS, 2.0, dt)
    assert slow.heading > 0.0
    assert fast.heading > slow.heading
    expected_fast = params.turn_rate * dt * (fast.speed / params.max_speed)
    assert fast.heading == pytest.approx(expected_fast)


def test_position_is_clamped_inside_margin(params):
    bounds = Rect(min_x=0.0, min_y=0.0, max_x=100.0, max_y=50.0)
    state = VehicleState(x=99.0, y=49.0, heading=math.pi / 4, speed=18.0)
    out = integrate(state, ControlCommand(longitudinal=25.0), params, bounds, 10.0, 1.0)
    assert out.x == pytest.approx(90.0)
    assert out.y == pytest.approx(40.0)


def test_zero_dt_still_normalizes_heading(params):
    state = VehicleState(x=0.0, y=0.0, heading=4.0, speed=0.0)
    out = integrate(state, ControlCommand(), params, BOUNDS, 2.0, 0.0)
    assert -math.pi < out.heading <= math.pi
    assert out.heading == pytest.approx(4.0 - 2.0 * math.pi)
