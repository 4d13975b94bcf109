from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Iterable, Mapping, Optional

from drive_sim.controllers.autonomous import AutonomousController
from drive_sim.controllers.base import Controller, Observation
from drive_sim.controllers.manual import ManualController
from drive_sim.core.collision import evaluate
from drive_sim.core.dynamics import integrate
from drive_sim.core.errors import InvalidInputError, ScenarioError
from drive_sim.core.geometry import distance, wrap_angle
from drive_sim.core.scenario import TUNABLE_FIELDS, Scenario, validate_scenario, validate_vehicle
from drive_sim.core.sensors import SensorArray
from drive_sim.core.traffic import TrafficCar, YieldPolicy, update_traffic
from drive_sim.core.types import (
    ControlCommand,
    Metrics,
    Rect,
    SensorReading,
    SimulationStatus,
    StepResult,
    VehicleParams,
    VehicleState,
)


log = logging.getLogger(__name__)

MANUAL = "manual"
AUTONOMOUS = "autonomous"

STATUS_TEXT = {
    SimulationStatus.IDLE: "Ready",
    SimulationStatus.RUNNING: "Running",
    SimulationStatus.PAUSED: "Paused",
    SimulationStatus.COLLIDED: "Collision!",
    SimulationStatus.GOAL_REACHED: "Target reached!",
}
MODE_TEXT = {MANUAL: "Manual", AUTONOMOUS: "Auto-drive"}


class Simulation:
    """World aggregate and step driver.

    Owns the vehicle, obstacles, goal, background traffic and run counters.
    Controllers, sensors and the kinematic model are called with references
    to this state once per tick in a fixed order: traffic, sense, decide,
    integrate, evaluate.
    """

    def __init__(
        self,
        scenario: Scenario,
        mode: str = AUTONOMOUS,
        controllers: Optional[Mapping[str, Controller]] = None,
        yield_policy: Optional[YieldPolicy] = None,
    ) -> None:
        self._extra_controllers: dict[str, Controller] = dict(controllers or {})
        self._controllers: dict[str, Controller] = {}
        self._overrides: dict[str, float] = {}
        self._keys: frozenset[str] = frozenset()
        self._mode = mode
        self.yield_policy = yield_policy or YieldPolicy()
        self.configure(scenario)

    def configure(self, scenario: Scenario) -> None:
        validate_scenario(scenario)
        self.scenario = scenario
        self.sensors = SensorArray(
            step=scenario.sensor_step,
            method=scenario.sensor_method,
            traffic_margin=scenario.traffic_margin,
        )
        self._controllers = {
            MANUAL: ManualController(),
            AUTONOMOUS: AutonomousController(scenario.gains),
        }
        self._controllers.update(self._extra_controllers)
        if self._mode not in self._controllers:
            raise ValueError(f"unknown mode '{self._mode}', expected one of {', '.join(self.modes)}")
        self._overrides = {}
        log.info("configured scenario '%s' (%s space)", scenario.name, scenario.space.kind)
        self.reset()

    def register_controller(self, name: str, controller: Controller) -> None:
        self._extra_controllers[name] = controller
        self._controllers[name] = controller

    def set_parameter(self, name: str, value: float) -> None:
        if name not in TUNABLE_FIELDS:
            raise ValueError(f"unknown parameter '{name}', expected one of {', '.join(TUNABLE_FIELDS)}")
        value = float(value)
        if not math.isfinite(value):
            raise ScenarioError(f"{name} must be finite, got {value}")
        spec = self.scenario.tunables.get(name)
        if spec is not None and not spec.contains(value):
            raise ScenarioError(f"{name}={value} lies outside [{spec.min}, {spec.max}] {spec.unit}")
        candidate = replace(self.params, **{name: value})
        validate_vehicle(candidate)
        self._overrides[name] = value
        self.params = candidate
        log.debug("parameter %s set to %s", name, value)

    def reset(self) -> StepResult:
        scenario = self.scenario
        # Tuned parameters persist across resets, like the sliders that set them.
        self.params: VehicleParams = replace(scenario.vehicle, **self._overrides)
        self.state = replace(scenario.start, heading=wrap_angle(scenario.start.heading))
        self.obstacles: list[Rect] = [scenario.space.footprint(box) for box in scenario.obstacles]
        self.goal = scenario.goal
        self.bounds = scenario.bounds
        self.traffic: list[TrafficCar] = [replace(car) for car in scenario.traffic]
        self.collisions = 0
        self.elapsed_s = 0.0
        self.status = SimulationStatus.IDLE
        self._last_timestamp_ms: Optional[float] = None
        self._last_command = ControlCommand()
        self._status_text = STATUS_TEXT[SimulationStatus.IDLE]
        log.info("simulation reset")
        return self.snapshot()

    def start(self) -> None:
        if self.status in (SimulationStatus.IDLE, SimulationStatus.PAUSED):
            self.status = SimulationStatus.RUNNING
            self._last_timestamp_ms = None
            self._status_text = STATUS_TEXT[SimulationStatus.RUNNING]
            log.info("simulation running")
        elif self.status == SimulationStatus.GOAL_REACHED:
            log.info("goal already reached; reset before starting again")

    def pause(self) -> None:
        if self.status == SimulationStatus.RUNNING:
            self.status = SimulationStatus.PAUSED
            self._status_text = STATUS_TEXT[SimulationStatus.PAUSED]
            log.info("simulation paused")

    @property
    def running(self) -> bool:
        return self.status == SimulationStatus.RUNNING

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def modes(self) -> list[str]:
        return sorted(self._controllers)

    def set_mode(self, mode: str) -> None:
        if mode not in self._controllers:
            raise ValueError(f"unknown mode '{mode}', expected one of {', '.join(self.modes)}")
        if mode != self._mode:
            log.info("control mode %s -> %s", self._mode, mode)
        self._mode = mode
        self._status_text = MODE_TEXT.get(mode, mode)

    @property
    def controller(self) -> Controller:
        return self._controllers[self._mode]

    def set_key_state(self, keys: Iterable[str]) -> None:
        self._keys = frozenset(str(k) for k in keys)

    @property
    def keys(self) -> frozenset[str]:
        return self._keys

    def place_vehicle(self, x: float, y: float, heading: float, speed: float = 0.0) -> None:
        candidate = VehicleState(x=float(x), y=float(y), heading=float(heading), speed=float(speed))
        _require_finite_state(candidate)
        candidate.heading = wrap_angle(candidate.heading)
        self.state = candidate

    def read_sensors(self, state: Optional[VehicleState] = None) -> list[SensorReading]:
        return self.sensors.read_all(
            state or self.state,
            self.params,
            self.obstacles,
            self.bounds,
            traffic=[car.footprint() for car in self.traffic],
        )

    def distance_to_goal(self) -> float:
        return distance((self.state.x, self.state.y), (self.goal.x, self.goal.y))

    def tick(self, timestamp_ms: float) -> StepResult:
        """Advance using a monotonic timestamp; the first frame after start integrates nothing."""
        if not math.isfinite(timestamp_ms):
            raise InvalidInputError(f"timestamp must be finite, got {timestamp_ms}")
        if not self.running:
            return self.snapshot()
        if self._last_timestamp_ms is None:
            dt_ms = 0.0
        else:
            dt_ms = timestamp_ms - self._last_timestamp_ms
        if dt_ms < 0.0:
            raise InvalidInputError(f"timestamp went backwards by {-dt_ms} ms")
        self._last_timestamp_ms = timestamp_ms
        return self.step(dt_ms)

    def step(self, dt_ms: float) -> StepResult:
        if not math.isfinite(dt_ms) or dt_ms < 0.0:
            raise InvalidInputError(f"dt must be finite and >= 0, got {dt_ms}")
        _require_finite_state(self.state)
        if not self.running:
            return self.snapshot()

        dt = dt_ms / 1000.0
        if self.traffic:
            self.traffic = update_traffic(self.traffic, self.state, dt, self.yield_policy)

        readings = self.read_sensors()
        obs = Observation(
            state=self.state,
            params=self.params,
            readings=readings,
            goal=self.goal,
            keys=self._keys,
        )
        command = self.controller.decide(obs)

        moved = integrate(self.state, command, self.params, self.bounds, self.scenario.bounds_margin, dt)
        result = evaluate(moved, self.params, self.obstacles, self.goal, self.scenario.collision)
        self.state = result.state
        self.elapsed_s += dt
        self._last_command = command

        event: Optional[str] = None
        status = SimulationStatus.RUNNING
        if result.collided:
            self.collisions += 1
            event = "collision"
            status = SimulationStatus.COLLIDED
            self._status_text = STATUS_TEXT[SimulationStatus.COLLIDED]
            log.info("collision #%d with obstacle %d", self.collisions, result.obstacle_index)
        if result.goal_reached:
            self.status = SimulationStatus.GOAL_REACHED
            event = "goal_reached"
            status = SimulationStatus.GOAL_REACHED
            self._status_text = STATUS_TEXT[SimulationStatus.GOAL_REACHED]
            log.info("goal reached after %.2fs with %d collisions", self.elapsed_s, self.collisions)

        return self._result(status=status, event=event)

    def snapshot(self) -> StepResult:
        return self._result(status=self.status, event=None)

    def metrics(self) -> Metrics:
        return Metrics(
            elapsed_s=self.elapsed_s,
            collisions=self.collisions,
            distance_to_goal=self.distance_to_goal(),
        )

    def _result(self, status: SimulationStatus, event: Optional[str]) -> StepResult:
        state = replace(self.state)
        return StepResult(
            state=state,
            pose=self.scenario.space.lift(state.x, state.y),
            readings=self.read_sensors(state),
            status=status,
            metrics=self.metrics(),
            command=replace(self._last_command),
            event=event,
            status_text=self._status_text,
        )


def _require_finite_state(state: VehicleState) -> None:
    for name in ("x", "y", "heading", "speed"):
        value = getattr(state, name)
        if not math.isfinite(value):
            raise InvalidInputError(f"vehicle {name} must be finite, got {value}")
