from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from drive_sim.controllers.external import ExternalController
from drive_sim.core.geometry import bearing_to
from drive_sim.core.scenario import load_scenario
from drive_sim.core.simulator import AUTONOMOUS, Simulation
from drive_sim.core.types import ControlCommand, SimulationStatus, StepResult


EXTERNAL = "external"
DEFAULT_DT_MS = 1000.0 / 60.0
DEFAULT_MAX_STEPS = 3600


@dataclass
class RewardConfig:
    goal: float = 100.0
    collision: float = -10.0
    progress: float = 1.0
    step_penalty: float = -0.01


class DriveEnv:
    """Episodic wrapper that drives a ``Simulation`` at a fixed timestep.

    With ``mode="external"`` each ``step`` must be given a command; any other
    mode lets the simulation's own controller decide.
    """

    def __init__(
        self,
        simulation: Simulation,
        dt_ms: float,
        max_steps: int = 3000,
        mode: str = EXTERNAL,
        reward_config: Optional[RewardConfig] = None,
    ) -> None:
        self.simulation = simulation
        self.dt_ms = dt_ms
        self.max_steps = max_steps
        self.reward_config = reward_config or RewardConfig()
        self.external = ExternalController()
        self.simulation.register_controller(EXTERNAL, self.external)
        self.mode = mode
        self.step_count = 0

    def reset(self) -> dict:
        self.step_count = 0
        self.simulation.reset()
        self.simulation.set_mode(self.mode)
        self.simulation.start()
        return self._obs(self.simulation.snapshot())

    def step(self, command: Optional[ControlCommand] = None) -> tuple[dict, float, bool, dict]:
        if self.mode == EXTERNAL:
            if command is None:
                raise ValueError("external mode needs a command every step")
            self.external.set_command(command)

        before = self.simulation.distance_to_goal()
        res = self.simulation.step(self.dt_ms)
        self.step_count += 1

        reward = self.reward_config.step_penalty
        scale = max(self.simulation.params.max_speed * self.dt_ms / 1000.0, 1e-9)
        reward += self.reward_config.progress * (before - res.metrics.distance_to_goal) / scale
        if res.event == "collision":
            reward += self.reward_config.collision
        goal_reached = res.status == SimulationStatus.GOAL_REACHED
        if goal_reached:
            reward += self.reward_config.goal

        timed_out = self.step_count >= self.max_steps and not goal_reached
        done = goal_reached or timed_out
        info: dict[str, Any] = {
            "event": res.event,
            "timed_out": timed_out,
            "collisions": res.metrics.collisions,
            "elapsed_s": res.metrics.elapsed_s,
            "status": res.status.value,
        }
        return self._obs(res), reward, done, info

    def _obs(self, res: StepResult) -> dict:
        sim = self.simulation
        params = sim.params
        state = res.state
        sensor_range = max(params.sensor_range, 1e-6)
        diag = max(sim.bounds.max_x - sim.bounds.min_x, sim.bounds.max_y - sim.bounds.min_y, 1e-6)
        ray_distances = [r.distance for r in res.readings]
        return {
            "x": state.x,
            "y": state.y,
            "heading": state.heading,
            "speed": state.speed,
            "speed_norm": state.speed / params.max_speed,
            "bearing": bearing_to((state.x, state.y), state.heading, (sim.goal.x, sim.goal.y)),
            "distance": res.metrics.distance_to_goal,
            "distance_norm": min(1.0, res.metrics.distance_to_goal / diag),
            "ray_hits": [r.hit for r in res.readings],
            "ray_distances": ray_distances,
            "ray_distances_norm": [d / sensor_range for d in ray_distances],
        }


def create_env(
    scenario_path: Union[str, Path],
    mode: str = AUTONOMOUS,
    dt_ms: float = DEFAULT_DT_MS,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> DriveEnv:
    simulation = Simulation(load_scenario(scenario_path))
    return DriveEnv(simulation=simulation, dt_ms=dt_ms, max_steps=max_steps, mode=mode)
