from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from drive_sim.core.types import ControlCommand
from drive_sim.env.environment import DEFAULT_DT_MS, DEFAULT_MAX_STEPS, EXTERNAL, RewardConfig, create_env
from drive_sim.env.features import PolicyInputAdapter


class DriveGymEnv(gym.Env):
    """Gymnasium view of ``DriveEnv`` with a continuous (longitudinal, turn) action.

    Actions are clipped to the vehicle's accel/brake capacity and the
    scenario's turn limit before they reach the simulation. Reaching the
    goal terminates an episode; hitting ``max_steps`` truncates it.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        scenario_path: Union[str, Path],
        dt_ms: float = DEFAULT_DT_MS,
        max_steps: int = DEFAULT_MAX_STEPS,
        reward_config: Optional[RewardConfig] = None,
        include_hits: bool = False,
    ) -> None:
        super().__init__()
        self._env = create_env(scenario_path, mode=EXTERNAL, dt_ms=dt_ms, max_steps=max_steps)
        if reward_config is not None:
            self._env.reward_config = reward_config

        sim = self._env.simulation
        self._adapter = PolicyInputAdapter(num_rays=len(sim.params.sensor_angles), include_hits=include_hits)
        turn_limit = sim.scenario.gains.turn_limit
        self.action_space = spaces.Box(
            low=np.asarray([-sim.params.brake, -turn_limit], dtype=np.float32),
            high=np.asarray([sim.params.accel, turn_limit], dtype=np.float32),
            dtype=np.float32,
        )
        self.observation_space = spaces.Box(
            low=-np.inf,
            high=np.inf,
            shape=(self._adapter.feature_dim,),
            dtype=np.float32,
        )

    @property
    def feature_names(self) -> list[str]:
        return self._adapter.feature_names()

    def action_to_command(self, action: Any) -> ControlCommand:
        clipped = np.clip(np.asarray(action, dtype=np.float32).reshape(2), self.action_space.low, self.action_space.high)
        return ControlCommand(longitudinal=float(clipped[0]), turn=float(clipped[1]))

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        # The simulation is deterministic; the seed only feeds gymnasium's RNG.
        super().reset(seed=seed)
        _ = options
        obs = self._env.reset()
        return self._adapter.transform(obs), {"observation_dict": obs, "status": "running"}

    def step(self, action: Any) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        obs, reward, done, info = self._env.step(self.action_to_command(action))
        truncated = bool(info["timed_out"])
        terminated = bool(done) and not truncated
        return self._adapter.transform(obs), float(reward), terminated, truncated, {**info, "observation_dict": obs}

    def render(self) -> None:
        return None

    def close(self) -> None:
        return None


def make_drive_gym_env(scenario_path: Union[str, Path], **kwargs: Any) -> DriveGymEnv:
    return DriveGymEnv(scenario_path=scenario_path, **kwargs)
