from __future__ import annotations

import argparse
from typing import Any, Mapping

import numpy as np

from drive_sim.apps.common import LOG_LEVELS, setup_logging
from drive_sim.env.environment import DEFAULT_DT_MS
from drive_sim.env.gym_env import DriveGymEnv, make_drive_gym_env
from drive_sim.scenarios.registry import get_scenario_path, list_scenarios


def seek_action(env: DriveGymEnv, obs: Mapping[str, Any], throttle: float) -> np.ndarray:
    # Steer straight at the goal, ignoring sensors; enough to exercise the action path.
    return np.asarray([throttle, 2.0 * float(obs["bearing"])], dtype=np.float32).clip(
        env.action_space.low, env.action_space.high
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Roll out a goal-seeking action through the Gymnasium wrapper")
    parser.add_argument("--scenario", default="plaza_3d", choices=list_scenarios())
    parser.add_argument("--episodes", type=int, default=2)
    parser.add_argument("--max-steps", type=int, default=600)
    parser.add_argument("--dt-ms", type=float, default=DEFAULT_DT_MS)
    parser.add_argument("--throttle", type=float, default=10.0)
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    args = parser.parse_args()

    setup_logging(args.log_level)
    env = make_drive_gym_env(get_scenario_path(args.scenario), dt_ms=args.dt_ms, max_steps=args.max_steps)
    print(f"observation_shape={env.observation_space.shape} action_low={env.action_space.low.tolist()} "
          f"action_high={env.action_space.high.tolist()}")
    print(f"features={','.join(env.feature_names)}")

    for episode in range(args.episodes):
        vec, info = env.reset(seed=episode)
        obs = info["observation_dict"]
        episode_return = 0.0
        steps = 0
        terminated = truncated = False
        while not (terminated or truncated):
            vec, reward, terminated, truncated, info = env.step(seek_action(env, obs, args.throttle))
            obs = info["observation_dict"]
            episode_return += reward
            steps += 1
        print(
            f"episode={episode} return={episode_return:.2f} steps={steps} terminated={terminated} "
            f"truncated={truncated} collisions={info['collisions']} final_obs_norm={float(np.linalg.norm(vec)):.3f}"
        )
    env.close()


if __name__ == "__main__":
    main()
