from __future__ import annotations

import argparse
from typing import Optional

from drive_sim.apps.common import LOG_LEVELS, setup_logging
from drive_sim.env.environment import DriveEnv, create_env
from drive_sim.scenarios.registry import get_scenario_path, list_scenarios


def run_episode(env: DriveEnv) -> tuple[Optional[str], int, float, int]:
    env.reset()
    info: dict = {}
    for step in range(env.max_steps):
        _, _, done, info = env.step()
        if done:
            return info.get("status"), info.get("collisions", 0), info.get("elapsed_s", 0.0), step + 1
    return info.get("status"), info.get("collisions", 0), info.get("elapsed_s", 0.0), env.max_steps


def benchmark(scenario: str, dt_values: list[float], max_steps: int) -> None:
    # The controller is deterministic, so sweeping the frame interval is what varies the outcome.
    for dt_ms in dt_values:
        env = create_env(get_scenario_path(scenario), dt_ms=dt_ms, max_steps=max_steps)
        status, collisions, elapsed_s, steps = run_episode(env)
        print(
            f"scenario={scenario:10s} dt_ms={dt_ms:6.2f} status={str(status):12s} "
            f"collisions={collisions:3d} elapsed_s={elapsed_s:7.2f} steps={steps:5d}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark the autonomous controller across scenarios and frame rates")
    parser.add_argument("--scenarios", nargs="*", default=list_scenarios())
    parser.add_argument("--dt-ms", nargs="*", type=float, default=[1000.0 / 120.0, 1000.0 / 60.0, 1000.0 / 30.0])
    parser.add_argument("--max-steps", type=int, default=6000)
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    args = parser.parse_args()

    setup_logging(args.log_level)
    for scenario in args.scenarios:
        benchmark(scenario, args.dt_ms, args.max_steps)


if __name__ == "__main__":
    main()
