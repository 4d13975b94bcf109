from __future__ import annotations

import argparse

from drive_sim.apps.common import LOG_LEVELS, setup_logging
from drive_sim.core.simulator import AUTONOMOUS, MANUAL
from drive_sim.env.environment import DEFAULT_DT_MS, create_env
from drive_sim.scenarios.registry import get_scenario_path, list_scenarios


def main() -> None:
    parser = argparse.ArgumentParser(description="Run headless simulation episodes")
    parser.add_argument("--scenario", default="canvas_2d", choices=list_scenarios())
    parser.add_argument("--mode", default=AUTONOMOUS, choices=[AUTONOMOUS, MANUAL])
    parser.add_argument("--keys", nargs="*", default=[], help="held keys in manual mode, e.g. KeyW KeyD")
    parser.add_argument("--episodes", type=int, default=1)
    parser.add_argument("--dt-ms", type=float, default=DEFAULT_DT_MS)
    parser.add_argument("--max-steps", type=int, default=3600)
    parser.add_argument("--print-every", type=int, default=60)
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    args = parser.parse_args()

    setup_logging(args.log_level)
    env = create_env(get_scenario_path(args.scenario), mode=args.mode, dt_ms=args.dt_ms, max_steps=args.max_steps)
    env.simulation.set_key_state(args.keys)

    reached = 0
    total_collisions = 0
    for episode in range(args.episodes):
        obs = env.reset()
        info: dict = {}
        step = 0
        done = False

        while not done:
            obs, _, done, info = env.step()
            step += 1
            if step % args.print_every == 0 or done or info["event"] == "collision":
                print(
                    f"ep={episode} step={step} x={obs['x']:.2f} y={obs['y']:.2f} speed={obs['speed']:.2f} "
                    f"bearing={obs['bearing']:+.2f} dist={obs['distance']:.1f} "
                    f"collisions={info['collisions']} event={info['event']}"
                )

        if info.get("status") == "goal_reached":
            reached += 1
        total_collisions += info.get("collisions", 0)
        print(
            f"episode={episode} status={info.get('status')} elapsed_s={info.get('elapsed_s', 0.0):.2f} "
            f"collisions={info.get('collisions')} steps={step}"
        )

    print(
        f"summary scenario={args.scenario} mode={args.mode} episodes={args.episodes} "
        f"goal_rate={reached / max(1, args.episodes):.2f} collisions={total_collisions}"
    )


if __name__ == "__main__":
    main()
