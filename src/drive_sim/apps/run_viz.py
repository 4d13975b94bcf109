from __future__ import annotations

import argparse
import asyncio
import logging
import time
from typing import Any, Optional

from drive_sim.apps.common import LOG_LEVELS, create_simulation, setup_logging
from drive_sim.core.errors import ScenarioError
from drive_sim.core.simulator import AUTONOMOUS, MANUAL, Simulation
from drive_sim.core.types import StepResult
from drive_sim.scenarios.registry import list_scenarios
from drive_sim.viz.websocket_stream import FrameStream


log = logging.getLogger(__name__)


def build_frame(sim: Simulation, res: StepResult) -> dict[str, Any]:
    space = sim.scenario.space
    params = sim.params
    state = res.state
    endpoints = sim.sensors.endpoints(state, params, res.readings)
    origin = space.sensor_origin(state.x, state.y)

    sensors = []
    for reading, (ex, ey) in zip(res.readings, endpoints):
        danger = 1.0 - reading.distance / params.sensor_range if params.sensor_range > 0 else 0.0
        sensors.append(
            {
                "hit": reading.hit,
                "distance": reading.distance,
                "danger": max(0.0, min(1.0, danger)),
                "origin": origin,
                "end": space.lift(ex, ey, space.sensor_elevation),
            }
        )

    return {
        "type": "frame",
        "scenario": sim.scenario.name,
        "space": space.describe(),
        "mode": sim.mode,
        "status": res.status.value,
        "status_text": res.status_text,
        "event": res.event,
        "vehicle": {
            "position": res.pose,
            "heading": state.heading,
            "speed": state.speed,
            "half_length": params.half_length,
            "half_width": params.half_width,
        },
        "command": {"longitudinal": res.command.longitudinal, "turn": res.command.turn},
        "sensors": sensors,
        "metrics": {
            "elapsed_s": round(res.metrics.elapsed_s, 3),
            "collisions": res.metrics.collisions,
            "distance_to_goal": res.metrics.distance_to_goal,
        },
        "traffic": [
            {"id": car.id, "position": space.lift(car.x, car.y), "heading": car.heading, "speed": car.speed}
            for car in sim.traffic
        ],
        "world": {
            "bounds": {
                "min": [sim.bounds.min_x, sim.bounds.min_y],
                "max": [sim.bounds.max_x, sim.bounds.max_y],
            },
            "obstacles": [{"min": list(box.min), "max": list(box.max)} for box in sim.scenario.obstacles],
            "goal": {"position": space.lift(sim.goal.x, sim.goal.y), "radius": sim.goal.radius},
        },
        "parameters": {
            name: {"value": getattr(params, name), "unit": spec.unit, "min": spec.min, "max": spec.max}
            for name, spec in sim.scenario.tunables.items()
        },
    }


def apply_command(sim: Simulation, cmd: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Apply one client command; returns an error payload when the command is rejected."""
    kind = cmd.get("type")
    try:
        if kind == "control":
            name = cmd.get("command")
            if name == "start":
                sim.start()
            elif name == "pause":
                sim.pause()
            elif name == "reset":
                sim.reset()
            else:
                raise ValueError(f"unknown control command '{name}'")
        elif kind == "mode":
            sim.set_mode(str(cmd.get("mode")))
        elif kind == "keys":
            sim.set_key_state(cmd.get("keys") or [])
        elif kind == "param":
            sim.set_parameter(str(cmd.get("name")), float(cmd.get("value")))
    except (ScenarioError, ValueError, TypeError) as exc:
        log.warning("rejected client command %r: %s", cmd, exc)
        return {"type": "error", "command": cmd, "message": str(exc)}
    return None


async def simulation_loop(stream: FrameStream, sim: Simulation, fps: float = 60.0) -> None:
    idle_interval = 0.5
    last_publish = 0.0
    await stream.publish(build_frame(sim, sim.snapshot()))

    while True:
        changed = False
        for cmd in stream.drain_commands():
            error = apply_command(sim, cmd)
            if error is not None:
                await stream.publish(error)
            changed = True

        now = time.monotonic()
        if sim.running:
            res = sim.tick(now * 1000.0)
            await stream.publish(build_frame(sim, res))
            last_publish = now
        elif changed or now - last_publish > idle_interval:
            await stream.publish(build_frame(sim, sim.snapshot()))
            last_publish = now

        await asyncio.sleep(1.0 / fps)


async def serve(scenario: str, mode: str, host: str, port: int, fps: float) -> None:
    sim = create_simulation(scenario, mode=mode)
    stream = FrameStream(host=host, port=port)
    await asyncio.gather(stream.start(), simulation_loop(stream, sim, fps=fps))


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the simulation to a browser client over websockets")
    parser.add_argument("--scenario", default="canvas_2d", choices=list_scenarios())
    parser.add_argument("--mode", default=AUTONOMOUS, choices=[AUTONOMOUS, MANUAL])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--fps", type=float, default=60.0)
    parser.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)
    args = parser.parse_args()

    setup_logging(args.log_level)
    asyncio.run(serve(args.scenario, args.mode, args.host, args.port, args.fps))


if __name__ == "__main__":
    main()
