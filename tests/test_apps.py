import sys

from drive_sim.apps import benchmark, run_headless
from drive_sim.apps.common import create_simulation
from drive_sim.core.simulator import MANUAL
from drive_sim.env.environment import create_env
from drive_sim.scenarios.registry import get_scenario_path


def test_create_simulation_uses_requested_mode():
    sim = create_simulation("canvas_2d", mode=MANUAL)
    assert sim.mode == MANUAL
    assert sim.scenario.name == "canvas_2d"


def test_run_episode_stops_at_step_limit():
    env = create_env(get_scenario_path("plaza_3d"), dt_ms=50.0, max_steps=4)
    status, collisions, elapsed_s, steps = benchmark.run_episode(env)
    assert status == "running"
    assert collisions == 0
    assert steps == 4
    assert abs(elapsed_s - 0.2) < 1e-9


def test_headless_cli_prints_summary(monkeypatch, capsys):
    monkeypatch.setattr(
        sys,
        "argv",
        ["drive-sim-headless", "--scenario", "canvas_2d", "--max-steps", "5", "--print-every", "2"],
    )
    run_headless.main()
    out = capsys.readouterr().out
    assert "ep=0 step=2" in out
    assert "episode=0 status=running" in out
    assert "summary scenario=canvas_2d mode=autonomous episodes=1 goal_rate=0.00" in out
