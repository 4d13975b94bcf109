import math

import numpy as np
import pytest

from drive_sim.core.simulator import AUTONOMOUS, Simulation
from drive_sim.core.types import ControlCommand
from drive_sim.env import DriveEnv, PolicyInputAdapter, RewardConfig, create_env
from drive_sim.env.gym_env import DriveGymEnv
from drive_sim.scenarios.registry import get_scenario_path


DT_MS = 50.0


def test_external_mode_requires_command(open_scenario):
    env = DriveEnv(Simulation(open_scenario), dt_ms=DT_MS)
    env.reset()
    with pytest.raises(ValueError):
        env.step()


def test_observation_fields(open_scenario):
    env = DriveEnv(Simulation(open_scenario), dt_ms=DT_MS)
    obs = env.reset()
    assert obs["distance"] == pytest.approx(300.0)
    assert obs["bearing"] == pytest.approx(0.0)
    assert obs["speed_norm"] == 0.0
    assert 0.0 < obs["distance_norm"] <= 1.0
    assert len(obs["ray_distances"]) == 5
    assert all(0.0 <= d <= 1.0 for d in obs["ray_distances_norm"])
    assert obs["ray_hits"] == [False] * 5


def test_progress_is_rewarded(open_scenario):
    env = DriveEnv(Simulation(open_scenario), dt_ms=DT_MS)
    env.reset()
    rewards = []
    for _ in range(10):
        obs, reward, done, info = env.step(ControlCommand(longitudinal=25.0, turn=0.0))
        rewards.append(reward)
    assert obs["speed"] > 0.0
    assert rewards[-1] > 0.0
    assert not done
    assert info["collisions"] == 0
    assert info["status"] == "running"


def test_collision_is_penalised(make_scenario):
    sim = Simulation(make_scenario(obstacles=[{"min": [10, -10], "max": [20, 10]}]))
    env = DriveEnv(sim, dt_ms=DT_MS, reward_config=RewardConfig(progress=0.0, step_penalty=0.0))
    env.reset()
    sim.place_vehicle(8.0, 0.0, 0.0)
    _, reward, done, info = env.step(ControlCommand())
    assert info["event"] == "collision"
    assert reward == pytest.approx(-10.0)
    assert not done


def test_episode_times_out(open_scenario):
    env = DriveEnv(Simulation(open_scenario), dt_ms=DT_MS, max_steps=3)
    env.reset()
    done = False
    info = {}
    for _ in range(3):
        _, _, done, info = env.step(ControlCommand())
    assert done
    assert info["timed_out"]


def test_autonomous_episode_reaches_goal(make_scenario):
    sim = Simulation(make_scenario(goal={"position": [30, 0], "radius": 3}))
    env = DriveEnv(sim, dt_ms=DT_MS, max_steps=400, mode=AUTONOMOUS)
    env.reset()
    total = 0.0
    info = {}
    for _ in range(400):
        _, reward, done, info = env.step()
        total += reward
        if done:
            break
    assert info["status"] == "goal_reached"
    assert not info["timed_out"]
    assert total > 100.0


def test_create_env_from_bundled_scenario():
    env = create_env(get_scenario_path("plaza_3d"), dt_ms=DT_MS, max_steps=5)
    obs = env.reset()
    assert obs["x"] == pytest.approx(-35.0)
    for _ in range(5):
        obs, _, done, _ = env.step()
    assert done


def test_policy_input_adapter():
    adapter = PolicyInputAdapter()
    obs = {
        "speed_norm": 0.5,
        "bearing": math.pi / 2,
        "distance_norm": 0.25,
        "ray_distances_norm": [1.0, 0.5, 0.0],
    }
    vec = adapter.transform(obs)
    assert vec.dtype == np.float32
    assert vec.shape == (7,)
    np.testing.assert_allclose(vec, [0.5, 1.0, 0.0, 0.25, 1.0, 0.5, 0.0], atol=1e-6)
    assert adapter.feature_names()[4] == "ray_00_norm"

    with pytest.raises(ValueError):
        adapter.transform({**obs, "ray_distances_norm": [1.0]})
    assert adapter.transform_batch([obs, obs]).shape == (2, 7)
    assert adapter.transform_batch([]).shape == (0, 7)


def test_gym_env_spaces_and_step():
    env = DriveGymEnv(str(get_scenario_path("canvas_2d")), dt_ms=DT_MS, max_steps=10)
    vec, info = env.reset(seed=0)
    assert env.observation_space.shape == (9,)
    assert vec.shape == (9,)
    assert "observation_dict" in info
    np.testing.assert_allclose(env.action_space.low, [-350.0, -1.5])
    np.testing.assert_allclose(env.action_space.high, [240.0, 1.5])

    vec, reward, terminated, truncated, info = env.step(np.array([1000.0, 0.0]))
    assert vec.shape == (9,)
    assert isinstance(reward, float)
    assert not terminated
    assert not truncated
    assert info["observation_dict"]["speed"] > 0.0


def test_adapter_can_append_hit_flags():
    adapter = PolicyInputAdapter(num_rays=2, include_hits=True)
    assert adapter.feature_dim == 8
    assert adapter.feature_names()[-1] == "ray_01_hit"
    vec = adapter.transform(
        {
            "speed_norm": 0.0,
            "bearing": 0.0,
            "distance_norm": 1.0,
            "ray_distances_norm": [0.5, 1.0],
            "ray_hits": [True, False],
        }
    )
    np.testing.assert_allclose(vec[-2:], [1.0, 0.0])


def test_gym_action_is_clipped_to_capacity():
    env = DriveGymEnv(get_scenario_path("plaza_3d"), dt_ms=DT_MS, max_steps=5)
    command = env.action_to_command([-1000.0, 9.0])
    assert command.longitudinal == pytest.approx(-40.0)
    assert command.turn == pytest.approx(1.6)
    assert env.feature_names[:4] == ["speed_norm", "sin_bearing", "cos_bearing", "distance_norm"]
