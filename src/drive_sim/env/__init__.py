from drive_sim.env.environment import DriveEnv, RewardConfig, create_env
from drive_sim.env.features import PolicyInputAdapter

__all__ = ["DriveEnv", "PolicyInputAdapter", "RewardConfig", "create_env"]

try:
    from drive_sim.env.gym_env import DriveGymEnv, make_drive_gym_env

    __all__.extend(["DriveGymEnv", "make_drive_gym_env"])
except ModuleNotFoundError:
    # gymnasium is optional at import time; install project deps to enable it.
    pass
