from __future__ import annotations

from pathlib import Path

from drive_sim.core.scenario import Scenario, load_scenario


_SCENARIO_DIR = Path(__file__).resolve().parent


def list_scenarios() -> list[str]:
    return sorted(path.stem for path in _SCENARIO_DIR.glob("*.json"))


def get_scenario_path(name: str) -> Path:
    path = _SCENARIO_DIR / f"{name}.json"
    if not path.is_file():
        raise FileNotFoundError(f"no bundled scenario '{name}'; choose from {', '.join(list_scenarios())}")
    return path


def load_bundled(name: str) -> Scenario:
    """Load and validate one of the scenarios shipped with the package."""
    return load_scenario(get_scenario_path(name))
