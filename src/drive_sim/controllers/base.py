from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence

from drive_sim.core.types import ControlCommand, Goal, SensorReading, VehicleParams, VehicleState


@dataclass
class Observation:
    state: VehicleState
    params: VehicleParams
    readings: Sequence[SensorReading]
    goal: Goal
    keys: frozenset[str] = field(default_factory=frozenset)


class Controller(ABC):
    @abstractmethod
    def decide(self, obs: Observation) -> ControlCommand:
        raise NotImplementedError
