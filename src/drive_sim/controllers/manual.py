from __future__ import annotations

from dataclasses import dataclass

from drive_sim.controllers.base import Controller, Observation
from drive_sim.core.types import ControlCommand


@dataclass(frozen=True)
class KeyBindings:
    forward: frozenset[str] = frozenset({"KeyW", "ArrowUp"})
    brake: frozenset[str] = frozenset({"KeyS", "ArrowDown"})
    left: frozenset[str] = frozenset({"KeyA", "ArrowLeft"})
    right: frozenset[str] = frozenset({"KeyD", "ArrowRight"})


class ManualController(Controller):
    """Maps the currently held keys straight onto a command.

    Throttle and brake held together stack; the kinematic clamp bounds the result.
    """

    def __init__(self, bindings: KeyBindings = KeyBindings()) -> None:
        self.bindings = bindings

    def decide(self, obs: Observation) -> ControlCommand:
        keys = obs.keys
        longitudinal = 0.0
        turn = 0.0
        if keys & self.bindings.forward:
            longitudinal += obs.params.accel
        if keys & self.bindings.brake:
            longitudinal -= obs.params.brake
        if keys & self.bindings.left:
            turn -= 1.0
        if keys & self.bindings.right:
            turn += 1.0
        return ControlCommand(longitudinal=longitudinal, turn=turn)
