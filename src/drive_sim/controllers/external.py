from __future__ import annotations

from drive_sim.controllers.base import Controller, Observation
from drive_sim.core.types import ControlCommand


class ExternalController(Controller):
    """Replays the last command pushed by the caller, e.g. a learning agent."""

    def __init__(self) -> None:
        self._command = ControlCommand()

    def set_command(self, command: ControlCommand) -> None:
        self._command = ControlCommand(longitudinal=command.longitudinal, turn=command.turn)

    def decide(self, obs: Observation) -> ControlCommand:
        _ = obs
        return ControlCommand(longitudinal=self._command.longitudinal, turn=self._command.turn)
