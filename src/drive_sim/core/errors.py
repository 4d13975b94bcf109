from __future__ import annotations


class ScenarioError(ValueError):
    """Raised when a scenario or a runtime parameter fails validation."""


class InvalidInputError(ValueError):
    """Raised when a tick or pose input is not finite; simulation state is left untouched."""
