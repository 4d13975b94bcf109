from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from drive_sim.core.types import Box, Rect


class Space(ABC):
    """Working space of a scenario.

    All vehicle, sensor and collision math runs on planar ``(x, y)``
    coordinates. A space maps world points onto that plane and lifts planar
    poses back into world coordinates for the presentation layer.
    """

    kind: str = ""
    dims: int = 2

    def __init__(self, sensor_elevation: float = 0.0) -> None:
        self.sensor_elevation = sensor_elevation

    @abstractmethod
    def planar(self, point: Sequence[float]) -> tuple[float, float]:
        raise NotImplementedError

    @abstractmethod
    def lift(self, x: float, y: float, elevation: float = 0.0) -> tuple[float, ...]:
        raise NotImplementedError

    def footprint(self, box: Box) -> Rect:
        x0, y0 = self.planar(box.min)
        x1, y1 = self.planar(box.max)
        return Rect(min_x=min(x0, x1), min_y=min(y0, y1), max_x=max(x0, x1), max_y=max(y0, y1))

    def sensor_origin(self, x: float, y: float) -> tuple[float, ...]:
        return self.lift(x, y, self.sensor_elevation)

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind, "dims": self.dims, "sensor_elevation": self.sensor_elevation}


class PlaneSpace(Space):
    kind = "plane"
    dims = 2

    def planar(self, point: Sequence[float]) -> tuple[float, float]:
        return (float(point[0]), float(point[1]))

    def lift(self, x: float, y: float, elevation: float = 0.0) -> tuple[float, ...]:
        _ = elevation
        return (x, y)


class GroundPlaneSpace(Space):
    """Y-up 3D world with motion confined to the XZ plane; planar y is world z."""

    kind = "ground"
    dims = 3

    def __init__(self, ride_height: float = 0.0, sensor_elevation: float = 0.0) -> None:
        super().__init__(sensor_elevation=sensor_elevation)
        self.ride_height = ride_height

    def planar(self, point: Sequence[float]) -> tuple[float, float]:
        if len(point) == 2:
            return (float(point[0]), float(point[1]))
        return (float(point[0]), float(point[2]))

    def lift(self, x: float, y: float, elevation: float = 0.0) -> tuple[float, ...]:
        return (x, self.ride_height + elevation, y)

    def describe(self) -> dict[str, Any]:
        out = super().describe()
        out["ride_height"] = self.ride_height
        return out


def make_space(data: Mapping[str, Any]) -> Space:
    kind = str(data.get("kind", "plane"))
    sensor_elevation = float(data.get("sensor_elevation", 0.0))
    if kind == "plane":
        return PlaneSpace(sensor_elevation=sensor_elevation)
    if kind == "ground":
        return GroundPlaneSpace(
            ride_height=float(data.get("ride_height", 0.0)),
            sensor_elevation=sensor_elevation,
        )
    raise ValueError(f"unknown space kind '{kind}', expected 'plane' or 'ground'")
