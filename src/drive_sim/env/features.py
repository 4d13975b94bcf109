from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

import numpy as np


GOAL_FEATURES = ("speed_norm", "sin_bearing", "cos_bearing", "distance_norm")


class PolicyInputAdapter:
    """Flatten ``DriveEnv`` observation dicts into float vectors.

    Layout: the goal-relative block from ``GOAL_FEATURES``, then one
    normalized clearance per sensor ray, then (optionally) one 0/1 hit flag
    per ray. The ray count is fixed by the first observation seen unless
    given up front.
    """

    def __init__(
        self,
        num_rays: Optional[int] = None,
        include_hits: bool = False,
        ray_key: str = "ray_distances_norm",
        dtype: Any = np.float32,
    ) -> None:
        if num_rays is not None and num_rays <= 0:
            raise ValueError("num_rays must be > 0")
        self.num_rays = num_rays
        self.include_hits = include_hits
        self.ray_key = ray_key
        self.dtype = dtype

    def _require_rays(self) -> int:
        if self.num_rays is None:
            raise ValueError("ray count is unknown until the first transform() or an explicit num_rays")
        return self.num_rays

    @property
    def feature_dim(self) -> int:
        rays = self._require_rays()
        return len(GOAL_FEATURES) + rays * (2 if self.include_hits else 1)

    def feature_names(self) -> list[str]:
        rays = self._require_rays()
        names = list(GOAL_FEATURES)
        names.extend(f"ray_{i:02d}_norm" for i in range(rays))
        if self.include_hits:
            names.extend(f"ray_{i:02d}_hit" for i in range(rays))
        return names

    def transform(self, obs: Mapping[str, Any]) -> np.ndarray:
        rays = np.asarray(obs[self.ray_key], dtype=self.dtype).reshape(-1)
        if self.num_rays is None:
            self.num_rays = int(rays.shape[0])
        if rays.shape[0] != self.num_rays:
            raise ValueError(f"expected {self.num_rays} values in '{self.ray_key}', got {rays.shape[0]}")

        bearing = float(obs["bearing"])
        goal = np.asarray(
            [float(obs["speed_norm"]), np.sin(bearing), np.cos(bearing), float(obs["distance_norm"])],
            dtype=self.dtype,
        )
        parts = [goal, rays]
        if self.include_hits:
            parts.append(np.asarray(obs["ray_hits"], dtype=self.dtype).reshape(-1))
        return np.concatenate(parts)

    def transform_batch(self, observations: Iterable[Mapping[str, Any]]) -> np.ndarray:
        rows = [self.transform(obs) for obs in observations]
        if not rows:
            return np.zeros((0, self.feature_dim), dtype=self.dtype)
        return np.stack(rows, axis=0)
