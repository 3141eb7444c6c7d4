"""
Stabilizer configuration.

All tunables live in one frozen dataclass. Stage-specific parameter objects
(HarrisParams, LKParams) are derived from it so each stage keeps its own
small signature.

Overrides can come from a dict (e.g. a parsed JSON file) or from environment
variables:

    JIGGLECV_DOWNSAMPLE_FACTOR=2 JIGGLECV_SKIP_FRAMES=1 python demo.py
"""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Mapping, Optional

from .matching.corners import HarrisParams
from .matching.lk_tracking import LKParams


@dataclass(frozen=True)
class StabilizerConfig:
    """
    Feature detection (Harris):
    - max_features: upper bound on the feature set size.
    - harris_k: Harris sensitivity in r = det(M) - k * trace(M)^2.
    - corner_threshold: candidates need r > corner_threshold.
    - min_distance: minimum spacing between features, in SOURCE pixels
      (divided by downsample_factor at working resolution).
    - window_size: half size of the Harris summation window.
    - grid_stride: candidate pixels are sampled on this grid.

    Tracking (Lucas-Kanade):
    - search_window: half size of the LK window, working pixels. Also the
      edge margin and divergence bound.
    - max_iterations / convergence_eps: iteration stop criteria.

    Motion policy:
    - large_motion_threshold: per-frame motion (working pixels) above which
      the camera is assumed to have been moved on purpose.
    - drift_threshold: bound on the cumulative compensation (source pixels).
    - min_tracked_points / max_lost_ratio: tracking health limits.

    Performance:
    - downsample_factor: working resolution = source // downsample_factor.
    - skip_frames: only every Nth call runs tracking.

    Misc:
    - mask_threshold: exclusion mask channel value above which a pixel is excluded.
    - reset_notify_interval: minimum seconds between reset notifications.
    """
    max_features: int = 50
    harris_k: float = 0.04
    corner_threshold: float = 0.01
    min_distance: float = 20.0
    window_size: int = 3
    grid_stride: int = 3

    search_window: int = 15
    max_iterations: int = 10
    convergence_eps: float = 0.1

    large_motion_threshold: float = 20.0
    drift_threshold: float = 50.0
    min_tracked_points: int = 10
    max_lost_ratio: float = 0.5

    downsample_factor: int = 4
    skip_frames: int = 2

    mask_threshold: int = 128
    reset_notify_interval: float = 1.0

    def __post_init__(self) -> None:
        positive = (
            "max_features", "window_size", "grid_stride", "search_window",
            "max_iterations", "downsample_factor", "skip_frames",
        )
        for name in positive:
            if getattr(self, name) < 1:
                raise ValueError(f"StabilizerConfig.{name} must be >= 1, got {getattr(self, name)}")

        if self.convergence_eps <= 0.0:
            raise ValueError("StabilizerConfig.convergence_eps must be > 0")
        if self.large_motion_threshold <= 0.0 or self.drift_threshold <= 0.0:
            raise ValueError("StabilizerConfig motion thresholds must be > 0")
        if not (0.0 < self.max_lost_ratio <= 1.0):
            raise ValueError("StabilizerConfig.max_lost_ratio must be in (0, 1]")
        if self.min_distance < 0.0 or self.min_tracked_points < 0 or self.reset_notify_interval < 0.0:
            raise ValueError("StabilizerConfig distances, counts and intervals must be >= 0")

    # ---------- Stage parameters ----------
    def harris_params(self) -> HarrisParams:
        return HarrisParams(
            max_features=self.max_features,
            harris_k=self.harris_k,
            corner_threshold=self.corner_threshold,
            min_distance=self.min_distance,
            window_size=self.window_size,
            grid_stride=self.grid_stride,
        )

    def lk_params(self) -> LKParams:
        return LKParams(
            search_window=self.search_window,
            max_iterations=self.max_iterations,
            convergence_eps=self.convergence_eps,
        )

    # ---------- (De)serialization ----------
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional[StabilizerConfig] = None) -> StabilizerConfig:
        """
        Build a config from a mapping, starting from `base` (or the defaults).
        Unknown keys are rejected so typos don't silently fall back to defaults.
        """
        base = base if base is not None else cls()
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown StabilizerConfig keys: {unknown}")

        # Coerce to the type of the current value (int / float)
        overrides = {k: type(getattr(base, k))(v) for k, v in data.items()}
        return replace(base, **overrides)

    @classmethod
    def from_env(cls, prefix: str = "JIGGLECV_", base: Optional[StabilizerConfig] = None) -> StabilizerConfig:
        """
        Read overrides from environment variables named PREFIX + FIELD (upper case).

        Example:
            JIGGLECV_DRIFT_THRESHOLD=80 -> drift_threshold=80.0
        """
        names = {f.name for f in fields(cls)}
        data: dict[str, Any] = {}
        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):].lower()
            if name in names:
                # from_dict coerces the string to the field's type
                data[name] = value
        return cls.from_dict(data, base=base)
