"""
Shared typed primitives for the jiggle-compensation pipeline.

Defines:
- Typed NumPy aliases
    - Points are (N,2) float arrays
    - Gray frames are (H,W) float32 arrays at working resolution
- FeaturePoint / FeatureSet: immutable feature containers
- Transform: translation-only compensation offset
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# - float64 for geometry (more stable for linear algebra)
# - float32 for image samples (what cv2 sub-pixel sampling expects)
# - bool_ for masks

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Points in working-resolution image coordinates, shape (N, 2)
Points2D: TypeAlias = FloatArray

# Single-channel luminance frame at working resolution, shape (H, W)
GrayFrame: TypeAlias = npt.NDArray[np.float32]

# Boolean exclusion mask at working resolution, shape (H, W). True = excluded.
ExclusionMask: TypeAlias = BoolArray

# 3x3 homogeneous transform matrix
Mat3x3: TypeAlias = FloatArray


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


# ---------- Feature points ----------
@dataclass(frozen=True)
class FeaturePoint:
    """A trackable background point (working-resolution coordinates)."""
    x: float
    y: float
    response: float


@dataclass(frozen=True, eq=False)
class FeatureSet:
    """
    An immutable set of feature points.

    Stored column-wise so the tracker and estimator can work on whole arrays:
      points:    (N,2) float64, columns are x, y
      responses: (N,)  float64 Harris response per point

    Both arrays are read-only. A new frame's features are a new FeatureSet,
    never an edited copy of the previous one.
    """
    points: Points2D
    responses: FloatArray

    def __post_init__(self) -> None:
        pts = np.array(self.points, dtype=np.float64).reshape(-1, 2)
        resp = np.array(self.responses, dtype=np.float64).reshape(-1)
        if pts.shape[0] != resp.shape[0]:
            raise ValueError(f"points and responses must have the same length, got {pts.shape[0]} vs {resp.shape[0]}")

        # frozen dataclass: bypass __setattr__ to store the normalized copies
        object.__setattr__(self, "points", _frozen(pts))
        object.__setattr__(self, "responses", _frozen(resp))

    @classmethod
    def empty(cls) -> FeatureSet:
        return cls(np.zeros((0, 2), dtype=np.float64), np.zeros((0,), dtype=np.float64))

    @classmethod
    def from_points(cls, points: list[FeaturePoint]) -> FeatureSet:
        if not points:
            return cls.empty()
        pts = np.array([[p.x, p.y] for p in points], dtype=np.float64)
        resp = np.array([p.response for p in points], dtype=np.float64)
        return cls(pts, resp)

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def __iter__(self) -> Iterator[FeaturePoint]:
        for (x, y), r in zip(self.points, self.responses):
            yield FeaturePoint(float(x), float(y), float(r))

    def subset(self, keep: BoolArray) -> FeatureSet:
        """Return a new FeatureSet with only the rows where keep is True."""
        keep = np.asarray(keep, dtype=bool).reshape(-1)
        if keep.shape[0] != len(self):
            raise ValueError(f"keep mask must have length {len(self)}, got {keep.shape[0]}")
        return FeatureSet(self.points[keep], self.responses[keep])


# ---------- Transform ----------
@dataclass(frozen=True)
class Transform:
    """
    Translational offset.

    Used twice by the stabilizer:
      - per-frame motion estimate (working-resolution pixels)
      - cumulative compensation since last reinit (source pixels)

    scale and rotation are carried for renderer compatibility and are always
    1 and 0 in this translation-only model.
    """
    dx: float = 0.0
    dy: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0

    @staticmethod
    def identity() -> Transform:
        return Transform()

    @property
    def magnitude(self) -> float:
        return math.hypot(self.dx, self.dy)

    @property
    def is_identity(self) -> bool:
        return self.dx == 0.0 and self.dy == 0.0

    def to_matrix(self) -> Mat3x3:
        """
        3x3 homogeneous translation matrix:

            [ 1  0  dx ]
            [ 0  1  dy ]
            [ 0  0   1 ]
        """
        T = np.eye(3, dtype=np.float64)
        T[0, 2] = float(self.dx)
        T[1, 2] = float(self.dy)
        return T
