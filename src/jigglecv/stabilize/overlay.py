"""
Apply a compensation Transform on the rendering side.

Two helpers:
1) apply_to_region:
    - shifts the four percentage-space corners of an overlay region
    - the pixel -> percent conversion uses the LIVE canvas size
2) shift_image:
    - translates a full-resolution image (overlay layer or video frame)
      with cv2.warpAffine
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import cv2

from ..types import Transform


@dataclass(frozen=True)
class Corner:
    """A corner in percentage space (0..100 of canvas width / height)."""
    x: float
    y: float

    def shifted(self, dx_pct: float, dy_pct: float) -> Corner:
        return Corner(self.x + dx_pct, self.y + dy_pct)


@dataclass(frozen=True)
class Region:
    """Quadrilateral overlay region, corners in percentage space."""
    top_left: Corner
    top_right: Corner
    bottom_left: Corner
    bottom_right: Corner


def apply_to_region(region: Region, transform: Transform, *, canvas_size: Tuple[int, int]) -> Region:
    """
    Shift every corner of region by transform.

    canvas_size:
      (width, height) in pixels of the canvas the region is drawn on, in
      the same pixel space as the transform (source resolution).

    dx_pct = dx / width * 100
    dy_pct = dy / height * 100
    """
    width, height = canvas_size
    if width <= 0 or height <= 0:
        raise ValueError(f"canvas_size must be positive, got {canvas_size}")

    if transform.is_identity:
        return region

    dx_pct = transform.dx / float(width) * 100.0
    dy_pct = transform.dy / float(height) * 100.0

    return Region(
        top_left=region.top_left.shifted(dx_pct, dy_pct),
        top_right=region.top_right.shifted(dx_pct, dy_pct),
        bottom_left=region.bottom_left.shifted(dx_pct, dy_pct),
        bottom_right=region.bottom_right.shifted(dx_pct, dy_pct),
    )


# ---------- Warp parameters ----------
@dataclass(frozen=True)
class WarpParams:
    """
    How OpenCV fills pixels exposed by the shift.

    - border_mode:
        - cv2.BORDER_CONSTANT: fill with border_value (default, keeps an
          overlay layer transparent/black outside its content)
        - cv2.BORDER_REFLECT / cv2.BORDER_REPLICATE for video frames
    - border_value:
        Used only when border_mode == cv2.BORDER_CONSTANT.
    - interpolation:
        - cv2.INTER_LINEAR: sub-pixel shifts, good default.
        - cv2.INTER_NEAREST: whole-pixel look, faster.
    """
    border_mode: int = cv2.BORDER_CONSTANT
    border_value: Tuple[int, int, int, int] = (0, 0, 0, 0)
    interpolation: int = cv2.INTER_LINEAR


def shift_image(
        image: np.ndarray,
        transform: Transform,
        *,
        params: WarpParams = WarpParams(),
) -> np.ndarray:
    """
    Translate an image by (transform.dx, transform.dy) pixels.

    - image: (H,W), (H,W,3) or (H,W,4) array.
    Output: shifted image with the same shape.
    """
    if image is None or image.size == 0:
        return image

    H, W = image.shape[:2]

    # OpenCV warpAffine expects the top 2x3 block
    A = transform.to_matrix()[:2, :]

    return cv2.warpAffine(
        image,
        A,
        (W, H),
        flags=params.interpolation,
        borderMode=params.border_mode,
        borderValue=params.border_value,
    )
