"""
Corners / keypoint detection

Harris corner response on a stride grid, followed by greedy
minimum-distance suppression.

For each candidate pixel the structure matrix over a (2w+1)x(2w+1) window is

    M = [[ sum Ix^2,  sum IxIy ],
         [ sum IxIy,  sum Iy^2 ]]

and the Harris score is

    r = det(M) - k * trace(M)^2
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import cv2

from ..types import GrayFrame, ExclusionMask, FeatureSet, FloatArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarrisParams:
    """
    Parameters for Harris corner detection.

    max_features:
      - Upper bound on number of features returned.
    harris_k:
      - Sensitivity k in det(M) - k * trace(M)^2.
    corner_threshold:
      - Rejects candidates with response <= corner_threshold.
    min_distance:
      - Minimum allowed distance between features, in source pixels.
    window_size:
      - Half size of the summation window; also the skipped border.
    grid_stride:
      - Only every grid_stride-th pixel (in x and y) is a candidate.
    """
    max_features: int = 50
    harris_k: float = 0.04
    corner_threshold: float = 0.01
    min_distance: float = 20.0
    window_size: int = 3
    grid_stride: int = 3


def central_gradients(gray: GrayFrame) -> tuple[np.ndarray, np.ndarray]:
    """
    Horizontal / vertical gradients by 2-pixel central difference:

        Ix(x, y) = (I(x+1, y) - I(x-1, y)) / 2
        Iy(x, y) = (I(x, y+1) - I(x, y-1)) / 2

    The outermost row/column has no neighbour on one side and is left at 0.
    """
    g = np.asarray(gray, dtype=np.float32)
    Ix = np.zeros_like(g)
    Iy = np.zeros_like(g)
    Ix[1:-1, 1:-1] = (g[1:-1, 2:] - g[1:-1, :-2]) * 0.5
    Iy[1:-1, 1:-1] = (g[2:, 1:-1] - g[:-2, 1:-1]) * 0.5
    return Ix, Iy


def harris_response(gray: GrayFrame, *, window_size: int, harris_k: float) -> FloatArray:
    """
    Harris response for every pixel.

    Window sums come from an unnormalized box filter. Values are only
    meaningful where the full window lies inside the image; the detector
    never reads the border.
    """
    Ix, Iy = central_gradients(gray)
    Ix = Ix.astype(np.float64)
    Iy = Iy.astype(np.float64)

    ksize = (2 * window_size + 1, 2 * window_size + 1)
    sxx = cv2.boxFilter(Ix * Ix, -1, ksize, normalize=False)
    syy = cv2.boxFilter(Iy * Iy, -1, ksize, normalize=False)
    sxy = cv2.boxFilter(Ix * Iy, -1, ksize, normalize=False)

    det = sxx * syy - sxy * sxy
    trace = sxx + syy
    return det - harris_k * trace * trace


def harris_detect(
        gray: GrayFrame,
        *,
        mask: Optional[ExclusionMask] = None,
        params: HarrisParams = HarrisParams(),
        downsample_factor: int = 1,
) -> FeatureSet:
    """
    Detect Harris corners on a working-resolution gray frame.

    Input:
      gray: (H,W) gray frame
      mask: optional (H,W) bool exclusion mask, True = do not place features here
      downsample_factor: converts params.min_distance to working pixels
    Output:
      FeatureSet with at most params.max_features points, strongest first.
      Empty if nothing clears the threshold.
    """
    if gray.ndim != 2:
        raise ValueError("harris_detect expects grayscale (H,W).")
    if mask is not None and mask.shape != gray.shape:
        raise ValueError(f"mask shape {mask.shape} does not match frame shape {gray.shape}")

    h, w = gray.shape
    win = params.window_size

    # Candidate grid, skipping a window_size border
    ys = np.arange(win, h - win, params.grid_stride)
    xs = np.arange(win, w - win, params.grid_stride)
    if ys.size == 0 or xs.size == 0:
        return FeatureSet.empty()

    response = harris_response(gray, window_size=win, harris_k=params.harris_k)
    grid_r = response[np.ix_(ys, xs)]
    keep = grid_r > params.corner_threshold

    if mask is not None:
        keep &= ~np.asarray(mask, dtype=bool)[np.ix_(ys, xs)]

    cand_y, cand_x = np.nonzero(keep)
    if cand_y.size == 0:
        logger.debug("harris_detect: no candidate above threshold %.4g", params.corner_threshold)
        return FeatureSet.empty()

    cand = np.stack([xs[cand_x], ys[cand_y]], axis=1).astype(np.float64)
    cand_r = grid_r[cand_y, cand_x].astype(np.float64)

    # Strongest first. Stable sort keeps raster order among ties.
    order = np.argsort(-cand_r, kind="stable")
    cand = cand[order]
    cand_r = cand_r[order]

    # ---------- Greedy minimum-distance suppression ----------
    min_dist = float(params.min_distance) / float(downsample_factor)
    accepted = np.zeros((params.max_features, 2), dtype=np.float64)
    accepted_r = np.zeros((params.max_features,), dtype=np.float64)
    n = 0

    for p, r in zip(cand, cand_r):
        if n >= params.max_features:
            break
        if n > 0:
            dist = np.linalg.norm(accepted[:n] - p, axis=1)
            if np.any(dist < min_dist):
                continue
        accepted[n] = p
        accepted_r[n] = r
        n += 1

    logger.debug("harris_detect: %d candidates, %d accepted", cand.shape[0], n)
    return FeatureSet(accepted[:n], accepted_r[:n])
