"""
Lucas–Kanade (LK) sparse tracking

Single-scale iterative LK on working-resolution gray frames.

For a point p with running offset d, over the search window W:

    Ix, Iy : gradients of the PREVIOUS frame around p
    It     : I_curr(x + d) - I_prev(x)          (sampled sub-pixel)

    [ sum Ix^2   sum IxIy ] [vx]      [ sum Ix*It ]
    [ sum IxIy   sum Iy^2 ] [vy] = -  [ sum Iy*It ]

    d <- d + v, until |v| < eps or max_iterations is reached.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import cv2

from ..types import GrayFrame, FeatureSet, BoolArray
from .corners import central_gradients

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LKParams:
    """
    Parameters for Lucas–Kanade tracking.

    search_window:
      - Half size of the window (pixels). The window is (2w+1)x(2w+1).
      - Points closer than this to an edge are dropped.
      - A point that moves >= search_window in x or y is dropped (diverged).

    max_iterations / convergence_eps:
      - Stop when the increment magnitude is < convergence_eps,
        or after max_iterations.

    det_eps:
      - Structure matrices with |det| below this are treated as singular.
    """
    search_window: int = 15
    max_iterations: int = 10
    convergence_eps: float = 0.1
    det_eps: float = 1e-6


@dataclass(frozen=True, eq=False)
class TrackResult:
    """
    tracked:
      - New FeatureSet of successfully tracked points (current-frame coords),
        response scores carried over from the input.
    status:
      - (N,) bool, one per INPUT point: True = tracked.
        input.subset(status) pairs row-by-row with tracked.
    lost_count:
      - Number of input points that could not be tracked.
    """
    tracked: FeatureSet
    status: BoolArray
    lost_count: int


def _inside(x: float, y: float, w: int, h: int, margin: int) -> bool:
    return margin <= x < w - margin and margin <= y < h - margin


def _track_point(
        prev: GrayFrame,
        curr: GrayFrame,
        grad_x: np.ndarray,
        grad_y: np.ndarray,
        x: float,
        y: float,
        params: LKParams,
) -> Optional[tuple[float, float]]:
    """
    Refine one point. Returns the new (x, y), or None if the point is lost.
    """
    h, w = prev.shape
    win = params.search_window
    size = (2 * win + 1, 2 * win + 1)

    if not _inside(x, y, w, h, win):
        return None

    # Previous-frame window is fixed for all iterations, so is M
    center = (float(x), float(y))
    p_patch = cv2.getRectSubPix(prev, size, center)
    ix = cv2.getRectSubPix(grad_x, size, center).astype(np.float64)
    iy = cv2.getRectSubPix(grad_y, size, center).astype(np.float64)

    sxx = float(np.sum(ix * ix))
    syy = float(np.sum(iy * iy))
    sxy = float(np.sum(ix * iy))
    det = sxx * syy - sxy * sxy
    if abs(det) < params.det_eps:
        return None

    dx = 0.0
    dy = 0.0
    for _ in range(params.max_iterations):
        nx = x + dx
        ny = y + dy
        if not _inside(nx, ny, w, h, win):
            return None

        c_patch = cv2.getRectSubPix(curr, size, (float(nx), float(ny)))
        it = (c_patch - p_patch).astype(np.float64)
        bx = float(np.sum(ix * it))
        by = float(np.sum(iy * it))

        # v = -M^-1 b
        vx = -(syy * bx - sxy * by) / det
        vy = -(sxx * by - sxy * bx) / det
        dx += vx
        dy += vy

        if math.hypot(vx, vy) < params.convergence_eps:
            break

    # Divergence guard
    if abs(dx) >= win or abs(dy) >= win:
        return None

    new_x = x + dx
    new_y = y + dy
    if not _inside(new_x, new_y, w, h, win):
        return None
    return new_x, new_y


def lk_track(
    prev_gray: GrayFrame,
    curr_gray: GrayFrame,
    features: FeatureSet,
    *,
    params: LKParams = LKParams(),
) -> TrackResult:
    """
    Track features from prev_gray -> curr_gray.

    Inputs:
        prev_gray, curr_gray:
          - Gray frames (H,W), same shape.
        features:
          - FeatureSet in prev_gray coordinates. Never modified.

    Returns:
        TrackResult, with len(tracked) + lost_count == len(features).
    """
    # ---------- Input Check ----------
    if prev_gray.ndim != 2 or curr_gray.ndim != 2:
        raise ValueError("lk_track expects grayscale frames (H,W).")
    if prev_gray.shape != curr_gray.shape:
        raise ValueError(f"lk_track frame shapes differ: {prev_gray.shape} vs {curr_gray.shape}")

    n = len(features)
    status = np.zeros((n,), dtype=bool)
    if n == 0:
        return TrackResult(FeatureSet.empty(), status, 0)

    # cv2.getRectSubPix wants float32 single-channel input
    prev = np.ascontiguousarray(prev_gray, dtype=np.float32)
    curr = np.ascontiguousarray(curr_gray, dtype=np.float32)
    grad_x, grad_y = central_gradients(prev)

    new_pts = np.zeros((n, 2), dtype=np.float64)

    # ---------- Run LK ----------
    for i, (x, y) in enumerate(features.points):
        out = _track_point(prev, curr, grad_x, grad_y, float(x), float(y), params)
        if out is None:
            continue
        new_pts[i] = out
        status[i] = True

    tracked = FeatureSet(new_pts[status], features.responses[status])
    lost = n - int(np.count_nonzero(status))
    logger.debug("lk_track: %d tracked, %d lost", n - lost, lost)

    status.setflags(write=False)
    return TrackResult(tracked, status, lost)
