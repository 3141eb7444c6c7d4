"""
Translation-only motion model for jiggle compensation.

Assume: every background feature moves by the same displacement.
    after ≈ before + t
    t = (dx, dy)

The estimate is the per-component MEDIAN of the displacements, so a minority
of mistracked points (e.g. a hand entering the frame) cannot pull it away.
A mean would be dragged by every outlier.

This model has only 2 degrees of freedom:
    dx (horizontal shift)
    dy (vertical shift)
"""

from __future__ import annotations

from typing import Literal

import numpy as np

from ..types import FeatureSet, Transform

MotionClass = Literal["normal", "large_motion", "drift"]


def estimate_translation(before: FeatureSet, after: FeatureSet) -> Transform:
    """
    Robust translation estimate from paired feature sets.

    before[i] and after[i] must be the same physical point in consecutive
    frames. Returns identity if either set is empty or lengths differ.
    """
    if len(before) == 0 or len(before) != len(after):
        return Transform.identity()

    # Displacement vectors for all correspondences, shape (N, 2)
    displacements = after.points - before.points

    dx = float(np.median(displacements[:, 0]))
    dy = float(np.median(displacements[:, 1]))
    return Transform(dx=dx, dy=dy)


def compensate(cumulative: Transform, delta: Transform, scale: float) -> Transform:
    """
    Fold a per-frame motion estimate into the cumulative compensation.

    The compensation counteracts the observed motion, and delta is measured
    at working resolution, so:

        cum.dx - delta.dx * scale
        cum.dy - delta.dy * scale
    """
    return Transform(
        dx=cumulative.dx - delta.dx * scale,
        dy=cumulative.dy - delta.dy * scale,
    )


def classify_motion(
        delta: Transform,
        cumulative: Transform,
        *,
        scale: float,
        large_motion_threshold: float,
        drift_threshold: float,
) -> MotionClass:
    """
    Classify a per-frame estimate:

    - "large_motion": |delta| > large_motion_threshold (working pixels),
      an intentional camera move rather than jitter.
    - "drift": accepting delta would push |cumulative| past drift_threshold.
    - "normal": safe to accumulate.
    """
    if delta.magnitude > large_motion_threshold:
        return "large_motion"
    if compensate(cumulative, delta, scale).magnitude > drift_threshold:
        return "drift"
    return "normal"
