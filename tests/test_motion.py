"""
Tests for the median translation estimate and motion classification.
"""

import numpy as np
import pytest

from jigglecv.motion import estimate_translation, compensate, classify_motion
from jigglecv.types import FeatureSet, Transform


def _fs(points):
    points = np.asarray(points, dtype=np.float64)
    return FeatureSet(points, np.ones(points.shape[0]))


class TestEstimateTranslation:
    """Tests for the MotionEstimator."""

    def test_uniform_shift(self):
        before = _fs([[10, 10], [20, 30], [40, 5]])
        after = _fs([[12, 9], [22, 29], [42, 4]])
        t = estimate_translation(before, after)
        assert t.dx == pytest.approx(2.0)
        assert t.dy == pytest.approx(-1.0)
        assert t.scale == 1.0
        assert t.rotation == 0.0

    def test_empty_is_identity(self):
        assert estimate_translation(FeatureSet.empty(), FeatureSet.empty()).is_identity

    def test_length_mismatch_is_identity(self):
        assert estimate_translation(_fs([[0, 0], [1, 1]]), _fs([[3, 3]])).is_identity

    def test_outliers_do_not_move_median(self):
        """10% wild correspondences: the median holds, a mean would not."""
        rng = np.random.default_rng(7)
        before = rng.uniform(20, 140, size=(100, 2))
        after = before + np.array([2.0, 1.0])
        # e.g. points that landed on a hand moving into the frame
        after[:10] += rng.uniform(25, 40, size=(10, 2))

        t = estimate_translation(_fs(before), _fs(after))
        assert t.dx == pytest.approx(2.0, abs=0.5)
        assert t.dy == pytest.approx(1.0, abs=0.5)

        mean = (after - before).mean(axis=0)
        assert abs(mean[0] - 2.0) > 2.0
        assert abs(mean[1] - 1.0) > 2.0


class TestClassifyMotion:
    """Tests for compensate() and classify_motion()."""

    def test_compensate_counteracts_and_scales(self):
        cum = compensate(Transform(1.0, 0.0), Transform(0.5, -0.25), 4.0)
        assert cum.dx == pytest.approx(-1.0)
        assert cum.dy == pytest.approx(1.0)

    def test_normal(self):
        kind = classify_motion(
            Transform(1.0, 0.0), Transform.identity(),
            scale=4.0, large_motion_threshold=20.0, drift_threshold=50.0,
        )
        assert kind == "normal"

    def test_large_motion(self):
        kind = classify_motion(
            Transform(15.0, 15.0), Transform.identity(),
            scale=4.0, large_motion_threshold=20.0, drift_threshold=50.0,
        )
        assert kind == "large_motion"

    def test_drift(self):
        kind = classify_motion(
            Transform(2.0, 0.0), Transform(-45.0, 0.0),
            scale=4.0, large_motion_threshold=20.0, drift_threshold=50.0,
        )
        assert kind == "drift"

    def test_exactly_at_threshold_is_normal(self):
        kind = classify_motion(
            Transform(20.0, 0.0), Transform.identity(),
            scale=1.0, large_motion_threshold=20.0, drift_threshold=50.0,
        )
        assert kind == "normal"
