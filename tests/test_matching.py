"""
Tests for Harris detection and Lucas-Kanade tracking.
"""

import numpy as np
import pytest

from conftest import view
from jigglecv.matching import harris_detect, harris_response, central_gradients, HarrisParams, lk_track, LKParams
from jigglecv.types import FeatureSet


def _gray(canvas, w, h, pad, sx=0, sy=0):
    return view(canvas, w, h, pad=pad, shift_x=sx, shift_y=sy).astype(np.float32)


class TestGradients:
    """Tests for central-difference gradients."""

    def test_horizontal_ramp(self):
        ramp = np.tile(np.arange(10, dtype=np.float32) * 3.0, (6, 1))
        Ix, Iy = central_gradients(ramp)
        assert np.allclose(Ix[1:-1, 1:-1], 3.0)
        assert np.allclose(Iy, 0.0)
        assert np.all(Ix[:, 0] == 0.0)

    def test_flat_image_has_no_response(self):
        r = harris_response(np.full((20, 20), 50, dtype=np.float32), window_size=3, harris_k=0.04)
        assert np.allclose(r, 0.0)


class TestHarrisDetect:
    """Tests for the FeatureDetector."""

    def test_flat_frame_is_empty(self):
        fs = harris_detect(np.full((60, 80), 128, dtype=np.float32))
        assert len(fs) == 0

    def test_respects_max_features(self, gray_scene):
        canvas, w, h, pad = gray_scene
        fs = harris_detect(_gray(canvas, w, h, pad), params=HarrisParams(max_features=5, min_distance=4.0))
        assert len(fs) == 5

    def test_spacing_bounds_and_order(self, gray_scene):
        canvas, w, h, pad = gray_scene
        params = HarrisParams(max_features=50, min_distance=20.0)
        fs = harris_detect(_gray(canvas, w, h, pad), params=params, downsample_factor=4)

        assert 0 < len(fs) <= 50
        pts = fs.points
        # Inside the frame, on the candidate grid, clear of the window border
        assert np.all((pts[:, 0] >= 3) & (pts[:, 0] < w - 3))
        assert np.all((pts[:, 1] >= 3) & (pts[:, 1] < h - 3))
        assert np.all((pts - 3) % 3 == 0)

        # Pairwise spacing in working pixels
        d = np.linalg.norm(pts[:, None, :] - pts[None, :, :], axis=2)
        d[np.diag_indices(len(fs))] = np.inf
        assert d.min() >= 20.0 / 4

        # Accepted strongest first
        assert np.all(np.diff(fs.responses) <= 0)
        assert np.all(fs.responses > params.corner_threshold)

    def test_threshold_rejects_everything(self, gray_scene):
        canvas, w, h, pad = gray_scene
        fs = harris_detect(_gray(canvas, w, h, pad), params=HarrisParams(corner_threshold=1e30))
        assert len(fs) == 0

    def test_mask_excludes_region(self, gray_scene):
        canvas, w, h, pad = gray_scene
        mask = np.zeros((h, w), dtype=bool)
        mask[:, : w // 2] = True
        fs = harris_detect(_gray(canvas, w, h, pad), mask=mask)
        assert len(fs) > 0
        assert np.all(fs.points[:, 0] >= w // 2)

    def test_full_mask_is_empty(self, gray_scene):
        canvas, w, h, pad = gray_scene
        fs = harris_detect(_gray(canvas, w, h, pad), mask=np.ones((h, w), dtype=bool))
        assert len(fs) == 0

    def test_mask_shape_mismatch(self, gray_scene):
        canvas, w, h, pad = gray_scene
        with pytest.raises(ValueError):
            harris_detect(_gray(canvas, w, h, pad), mask=np.zeros((10, 10), dtype=bool))


class TestLKTrack:
    """Tests for the CorrespondenceTracker."""

    def test_static_scene(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g = _gray(canvas, w, h, pad)
        fs = harris_detect(g, params=HarrisParams(min_distance=10.0))
        result = lk_track(g, g.copy(), fs)

        assert len(result.tracked) > 0
        before = fs.subset(result.status)
        assert np.allclose(result.tracked.points, before.points)

    def test_known_shift(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g0 = _gray(canvas, w, h, pad)
        g1 = _gray(canvas, w, h, pad, sx=2, sy=1)
        fs = harris_detect(g0, params=HarrisParams(min_distance=10.0))

        result = lk_track(g0, g1, fs)
        assert len(result.tracked) >= 10

        disp = result.tracked.points - fs.subset(result.status).points
        assert np.median(disp[:, 0]) == pytest.approx(2.0, abs=0.25)
        assert np.median(disp[:, 1]) == pytest.approx(1.0, abs=0.25)

    def test_counts_and_responses(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g0 = _gray(canvas, w, h, pad)
        g1 = _gray(canvas, w, h, pad, sx=1)
        fs = harris_detect(g0)

        result = lk_track(g0, g1, fs)
        assert len(result.tracked) + result.lost_count == len(fs)
        assert np.array_equal(result.tracked.responses, fs.responses[result.status])

    def test_input_not_mutated(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g0 = _gray(canvas, w, h, pad)
        g1 = _gray(canvas, w, h, pad, sx=2)
        fs = harris_detect(g0)
        before = fs.points.copy()

        result = lk_track(g0, g1, fs)
        assert np.array_equal(fs.points, before)
        assert result.tracked is not fs

    def test_edge_points_are_lost(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g = _gray(canvas, w, h, pad)
        fs = FeatureSet(np.array([[5.0, 60.0], [80.0, 2.0], [w - 10.0, 60.0], [80.0, 60.0]]), np.ones(4))

        result = lk_track(g, g, fs, params=LKParams(search_window=15))
        assert result.status.tolist() == [False, False, False, True]
        assert result.lost_count == 3

    def test_tracked_points_stay_in_bounds(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g0 = _gray(canvas, w, h, pad)
        g1 = _gray(canvas, w, h, pad, sx=3, sy=-2)
        params = LKParams(search_window=9)
        result = lk_track(g0, g1, harris_detect(g0), params=params)

        pts = result.tracked.points
        assert np.all((pts[:, 0] >= 9) & (pts[:, 0] < w - 9))
        assert np.all((pts[:, 1] >= 9) & (pts[:, 1] < h - 9))

    def test_flat_patch_is_singular(self):
        flat = np.full((60, 60), 100, dtype=np.float32)
        fs = FeatureSet(np.array([[30.0, 30.0]]), np.array([1.0]))
        result = lk_track(flat, flat, fs)
        assert result.lost_count == 1
        assert len(result.tracked) == 0

    def test_empty_feature_set(self, gray_scene):
        canvas, w, h, pad = gray_scene
        g = _gray(canvas, w, h, pad)
        result = lk_track(g, g, FeatureSet.empty())
        assert len(result.tracked) == 0
        assert result.lost_count == 0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            lk_track(np.zeros((10, 10), np.float32), np.zeros((10, 12), np.float32), FeatureSet.empty())
