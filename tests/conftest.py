"""
Synthetic scenes for tracking tests.

A scene is a large canvas of blurred random blobs. Frames are crops of the
canvas, so a camera move is an exact integer shift with no border artifacts.
"""

import numpy as np
import cv2
import pytest


def make_canvas(height, width, *, blob=8, sigma=1.5, seed=0):
    """Smooth random texture, uint8 (H,W)."""
    rng = np.random.default_rng(seed)
    small = rng.integers(0, 256, size=(height // blob + 2, width // blob + 2)).astype(np.float32)
    big = cv2.resize(small, (width + 2 * blob, height + 2 * blob), interpolation=cv2.INTER_CUBIC)
    big = big[blob:blob + height, blob:blob + width]
    big = cv2.GaussianBlur(big, (0, 0), sigma)
    return np.clip(big, 0, 255).astype(np.uint8)


def view(canvas, width, height, *, pad, shift_x=0, shift_y=0):
    """
    Crop a width x height frame whose content is moved by (+shift_x, +shift_y)
    relative to the unshifted crop at (pad, pad).
    """
    y0 = pad - shift_y
    x0 = pad - shift_x
    return np.ascontiguousarray(canvas[y0:y0 + height, x0:x0 + width])


@pytest.fixture
def gray_scene():
    """Working-resolution scene: (canvas, width, height, pad)."""
    w, h, pad = 160, 120, 16
    canvas = make_canvas(h + 2 * pad, w + 2 * pad, blob=8, sigma=1.5, seed=1)
    return canvas, w, h, pad


@pytest.fixture
def source_scene():
    """Source-resolution (640x480) scene for downsample_factor=4: (canvas, width, height, pad)."""
    w, h, pad = 640, 480, 64
    canvas = make_canvas(h + 2 * pad, w + 2 * pad, blob=32, sigma=4.0, seed=2)
    return canvas, w, h, pad
