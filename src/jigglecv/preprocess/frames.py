"""
Frame preprocessing: source frame -> working-resolution luminance.

The engine never touches a camera or canvas directly. Anything that can
report its size and draw itself into an RGBA buffer is a FrameSource;
ArrayFrame adapts a plain ndarray (e.g. a cv2.VideoCapture frame).

Exclusion masks are plain arrays at any resolution; channel 0 carries the
"person" signal and values above a threshold are excluded.
"""

from __future__ import annotations

from typing import Literal, Protocol, TypeAlias

import numpy as np
import cv2

from ..types import GrayFrame, ExclusionMask

ChannelOrder = Literal["rgb", "rgba", "bgr", "bgra", "gray"]

# (H,W) or (H,W,C) array at any resolution; channel 0 is read
MaskLike: TypeAlias = np.ndarray

# colour conversion into RGBA for each supported input layout
_TO_RGBA = {
    "rgb": cv2.COLOR_RGB2RGBA,
    "bgr": cv2.COLOR_BGR2RGBA,
    "bgra": cv2.COLOR_BGRA2RGBA,
    "gray": cv2.COLOR_GRAY2RGBA,
}


class FrameSource(Protocol):
    """
    Capability interface for anything the stabilizer can sample.

    - width / height: full source resolution in pixels.
    - to_rgba(width, height): draw the whole source scaled into an
      (height, width, 4) uint8 RGBA buffer.
    """

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def to_rgba(self, width: int, height: int) -> np.ndarray:
        ...


class ArrayFrame:
    """
    FrameSource over an in-memory image array.

    channel_order:
      - "bgr" / "bgra" for OpenCV capture frames
      - "rgb" / "rgba" for most other image libraries
      - "gray" for (H,W) single-channel arrays
    """

    def __init__(self, array: np.ndarray, channel_order: ChannelOrder = "rgb") -> None:
        if channel_order not in ("rgb", "rgba", "bgr", "bgra", "gray"):
            raise ValueError(f"Unknown channel_order: {channel_order}")

        expected_channels = {"gray": None, "rgb": 3, "bgr": 3, "rgba": 4, "bgra": 4}[channel_order]
        if expected_channels is None and array.ndim != 2:
            raise ValueError(f"gray frames must be (H,W), got {array.shape}")
        if expected_channels is not None and (array.ndim != 3 or array.shape[2] != expected_channels):
            raise ValueError(f"{channel_order} frames must be (H,W,{expected_channels}), got {array.shape}")

        self.array = array
        self.channel_order = channel_order

    @property
    def width(self) -> int:
        return int(self.array.shape[1])

    @property
    def height(self) -> int:
        return int(self.array.shape[0])

    def to_rgba(self, width: int, height: int) -> np.ndarray:
        img = self.array
        if img.dtype != np.uint8:
            img = np.clip(img, 0, 255).astype(np.uint8)
        img = np.ascontiguousarray(img)

        if (width, height) != (self.width, self.height):
            # INTER_AREA averages source blocks, the usual choice for shrinking
            img = cv2.resize(img, (width, height), interpolation=cv2.INTER_AREA)

        if self.channel_order == "rgba":
            return np.ascontiguousarray(img)
        return cv2.cvtColor(img, _TO_RGBA[self.channel_order])


def working_size(width: int, height: int, downsample_factor: int) -> tuple[int, int]:
    """Working resolution (floor(width / f), floor(height / f))."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame must be non-empty, got {width}x{height}")
    ww = int(width) // int(downsample_factor)
    wh = int(height) // int(downsample_factor)
    if ww <= 0 or wh <= 0:
        raise ValueError(f"Frame {width}x{height} is smaller than downsample_factor={downsample_factor}")
    return ww, wh


def downsample(source: FrameSource, downsample_factor: int) -> GrayFrame:
    """
    Downsample a source to working resolution and convert to luminance.

    Y = 0.299 R + 0.587 G + 0.114 B   (cv2.COLOR_RGBA2GRAY uses these weights)

    Returns: (H,W) float32 gray frame.
    """
    ww, wh = working_size(source.width, source.height, downsample_factor)
    rgba = source.to_rgba(ww, wh)
    if rgba.shape != (wh, ww, 4):
        raise ValueError(f"to_rgba returned shape {rgba.shape}, expected {(wh, ww, 4)}")

    gray = cv2.cvtColor(rgba, cv2.COLOR_RGBA2GRAY)
    return gray.astype(np.float32)


def downsample_mask(mask: MaskLike, width: int, height: int, threshold: int = 128) -> ExclusionMask:
    """
    Rescale an exclusion mask to (height, width) with nearest-neighbour
    sampling and binarize channel 0: True where value > threshold.
    """
    mask = np.asarray(mask)
    if mask.ndim == 3:
        mask = mask[:, :, 0]
    if mask.ndim != 2 or mask.size == 0:
        raise ValueError(f"mask must be a non-empty (H,W) or (H,W,C) array, got {mask.shape}")

    channel = np.ascontiguousarray(mask)
    if channel.dtype == np.bool_:
        channel = channel.astype(np.uint8) * 255
    elif channel.dtype != np.uint8:
        # cv2.resize has no int64 path
        channel = channel.astype(np.float32)

    if channel.shape != (height, width):
        channel = cv2.resize(channel, (width, height), interpolation=cv2.INTER_NEAREST)
    return channel > threshold
