"""
Preprocessing package
"""
from .frames import (
    FrameSource, ArrayFrame, MaskLike, ChannelOrder,
    working_size, downsample, downsample_mask,
)

__all__ = [
    "FrameSource", "ArrayFrame", "MaskLike", "ChannelOrder",
    "working_size", "downsample", "downsample_mask",
]
