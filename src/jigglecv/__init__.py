"""
jigglecv - overlay stabilization against small camera jiggle
=============================================================

Tracks sparse background corners frame-to-frame, estimates the camera's
translational drift, and returns an offset a renderer applies to overlay
geometry.

Main modules:
- jigglecv.preprocess: frame sources, downsampling, exclusion masks
- jigglecv.matching: Harris detection and Lucas-Kanade tracking
- jigglecv.motion: median translation estimate and motion classification
- jigglecv.stabilize: JiggleStabilizer controller and overlay helpers

Quick start:
    >>> from jigglecv import JiggleStabilizer, ArrayFrame
    >>> stab = JiggleStabilizer()
    >>> T = stab.process(ArrayFrame(frame_bgr, "bgr"))
"""

__version__ = "0.1.0"

from .types import FeaturePoint, FeatureSet, Transform
from .config import StabilizerConfig
from .preprocess import ArrayFrame, FrameSource
from .stabilize import JiggleStabilizer, StabilizerStatus, Corner, Region, apply_to_region

__all__ = [
    "__version__",
    "FeaturePoint", "FeatureSet", "Transform",
    "StabilizerConfig",
    "ArrayFrame", "FrameSource",
    "JiggleStabilizer", "StabilizerStatus", "Corner", "Region", "apply_to_region",
]
