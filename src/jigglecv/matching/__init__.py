"""
Matching package: feature detection + sparse tracking
"""
from .corners import harris_detect, harris_response, central_gradients, HarrisParams
from .lk_tracking import lk_track, LKParams, TrackResult

__all__ = [
    "harris_detect", "harris_response", "central_gradients", "HarrisParams",
    "lk_track", "LKParams", "TrackResult",
]
