from .stabilizer import JiggleStabilizer, StabilizerStatus, StabilizerState, ReinitReason
from .overlay import Corner, Region, apply_to_region, WarpParams, shift_image


__all__ = [
    "JiggleStabilizer", "StabilizerStatus", "StabilizerState", "ReinitReason",
    "Corner", "Region", "apply_to_region", "WarpParams", "shift_image",
]
