"""
Motion package

Per-frame translation estimate and motion classification.
"""
from .translation import estimate_translation, compensate, classify_motion, MotionClass

__all__ = [
    "estimate_translation", "compensate", "classify_motion", "MotionClass",
]
