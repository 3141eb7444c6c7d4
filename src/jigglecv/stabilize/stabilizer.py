"""
Jiggle stabilizer: lifecycle controller for background tracking.

This class is STATEFUL. One instance per video stream.

It manages:
  - previous gray frame + current feature set (always replaced together)
  - cumulative compensation transform since the last (re)initialization
  - frame-skip counter and enabled flag
  - when to re-detect features

Per admitted frame:
    a) source -> downsample() -> gray_k
    b) lk_track(gray_{k-1}, gray_k, features) -> tracked + status
    c) estimate_translation(features[status], tracked) -> delta
    d) classify_motion(delta, cumulative) -> normal / large_motion / drift
    e) normal: cumulative -= delta * downsample_factor
       otherwise: re-detect on gray_k and return identity

States:
    "uninitialized" -> no features / previous frame
    "tracking"      -> normal operation
    "reinitializing" is transient inside a single process() call.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional

from ..config import StabilizerConfig
from ..matching.corners import harris_detect
from ..matching.lk_tracking import lk_track
from ..motion.translation import estimate_translation, classify_motion, compensate
from ..preprocess.frames import FrameSource, MaskLike, downsample, downsample_mask
from ..types import FeatureSet, GrayFrame, Transform

logger = logging.getLogger(__name__)

StabilizerState = Literal["uninitialized", "tracking", "reinitializing"]
ReinitReason = Literal["feature_loss", "large_motion", "drift"]


@dataclass(frozen=True)
class StabilizerStatus:
    """Snapshot of the stabilizer for debug panels / logging."""
    initialized: bool
    enabled: bool
    feature_count: int
    cumulative_dx: float
    cumulative_dy: float
    state: StabilizerState
    frame_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "initialized": self.initialized,
            "enabled": self.enabled,
            "feature_count": self.feature_count,
            "cumulative_dx": self.cumulative_dx,
            "cumulative_dy": self.cumulative_dy,
            "state": self.state,
            "frame_count": self.frame_count,
        }


@dataclass
class JiggleStabilizer:
    """
    Track background features and produce a compensation offset for an overlay.

    Usage:
        stab = JiggleStabilizer()
        for frame in video:
            T = stab.process(ArrayFrame(frame, "bgr"), person_mask)
            region = apply_to_region(region0, T, canvas_size=(w, h))

    The returned Transform is in SOURCE pixels and already points the way
    the overlay must move (it counteracts the camera motion).

    on_reset:
      Optional handler called with "large_motion" or "drift" when the camera
      is judged to have moved on purpose. Fires at most once per
      config.reset_notify_interval seconds, measured from the previous
      (re)initialization with `clock`.
    """
    config: StabilizerConfig = field(default_factory=StabilizerConfig)
    on_reset: Optional[Callable[[ReinitReason], None]] = None
    clock: Callable[[], float] = time.monotonic

    # ---------- Internal state ----------
    _state: StabilizerState = field(default="uninitialized", init=False)
    _enabled: bool = field(default=True, init=False)
    _features: FeatureSet = field(default_factory=FeatureSet.empty, init=False)
    _prev_gray: Optional[GrayFrame] = field(default=None, init=False)
    _cumulative: Transform = field(default_factory=Transform.identity, init=False)
    _frame_count: int = field(default=0, init=False)
    _last_init_time: Optional[float] = field(default=None, init=False)
    _last_info: dict[str, Any] = field(default_factory=dict, init=False)

    # ---------- Public API ----------
    def initialize(self, source: FrameSource, mask: Optional[MaskLike] = None) -> None:
        """
        Detect features on this frame and make it the tracking baseline.
        Zeroes the cumulative transform.
        """
        gray = downsample(source, self.config.downsample_factor)
        self._initialize_from(gray, mask)

    def process(self, source: FrameSource, mask: Optional[MaskLike] = None) -> Transform:
        """
        Process the next frame and return the compensation transform.

        Never raises for tracking trouble: feature loss, large motion and
        drift all reinitialize on this frame and return identity.
        """
        if not self._enabled:
            self._last_info = {"skipped": True, "disabled": True}
            return Transform.identity()

        if self._state == "uninitialized" or self._prev_gray is None:
            self.initialize(source, mask)
            self._last_info = {"skipped": False, "reinit_reason": None, "initialized": True}
            return Transform.identity()

        # Skip frames for performance
        self._frame_count += 1
        if self._frame_count % self.config.skip_frames != 0:
            self._last_info = {"skipped": True}
            return self._cumulative

        gray = downsample(source, self.config.downsample_factor)
        if gray.shape != self._prev_gray.shape:
            # Source resolution changed: the old baseline is meaningless
            logger.info("Frame size changed %s -> %s, reinitializing", self._prev_gray.shape, gray.shape)
            return self._reinitialize(gray, mask, "feature_loss", {"num_tracked": 0, "num_lost": len(self._features)})

        # Track features
        result = lk_track(self._prev_gray, gray, self._features, params=self.config.lk_params())
        n = len(self._features)
        num_tracked = len(result.tracked)
        info: dict[str, Any] = {"num_tracked": num_tracked, "num_lost": result.lost_count}

        # Lost too many features
        if result.lost_count > self.config.max_lost_ratio * n or num_tracked < self.config.min_tracked_points:
            logger.info("Lost too many features (%d/%d tracked), reinitializing", num_tracked, n)
            return self._reinitialize(gray, mask, "feature_loss", info)

        # Pair each surviving input point with its tracked position
        delta = estimate_translation(self._features.subset(result.status), result.tracked)
        info["frame_delta"] = delta

        scale = float(self.config.downsample_factor)
        kind = classify_motion(
            delta,
            self._cumulative,
            scale=scale,
            large_motion_threshold=self.config.large_motion_threshold,
            drift_threshold=self.config.drift_threshold,
        )

        if kind == "large_motion":
            logger.info("Large motion detected (%.1fpx), reinitializing", delta.magnitude)
            self._notify_reset("large_motion")
            return self._reinitialize(gray, mask, "large_motion", info)

        if kind == "drift":
            drift = compensate(self._cumulative, delta, scale).magnitude
            logger.info("Excessive drift (%.1fpx), reinitializing", drift)
            self._notify_reset("drift")
            return self._reinitialize(gray, mask, "drift", info)

        # Normal step: accumulate and advance the baseline together
        self._cumulative = compensate(self._cumulative, delta, scale)
        self._features = result.tracked
        self._prev_gray = gray

        info.update({"skipped": False, "reinit_reason": None})
        self._last_info = info
        logger.debug(
            "step: tracked=%d lost=%d delta=(%.2f, %.2f) cum=(%.2f, %.2f)",
            num_tracked, result.lost_count, delta.dx, delta.dy, self._cumulative.dx, self._cumulative.dy,
        )
        return self._cumulative

    def reset(self) -> None:
        """Drop all tracking state. The next process() call initializes."""
        self._features = FeatureSet.empty()
        self._prev_gray = None
        self._cumulative = Transform.identity()
        self._frame_count = 0
        self._state = "uninitialized"
        self._last_info = {}

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable/disable compensation.

        Disabling zeroes the cumulative transform right away but keeps the
        feature set and previous frame, so re-enabling resumes tracking.
        """
        self._enabled = bool(enabled)
        if not self._enabled:
            self._cumulative = Transform.identity()

    def get_status(self) -> StabilizerStatus:
        return StabilizerStatus(
            initialized=self._state != "uninitialized",
            enabled=self._enabled,
            feature_count=len(self._features),
            cumulative_dx=float(self._cumulative.dx),
            cumulative_dy=float(self._cumulative.dy),
            state=self._state,
            frame_count=self._frame_count,
        )

    # ---------- Read-only views ----------
    @property
    def state(self) -> StabilizerState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def features(self) -> FeatureSet:
        return self._features

    @property
    def cumulative(self) -> Transform:
        return self._cumulative

    @property
    def last_info(self) -> dict[str, Any]:
        """Diagnostics from the most recent process() call."""
        return dict(self._last_info)

    # ---------- Internals ----------
    def _initialize_from(self, gray: GrayFrame, mask: Optional[MaskLike]) -> None:
        h, w = gray.shape
        small_mask = None
        if mask is not None:
            small_mask = downsample_mask(mask, w, h, threshold=self.config.mask_threshold)

        features = harris_detect(
            gray,
            mask=small_mask,
            params=self.config.harris_params(),
            downsample_factor=self.config.downsample_factor,
        )

        # Baseline frame and its features are replaced together
        self._features = features
        self._prev_gray = gray
        self._cumulative = Transform.identity()
        self._state = "tracking"
        self._last_init_time = self.clock()

        logger.info("Initialized with %d features", len(features))

    def _reinitialize(
            self,
            gray: GrayFrame,
            mask: Optional[MaskLike],
            reason: ReinitReason,
            info: dict[str, Any],
    ) -> Transform:
        self._state = "reinitializing"
        self._initialize_from(gray, mask)

        info.update({"skipped": False, "reinit_reason": reason})
        self._last_info = info
        return Transform.identity()

    def _notify_reset(self, reason: ReinitReason) -> None:
        if self.on_reset is None:
            return
        if self._last_init_time is not None and (self.clock() - self._last_init_time) <= self.config.reset_notify_interval:
            return
        self.on_reset(reason)
