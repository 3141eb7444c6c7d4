"""
Overlay stabilization demo.

Draws a fixed "wall art" rectangle over a camera feed (or a video file) and
keeps it pinned to the background while the camera jiggles.

Controls:
  s = toggle stabilization on/off
  r = reset tracking
  q / ESC = quit

Tunables can be overridden through the environment, e.g.
  JIGGLECV_SKIP_FRAMES=1 python scripts/demo_webcam_overlay.py --source 0
"""
from __future__ import annotations

import argparse
import logging

import cv2
import numpy as np

from jigglecv import ArrayFrame, JiggleStabilizer, StabilizerConfig
from jigglecv.stabilize import Corner, Region, apply_to_region


def region_to_pixels(region: Region, width: int, height: int) -> np.ndarray:
    corners = [region.top_left, region.top_right, region.bottom_right, region.bottom_left]
    return np.array(
        [[c.x / 100.0 * width, c.y / 100.0 * height] for c in corners],
        dtype=np.int32,
    )


def draw_overlay(frame: np.ndarray, region: Region, status_text: str) -> np.ndarray:
    h, w = frame.shape[:2]
    out = frame.copy()
    poly = region_to_pixels(region, w, h)
    cv2.fillPoly(out, [poly], (40, 120, 220))
    out = cv2.addWeighted(out, 0.5, frame, 0.5, 0.0)
    cv2.polylines(out, [poly], True, (255, 255, 255), 2)
    cv2.putText(out, status_text, (10, 24), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)
    return out


def main() -> None:
    parser = argparse.ArgumentParser(description="Stabilize an overlay against camera jiggle.")
    parser.add_argument("--source", default="0", help="camera index or video path")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    log = logging.getLogger("demo")

    source = int(args.source) if args.source.isdigit() else args.source
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video source: {args.source}")

    stab = JiggleStabilizer(
        config=StabilizerConfig.from_env(),
        on_reset=lambda reason: log.info("camera moved (%s): overlay re-anchored", reason),
    )

    region0 = Region(
        top_left=Corner(60.0, 15.0),
        top_right=Corner(85.0, 15.0),
        bottom_left=Corner(60.0, 45.0),
        bottom_right=Corner(85.0, 45.0),
    )

    try:
        while True:
            ok, frame_bgr = cap.read()
            if not ok or frame_bgr is None:
                break

            h, w = frame_bgr.shape[:2]
            T = stab.process(ArrayFrame(frame_bgr, "bgr"))
            region = apply_to_region(region0, T, canvas_size=(w, h))

            s = stab.get_status()
            text = (
                f"{'ON' if s.enabled else 'OFF'}  features={s.feature_count}  "
                f"offset=({s.cumulative_dx:+.1f}, {s.cumulative_dy:+.1f})"
            )
            cv2.imshow("jigglecv", draw_overlay(frame_bgr, region, text))

            key = cv2.waitKey(1) & 0xFF
            if key == 27 or key == ord("q"):
                break
            if key == ord("s"):
                stab.set_enabled(not stab.enabled)
            elif key == ord("r"):
                stab.reset()
    finally:
        cap.release()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
