"""
Face Signal Detector - coarse per-frame face presence and gaze signals

Stateless per call: one frame in, one FaceSignals out. Temporal logic
lives in the debouncer.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceSignals:
    face_count: int
    # Only meaningful with exactly one face; None otherwise
    gaze_off_center: Optional[bool] = None


class FaceSignalDetector:
    def detect(self, frame: np.ndarray) -> FaceSignals:
        raise NotImplementedError


def skin_mask(pixels: np.ndarray) -> np.ndarray:
    """
    Boolean mask of skin-toned pixels.

    Args:
        pixels: (..., 3) RGB array

    Returns:
        Boolean array shaped like pixels[..., 0]
    """
    rgb = pixels[..., :3].astype(np.int16)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return (
        (r > 95) & (g > 40) & (b > 20)
        & (r > g) & (r > b)
        & (np.abs(r - g) > 15)
    )


class SkinToneFaceDetector(FaceSignalDetector):
    """
    Heuristic face detector based on brightness and skin-tone coverage.

    It can report at most one face; plug in a real detector for
    multi-person coverage.
    """

    def __init__(
        self,
        min_brightness: float = 30,
        face_brightness: float = 50,
        min_skin_ratio: float = 0.05,
        center_region: int = 100,
        center_skin_ratio: float = 0.1,
        channel_order: str = "RGB",
    ):
        self.min_brightness = min_brightness
        self.face_brightness = face_brightness
        self.min_skin_ratio = min_skin_ratio
        self.center_region = center_region
        self.center_skin_ratio = center_skin_ratio
        self.channel_order = channel_order.upper()

    def _to_rgb(self, frame: np.ndarray) -> np.ndarray:
        if self.channel_order == "BGR":
            return frame[..., 2::-1]
        return frame[..., :3]

    def detect(self, frame: np.ndarray) -> FaceSignals:
        if frame is None or frame.size == 0:
            return FaceSignals(face_count=0)

        rgb = self._to_rgb(frame)
        brightness = float(rgb.astype(np.float32).mean())
        if brightness < self.min_brightness:
            return FaceSignals(face_count=0)

        skin_ratio = float(skin_mask(rgb).mean())
        if skin_ratio > self.min_skin_ratio and brightness > self.face_brightness:
            return FaceSignals(face_count=1, gaze_off_center=self.is_looking_away(rgb))

        return FaceSignals(face_count=0)

    def is_looking_away(self, rgb: np.ndarray) -> bool:
        """Looking away when the centre patch holds too little skin."""
        height, width = rgb.shape[:2]
        half = self.center_region // 2
        cy, cx = height // 2, width // 2
        patch = rgb[max(0, cy - half):cy + half, max(0, cx - half):cx + half]
        if patch.size == 0:
            return True
        return float(skin_mask(patch).mean()) < self.center_skin_ratio
