"""
Frame sources - where the detection loop gets its pixels from
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class FrameSource:
    """Capability to read the current camera frame (HxWx3 uint8) or None when unavailable."""

    async def get_frame(self) -> Optional[np.ndarray]:
        raise NotImplementedError


class ReplayFrameSource(FrameSource):
    """
    Replays a recorded sequence of frames, one per call.

    Once exhausted it either loops back to the start or keeps
    returning the last frame.
    """

    def __init__(self, frames: Sequence[np.ndarray], loop: bool = False):
        self.frames: List[np.ndarray] = list(frames)
        self.loop = loop
        self.position = 0

    async def get_frame(self) -> Optional[np.ndarray]:
        if not self.frames:
            return None

        if self.position >= len(self.frames):
            if self.loop:
                self.position = 0
            else:
                return self.frames[-1]

        frame = self.frames[self.position]
        self.position += 1
        return frame


def solid_frame(rgb: Sequence[int], width: int = 320, height: int = 240) -> np.ndarray:
    """Build a single-colour RGB frame. Handy for replay fixtures and calibration."""
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :] = np.asarray(rgb, dtype=np.uint8)
    return frame
