"""Client-side perceptual pipeline: frame signals, debounce, dedup"""

from .debounce import AnomalyTimer, TemporalDebouncer
from .frames import FrameSource, ReplayFrameSource
from .manager import DetectionManager, RefractoryFilter
from .objects import ALLOWED_OBJECTS, DetectedObject, ObjectClassifier, classify_object, object_events
from .signals import FaceSignalDetector, FaceSignals, SkinToneFaceDetector

__all__ = [
    "AnomalyTimer",
    "TemporalDebouncer",
    "FrameSource",
    "ReplayFrameSource",
    "DetectionManager",
    "RefractoryFilter",
    "ALLOWED_OBJECTS",
    "DetectedObject",
    "ObjectClassifier",
    "classify_object",
    "object_events",
    "FaceSignalDetector",
    "FaceSignals",
    "SkinToneFaceDetector",
]
