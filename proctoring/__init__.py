"""
Proctoring relay service

Real-time integrity monitoring for remote interviews:
- debounced perceptual detection (absence, gaze, extra faces, objects)
- room / interview lifecycle with integrity scoring
- role-scoped alert relay between candidate and interviewer
"""

__version__ = "1.0.0"

from .detection import (
    DetectionManager,
    FaceSignalDetector,
    FrameSource,
    ObjectClassifier,
    ReplayFrameSource,
    SkinToneFaceDetector,
)
from .detection.loader import classifier_loader, load_object_classifier
from .monitor import CandidateMonitor
from .services import Services, build_services

__all__ = [
    "CandidateMonitor",
    "DetectionManager",
    "FaceSignalDetector",
    "FrameSource",
    "ObjectClassifier",
    "ReplayFrameSource",
    "Services",
    "SkinToneFaceDetector",
    "build_services",
    "classifier_loader",
    "load_object_classifier",
]
