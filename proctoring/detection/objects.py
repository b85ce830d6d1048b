"""
Prohibited Object Classifier - recognizes phones, books and devices

One event per qualifying object per frame; no debounce here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Set

import numpy as np

from ..models import BoundingBox, DetectionEvent, EventMetadata, EventType

logger = logging.getLogger(__name__)

ALLOWED_OBJECTS: Set[str] = {
    "cell phone",
    "book",
    "laptop",
    "tablet",
    "mouse",
    "keyboard",
    "remote",
}


@dataclass(frozen=True)
class DetectedObject:
    class_name: str
    score: float
    bounding_box: Optional[BoundingBox] = None


class ObjectClassifier:
    source: str = "unknown"

    def detect(self, frame: np.ndarray) -> List[DetectedObject]:
        raise NotImplementedError


def classify_object(class_name: str) -> EventType:
    name = class_name.lower()
    if "phone" in name:
        return EventType.PHONE_DETECTED
    if "book" in name:
        return EventType.BOOK_DETECTED
    return EventType.DEVICE_DETECTED


def object_events(objects: Iterable[DetectedObject], now: datetime) -> List[DetectionEvent]:
    events = []
    for obj in objects:
        if obj.class_name.lower() not in ALLOWED_OBJECTS:
            continue
        events.append(DetectionEvent(
            event_type=classify_object(obj.class_name),
            timestamp=now,
            confidence=min(1.0, max(0.0, obj.score)),
            metadata=EventMetadata(
                object_type=obj.class_name,
                bounding_box=obj.bounding_box,
            ),
        ))
    return events


class YoloObjectClassifier(ObjectClassifier):
    """Wraps an ultralytics YOLO model trained on COCO-style class names."""

    def __init__(self, model: Any, confidence: float = 0.5, source: str = "primary"):
        self.model = model
        self.confidence = confidence
        self.source = source

    def detect(self, frame: np.ndarray) -> List[DetectedObject]:
        if frame is None or frame.size == 0:
            return []

        results = self.model.predict(frame, conf=self.confidence, verbose=False)

        detected: List[DetectedObject] = []
        for result in results:
            if result.boxes is None:
                continue

            for box in result.boxes:
                cls_id = int(box.cls[0])
                name = self.model.names.get(cls_id, f"class_{cls_id}")
                x1, y1, x2, y2 = box.xyxy[0].tolist()
                detected.append(DetectedObject(
                    class_name=name,
                    score=float(box.conf[0]),
                    bounding_box=BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1),
                ))

        return detected
