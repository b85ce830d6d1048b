"""
Temporal Debouncer - turns sustained raw signals into discrete events

A condition must persist for longer than its threshold before an event
fires. After firing the timer re-arms, so an anomaly that keeps going
fires again after another full threshold. Any negative observation
resets the timer completely.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..models import DetectionEvent, EventMetadata, EventType
from .signals import FaceSignals

logger = logging.getLogger(__name__)

FACE_ABSENT_CONFIDENCE = 0.9
FOCUS_LOST_CONFIDENCE = 0.7
MULTIPLE_FACES_CONFIDENCE = 0.8


@dataclass
class AnomalyTimer:
    """State for one debounced signal type."""

    event_type: EventType
    threshold: timedelta
    confidence: float
    started_at: Optional[datetime] = None

    def observe(self, present: bool, now: datetime) -> Optional[DetectionEvent]:
        if not present:
            self.started_at = None
            return None

        if self.started_at is None:
            self.started_at = now
            return None

        elapsed = now - self.started_at
        if elapsed <= self.threshold:
            return None

        self.started_at = None
        return DetectionEvent(
            event_type=self.event_type,
            timestamp=now,
            confidence=self.confidence,
            duration=int(elapsed.total_seconds()),
        )

    def reset(self) -> None:
        self.started_at = None


class TemporalDebouncer:
    def __init__(self, face_absent_threshold: float = 10.0, focus_lost_threshold: float = 5.0):
        self.timers: Dict[EventType, AnomalyTimer] = {
            EventType.FACE_ABSENT: AnomalyTimer(
                EventType.FACE_ABSENT,
                timedelta(seconds=face_absent_threshold),
                FACE_ABSENT_CONFIDENCE,
            ),
            EventType.FOCUS_LOST: AnomalyTimer(
                EventType.FOCUS_LOST,
                timedelta(seconds=focus_lost_threshold),
                FOCUS_LOST_CONFIDENCE,
            ),
        }

    def evaluate(self, signals: FaceSignals, now: datetime) -> List[DetectionEvent]:
        events: List[DetectionEvent] = []

        absent = self.timers[EventType.FACE_ABSENT].observe(signals.face_count == 0, now)
        if absent:
            events.append(absent)

        # No debounce: every crowded tick fires, dedup happens downstream
        if signals.face_count > 1:
            events.append(DetectionEvent(
                event_type=EventType.MULTIPLE_FACES,
                timestamp=now,
                confidence=MULTIPLE_FACES_CONFIDENCE,
                metadata=EventMetadata(object_type=f"{signals.face_count} faces detected"),
            ))

        # Gaze is only observable with a single face in frame
        if signals.gaze_off_center is not None:
            focus = self.timers[EventType.FOCUS_LOST].observe(signals.gaze_off_center, now)
            if focus:
                events.append(focus)

        return events

    def reset(self) -> None:
        for timer in self.timers.values():
            timer.reset()
