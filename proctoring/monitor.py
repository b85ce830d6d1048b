"""
Candidate Monitor - wires a detection manager to persistence and the relay

Accepted events go to the interview's event log and, as alerts, to the
room's interviewers. Neither sink is retried; a failure in one does not
stop the other or the detection cadence.
"""

import logging
from typing import Callable, List, Optional

from .detection import loader
from .detection.frames import FrameSource
from .detection.manager import DetectionManager
from .detection.objects import ObjectClassifier
from .detection.signals import FaceSignalDetector
from .errors import ProctoringError
from .models import DetectionEvent
from .services import Services

logger = logging.getLogger(__name__)


class CandidateMonitor:
    def __init__(
        self,
        services: Services,
        room_id: str,
        interview_id: str,
        face_detector: Optional[FaceSignalDetector] = None,
        classifier_loader: Optional[Callable[[], ObjectClassifier]] = None,
    ):
        self.services = services
        self.room_id = room_id
        self.interview_id = interview_id
        self.manager = DetectionManager.from_settings(
            services.settings,
            self.handle_events,
            face_detector=face_detector,
            classifier_loader=classifier_loader or loader.classifier_loader(services.settings),
            clock=services.registry.clock,
        )

    async def start(self, frame_source: FrameSource) -> None:
        await self.manager.initialize()
        if self.manager.object_detection_disabled:
            logger.error(f"Room {self.room_id}: object detection unavailable, monitoring faces only")
        await self.manager.start(frame_source)

    async def stop(self) -> None:
        await self.manager.stop()

    async def handle_events(self, events: List[DetectionEvent]) -> None:
        for event in events:
            try:
                await self.services.registry.log_event(self.interview_id, event)
            except ProctoringError as e:
                logger.warning(f"Event {event.event_type.value} not stored: {e.detail}")

            await self.services.relay.publish_detection(
                self.room_id,
                event.event_type.value,
                event.timestamp.isoformat(),
                event.confidence,
            )
