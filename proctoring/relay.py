"""
Event Relay - role-scoped real-time fan-out between candidate and interviewer

Topics:
- "<room_id>"              every connection in the room
- "<room_id>:candidate"    candidate connections
- "<room_id>:interviewer"  interviewer connections

Delivery is at-most-once: a failing subscriber is logged and skipped,
never retried.
"""

import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional

from .logging_utils import log_detection, log_proctor_event
from .models import Alert

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
Handler = Callable[[Message], Awaitable[None]]

ROLES = ("candidate", "interviewer")

USER_JOINED = "user-joined"
CANDIDATE_ALERT = "candidate-alert"
INTERVIEW_ENDED = "interview-ended"

EVENT_MESSAGES: Dict[str, str] = {
    "FOCUS_LOST": "Candidate looking away from screen",
    "FACE_ABSENT": "No face detected in frame",
    "MULTIPLE_FACES": "Multiple faces detected",
    "PHONE_DETECTED": "Mobile phone detected",
    "BOOK_DETECTED": "Books/notes detected",
    "DEVICE_DETECTED": "Electronic device detected",
}
DEFAULT_EVENT_MESSAGE = "Suspicious activity detected"


def event_message(event_type: str) -> str:
    return EVENT_MESSAGES.get(event_type, DEFAULT_EVENT_MESSAGE)


def role_topic(room_id: str, role: str) -> str:
    return f"{room_id}:{role}"


class Broadcaster:
    """In-process topic broadcaster. Transports plug in through handlers."""

    def __init__(self) -> None:
        # topic -> subscriber id -> handler, kept in subscription order
        self._topics: Dict[str, "OrderedDict[str, Handler]"] = {}

    def subscribe(self, topic: str, subscriber_id: str, handler: Handler) -> None:
        self._topics.setdefault(topic, OrderedDict())[subscriber_id] = handler

    def unsubscribe(self, topic: str, subscriber_id: str) -> None:
        subscribers = self._topics.get(topic)
        if not subscribers:
            return
        subscribers.pop(subscriber_id, None)
        if not subscribers:
            del self._topics[topic]

    def unsubscribe_all(self, subscriber_id: str) -> None:
        for topic in list(self._topics):
            self.unsubscribe(topic, subscriber_id)

    def subscribers(self, topic: str) -> list:
        return list(self._topics.get(topic, {}))

    async def publish(self, topic: str, message: Message, exclude: Optional[str] = None) -> int:
        """Deliver to every subscriber of topic except exclude. Returns deliveries made."""
        delivered = 0
        for subscriber_id, handler in list(self._topics.get(topic, {}).items()):
            if subscriber_id == exclude:
                continue
            try:
                await handler(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropped message on {topic} for {subscriber_id}: {e}")
        return delivered


class EventRelay:
    def __init__(self, broadcaster: Broadcaster):
        self.broadcaster = broadcaster

    async def join_room(self, room_id: str, role: str, connection_id: str, handler: Handler) -> None:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")

        self.broadcaster.subscribe(role_topic(room_id, role), connection_id, handler)
        self.broadcaster.subscribe(room_id, connection_id, handler)
        log_proctor_event(room_id, "relay_join", {"role": role, "connection": connection_id})

        await self.broadcaster.publish(
            room_id,
            {"event": USER_JOINED, "data": {"role": role, "socketId": connection_id}},
            exclude=connection_id,
        )

    async def publish_detection(
        self,
        room_id: str,
        event_type: str,
        timestamp: Any = None,
        confidence: Optional[float] = None,
        sender: Optional[str] = None,
    ) -> int:
        log_detection(room_id, event_type, confidence)
        alert = Alert(
            type=event_type,
            message=event_message(event_type),
            timestamp=timestamp,
            confidence=confidence,
        )
        return await self.broadcaster.publish(
            role_topic(room_id, "interviewer"),
            {"event": CANDIDATE_ALERT, "data": alert.model_dump(mode="json")},
            exclude=sender,
        )

    async def publish_end(self, room_id: str, sender: Optional[str] = None) -> int:
        log_proctor_event(room_id, "relay_end")
        return await self.broadcaster.publish(
            role_topic(room_id, "candidate"),
            {"event": INTERVIEW_ENDED, "data": {}},
            exclude=sender,
        )

    def leave(self, connection_id: str) -> None:
        self.broadcaster.unsubscribe_all(connection_id)
