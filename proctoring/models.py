from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    FOCUS_LOST = "FOCUS_LOST"
    FACE_ABSENT = "FACE_ABSENT"
    MULTIPLE_FACES = "MULTIPLE_FACES"
    PHONE_DETECTED = "PHONE_DETECTED"
    BOOK_DETECTED = "BOOK_DETECTED"
    DEVICE_DETECTED = "DEVICE_DETECTED"


class InterviewStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class RoomStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"


class Recommendation(str, Enum):
    PASS = "PASS"
    REVIEW = "REVIEW"
    FAIL = "FAIL"


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class EventMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    object_type: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None


class DetectionEvent(BaseModel):
    """One integrity-relevant observation. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    timestamp: datetime = Field(default_factory=utcnow)
    confidence: float = Field(ge=0.0, le=1.0)
    duration: Optional[int] = Field(default=None, ge=0)
    metadata: Optional[EventMetadata] = None

    @property
    def dedup_key(self) -> str:
        object_type = self.metadata.object_type if self.metadata else None
        return f"{self.event_type.value}:{object_type or 'default'}"


class InterviewSession(BaseModel):
    id: str
    candidate_name: str
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    status: InterviewStatus = InterviewStatus.ACTIVE
    events: List[DetectionEvent] = Field(default_factory=list)
    integrity_score: Optional[int] = None
    video_path: Optional[str] = None


class RoomSession(BaseModel):
    room_id: str
    candidate_name: str
    interviewer_name: str
    status: RoomStatus = RoomStatus.WAITING
    created_at: datetime = Field(default_factory=utcnow)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    interview_id: Optional[str] = None


class Alert(BaseModel):
    type: str
    message: str
    # passed through as the candidate sent it
    timestamp: Optional[Union[datetime, float, str]] = None
    confidence: Optional[float] = None
