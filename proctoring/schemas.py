from pydantic import BaseModel, ConfigDict, Field # type: ignore
from typing import List, Literal, Optional, Union
from datetime import datetime

from .models import (
    DetectionEvent,
    EventMetadata,
    EventType,
    InterviewStatus,
    Recommendation,
    RoomStatus,
)

class CreateRoomRequest(BaseModel):
    candidate_name: str = Field(..., min_length=1)
    interviewer_name: str = Field(..., min_length=1)

class RoomResponse(BaseModel):
    room_id: str
    candidate_name: str
    interviewer_name: str
    status: RoomStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    interview_id: Optional[str] = None
    candidate_link: Optional[str] = None
    interviewer_link: Optional[str] = None

class EndInterviewResponse(RoomResponse):
    success: bool = True
    integrity_score: Optional[int] = None

class StartInterviewRequest(BaseModel):
    candidate_name: str = Field(..., min_length=1)

class InterviewResponse(BaseModel):
    interview_id: str
    candidate_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int
    status: InterviewStatus
    integrity_score: Optional[int] = None

class LogEventRequest(BaseModel):
    event_type: EventType
    timestamp: Optional[datetime] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    duration: Optional[int] = Field(default=None, ge=0)
    metadata: Optional[EventMetadata] = None

class LogEventResponse(BaseModel):
    success: bool
    event: DetectionEvent

class AttachVideoRequest(BaseModel):
    video_path: str = Field(..., min_length=1)

class SuspiciousEventCounts(BaseModel):
    phone_detected: int
    books_detected: int
    devices_detected: int

class ReportResponse(BaseModel):
    interview_id: str
    candidate_name: str
    interview_duration_minutes: int
    start_time: datetime
    end_time: datetime
    focus_lost_count: int
    total_focus_lost_duration: int
    face_absent_count: int
    multiple_faces_count: int
    suspicious_events: SuspiciousEventCounts
    integrity_score: int
    recommendation: Recommendation
    summary: str
    events: List[DetectionEvent]

# Relay socket payloads (camelCase on the wire)

class JoinRoomMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(..., alias="roomId", min_length=1)
    role: Literal["candidate", "interviewer"]

class DetectionMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(..., alias="roomId", min_length=1)
    event_type: str = Field(..., alias="eventType")
    timestamp: Optional[Union[datetime, float, str]] = None
    confidence: Optional[float] = None

class EndInterviewMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(..., alias="roomId", min_length=1)
