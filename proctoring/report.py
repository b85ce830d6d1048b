from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import DetectionEvent, EventType, InterviewSession, Recommendation, utcnow
from .schemas import ReportResponse, SuspiciousEventCounts


EVENT_PENALTIES: Dict[EventType, int] = {
    EventType.FOCUS_LOST: 5,
    EventType.FACE_ABSENT: 10,
    EventType.MULTIPLE_FACES: 15,
    EventType.BOOK_DETECTED: 15,
    EventType.PHONE_DETECTED: 20,
    EventType.DEVICE_DETECTED: 20,
}

PASS_THRESHOLD = 80
REVIEW_THRESHOLD = 60


def compute_integrity_score(events: Iterable[DetectionEvent]) -> int:
    """Start at 100 and subtract each event's penalty in order, flooring at 0 after every step."""
    score = 100
    for event in events:
        score = max(0, score - EVENT_PENALTIES.get(event.event_type, 0))
    return score


def recommendation(score: int) -> Recommendation:
    if score >= PASS_THRESHOLD:
        return Recommendation.PASS
    if score >= REVIEW_THRESHOLD:
        return Recommendation.REVIEW
    return Recommendation.FAIL


def summarize_events(events: List[DetectionEvent]) -> Dict[EventType, int]:
    counts: Dict[EventType, int] = {event_type: 0 for event_type in EventType}
    for e in events:
        counts[e.event_type] += 1
    return counts


def generate_summary(events: List[DetectionEvent], score: int) -> str:
    total = len(events)
    if total == 0:
        return "No suspicious activities detected. Excellent interview conduct."
    if score >= PASS_THRESHOLD:
        return f"Minor issues detected ({total} events). Overall good interview conduct."
    if score >= REVIEW_THRESHOLD:
        return f"Moderate concerns identified ({total} events). Requires review."
    return f"Significant violations detected ({total} events). Interview integrity compromised."


def interview_duration_seconds(interview: InterviewSession, now: Optional[datetime] = None) -> int:
    end = interview.end_time or now or utcnow()
    return max(0, int((end - interview.start_time).total_seconds()))


def build_report(interview: InterviewSession, now: Optional[datetime] = None) -> ReportResponse:
    events = interview.events
    counts = summarize_events(events)

    # A finalized interview keeps the score computed when it ended
    if interview.integrity_score is not None:
        integrity_score = interview.integrity_score
    else:
        integrity_score = compute_integrity_score(events)

    total_focus_lost = sum(
        e.duration or 0 for e in events if e.event_type == EventType.FOCUS_LOST
    )

    return ReportResponse(
        interview_id=interview.id,
        candidate_name=interview.candidate_name,
        interview_duration_minutes=round(interview_duration_seconds(interview, now) / 60),
        start_time=interview.start_time,
        end_time=interview.end_time or now or utcnow(),
        focus_lost_count=counts[EventType.FOCUS_LOST],
        total_focus_lost_duration=total_focus_lost,
        face_absent_count=counts[EventType.FACE_ABSENT],
        multiple_faces_count=counts[EventType.MULTIPLE_FACES],
        suspicious_events=SuspiciousEventCounts(
            phone_detected=counts[EventType.PHONE_DETECTED],
            books_detected=counts[EventType.BOOK_DETECTED],
            devices_detected=counts[EventType.DEVICE_DETECTED],
        ),
        integrity_score=integrity_score,
        recommendation=recommendation(integrity_score),
        summary=generate_summary(events, integrity_score),
        events=events,
    )
