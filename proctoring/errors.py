"""
Domain errors raised by the room/interview lifecycle and detection pipeline.

Each lifecycle error carries the HTTP status the API layer answers with.
"""

from typing import Optional


class ProctoringError(Exception):
    status_code: int = 400
    detail: str = "Proctoring error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.detail)
        self.detail = detail or self.detail


class RoomNotFoundError(ProctoringError):
    status_code = 404
    detail = "Room not found"


class InterviewNotFoundError(ProctoringError):
    status_code = 404
    detail = "Interview not found"


class SessionEndedError(ProctoringError):
    """Join attempted on a room whose session already ended."""

    status_code = 400
    detail = "Session already ended"


class InterviewCompletedError(ProctoringError):
    """Mutation attempted on a finalized interview."""

    status_code = 409
    detail = "Interview already completed"


class ModelUnavailableError(ProctoringError):
    """Neither the configured nor the fallback model could be acquired."""

    status_code = 503
    detail = "Detection model unavailable"
