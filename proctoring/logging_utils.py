"""
Proctoring Logger - Logs proctoring lifecycle and detection events
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("proctoring")


def configure_logging(level: str = "INFO"):
    """Configure root logging once for the service process"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Room or interview ID
        event_type: Type of event (room_created, session_start, detection, ...)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(room_id: str, interview_id: str, candidate_name: str):
    """Log interview start when a room goes active"""
    log_proctor_event(
        session_id=room_id,
        event_type="session_start",
        details={
            "interview_id": interview_id,
            "candidate": candidate_name
        }
    )


def log_session_end(room_id: str, interview_id: Optional[str], integrity_score: Optional[int], events: int):
    """Log session end event"""
    log_proctor_event(
        session_id=room_id,
        event_type="session_end",
        details={
            "interview_id": interview_id or "none",
            "integrity_score": integrity_score if integrity_score is not None else "n/a",
            "events": events
        }
    )


def log_detection(session_id: str, event_type: str, confidence: Optional[float]):
    """Log a relayed detection"""
    log_proctor_event(
        session_id=session_id,
        event_type="detection",
        details={
            "type": event_type,
            "confidence": round(confidence, 2) if isinstance(confidence, (int, float)) else "n/a"
        },
        level="debug"
    )
