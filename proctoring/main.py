import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import load_settings
from .errors import ProctoringError
from .logging_utils import configure_logging
from .models import DetectionEvent, InterviewSession, RoomSession, utcnow
from .relay import EventRelay
from .report import build_report, interview_duration_seconds
from .schemas import (
    AttachVideoRequest,
    CreateRoomRequest,
    DetectionMessage,
    EndInterviewMessage,
    EndInterviewResponse,
    InterviewResponse,
    JoinRoomMessage,
    LogEventRequest,
    LogEventResponse,
    ReportResponse,
    RoomResponse,
    StartInterviewRequest,
)
from .services import Services, build_services

logger = logging.getLogger(__name__)

Send = Callable[[Dict[str, Any]], Awaitable[None]]


def room_response(services: Services, room: RoomSession) -> RoomResponse:
    base = services.settings.frontend_url.rstrip("/")
    return RoomResponse(
        room_id=room.room_id,
        candidate_name=room.candidate_name,
        interviewer_name=room.interviewer_name,
        status=room.status,
        start_time=room.start_time,
        end_time=room.end_time,
        interview_id=room.interview_id,
        candidate_link=f"{base}/candidate/{room.room_id}",
        interviewer_link=f"{base}/interviewer/{room.room_id}",
    )


def interview_response(interview: InterviewSession) -> InterviewResponse:
    return InterviewResponse(
        interview_id=interview.id,
        candidate_name=interview.candidate_name,
        start_time=interview.start_time,
        end_time=interview.end_time,
        duration=interview_duration_seconds(interview),
        status=interview.status,
        integrity_score=interview.integrity_score,
    )


async def handle_socket_message(relay: EventRelay, connection_id: str, send: Send, payload: Dict[str, Any]) -> None:
    """Dispatch one relay message from a socket connection."""
    event = payload.get("event")
    data = payload.get("data") or {}

    if event == "join-room":
        message = JoinRoomMessage.model_validate(data)
        await relay.join_room(message.room_id, message.role, connection_id, send)
        await send({"event": "room-joined", "data": {"roomId": message.room_id, "role": message.role}})
    elif event == "detection-event":
        message = DetectionMessage.model_validate(data)
        await relay.publish_detection(
            message.room_id,
            message.event_type,
            message.timestamp,
            message.confidence,
            sender=connection_id,
        )
    elif event == "end-interview":
        message = EndInterviewMessage.model_validate(data)
        await relay.publish_end(message.room_id, sender=connection_id)
    else:
        logger.warning(f"Ignoring unknown relay event {event!r} from {connection_id}")


def create_app(services: Services) -> FastAPI:
    app = FastAPI(title="Proctoring Relay", version="1.0.0")
    app.state.services = services
    registry = services.registry
    relay = services.relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=services.settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProctoringError)
    async def proctoring_error_handler(request: Request, exc: ProctoringError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.post("/api/rooms", response_model=RoomResponse, status_code=201)
    async def create_room(payload: CreateRoomRequest):
        room = await registry.create_room(payload.candidate_name, payload.interviewer_name)
        return room_response(services, room)

    @app.get("/api/rooms/{room_id}", response_model=RoomResponse)
    async def get_room_info(room_id: str):
        room = await registry.get_room(room_id)
        return room_response(services, room)

    @app.post("/api/rooms/{room_id}/join", response_model=RoomResponse)
    async def join_room(room_id: str):
        room = await registry.join_room(room_id)
        return room_response(services, room)

    @app.post("/api/rooms/{room_id}/end", response_model=EndInterviewResponse)
    async def end_interview(room_id: str):
        room = await registry.end_room(room_id)
        score = None
        if room.interview_id:
            interview = await registry.get_interview(room.interview_id)
            score = interview.integrity_score
        return EndInterviewResponse(
            **room_response(services, room).model_dump(),
            success=True,
            integrity_score=score,
        )

    @app.post("/api/interviews", response_model=InterviewResponse, status_code=201)
    async def start_interview(payload: StartInterviewRequest):
        interview = await registry.start_interview(payload.candidate_name)
        return interview_response(interview)

    @app.get("/api/interviews", response_model=List[InterviewResponse])
    async def list_interviews():
        interviews = await services.store.list_interviews()
        return [interview_response(i) for i in interviews]

    @app.get("/api/interviews/{interview_id}", response_model=InterviewResponse)
    async def get_interview(interview_id: str):
        interview = await registry.get_interview(interview_id)
        return interview_response(interview)

    @app.post("/api/interviews/{interview_id}/events", response_model=LogEventResponse)
    async def log_event(interview_id: str, payload: LogEventRequest):
        event = DetectionEvent(
            event_type=payload.event_type,
            timestamp=payload.timestamp or utcnow(),
            confidence=payload.confidence,
            duration=payload.duration,
            metadata=payload.metadata,
        )
        stored = await registry.log_event(interview_id, event)
        return LogEventResponse(success=True, event=stored)

    @app.post("/api/interviews/{interview_id}/video", response_model=InterviewResponse)
    async def attach_video(interview_id: str, payload: AttachVideoRequest):
        interview = await registry.attach_video(interview_id, payload.video_path)
        return interview_response(interview)

    @app.get("/api/interviews/{interview_id}/report", response_model=ReportResponse)
    async def get_report(interview_id: str):
        interview = await registry.get_interview(interview_id)
        return build_report(interview)

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "timestamp": utcnow().isoformat(),
            "service": "Proctoring Relay",
            "store": services.store.backend,
        }

    @app.websocket("/ws")
    async def relay_socket(websocket: WebSocket):
        await websocket.accept()
        connection_id = uuid.uuid4().hex[:20]

        async def send(message: Dict[str, Any]) -> None:
            await websocket.send_json(message)

        logger.info(f"Client connected: {connection_id}")
        await send({"event": "connected", "data": {"socketId": connection_id}})
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    payload = json.loads(raw)
                    if not isinstance(payload, dict):
                        raise ValueError("message must be a JSON object")
                    await handle_socket_message(relay, connection_id, send, payload)
                except (ValueError, ValidationError) as e:
                    logger.warning(f"Malformed relay message from {connection_id}: {e}")
        except WebSocketDisconnect:
            logger.info(f"Client disconnected: {connection_id}")
        finally:
            relay.leave(connection_id)

    return app


def build_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)
    return create_app(build_services(settings))


app = build_app()
