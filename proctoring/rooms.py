"""
Room and interview lifecycle.

A room moves WAITING -> ACTIVE -> COMPLETED and owns at most one interview.
Every transition runs under a per-room lock so concurrent joins or ends on
the same room serialize, while different rooms proceed independently.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Dict

from .errors import (
    InterviewCompletedError,
    InterviewNotFoundError,
    RoomNotFoundError,
    SessionEndedError,
)
from .logging_utils import log_proctor_event, log_session_end, log_session_start
from .models import (
    DetectionEvent,
    InterviewSession,
    InterviewStatus,
    RoomSession,
    RoomStatus,
    utcnow,
)
from .report import compute_integrity_score
from .storage import BaseSessionStore, DuplicateRoomError

logger = logging.getLogger(__name__)

ROOM_ID_LENGTH = 4
MAX_ROOM_ID_ATTEMPTS = 16


class KeyedLocks:
    """
    One asyncio.Lock per key, held only while someone uses it.

    The entry for a key is dropped once the last holder or waiter leaves,
    so looking up ids that never exist leaves nothing behind.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def __call__(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def generate_room_id() -> str:
    return uuid.uuid4().hex[:ROOM_ID_LENGTH]


class RoomRegistry:
    def __init__(
        self,
        store: BaseSessionStore,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = generate_room_id,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory
        self._room_locks = KeyedLocks()
        self._interview_locks = KeyedLocks()

    async def create_room(self, candidate_name: str, interviewer_name: str) -> RoomSession:
        for _ in range(MAX_ROOM_ID_ATTEMPTS):
            room = RoomSession(
                room_id=self.id_factory(),
                candidate_name=candidate_name,
                interviewer_name=interviewer_name,
                status=RoomStatus.WAITING,
                created_at=self.clock(),
            )
            try:
                await self.store.insert_room(room)
            except DuplicateRoomError:
                logger.debug(f"Room id collision on {room.room_id}, retrying")
                continue
            log_proctor_event(room.room_id, "room_created", {
                "candidate": candidate_name,
                "interviewer": interviewer_name,
            })
            return room
        raise RuntimeError("Could not allocate a unique room id")

    async def get_room(self, room_id: str) -> RoomSession:
        room = await self.store.get_room(room_id)
        if room is None:
            raise RoomNotFoundError()
        return room

    async def join_room(self, room_id: str) -> RoomSession:
        async with self._room_locks(room_id):
            room = await self.get_room(room_id)
            if room.status == RoomStatus.COMPLETED:
                raise SessionEndedError()
            if room.status == RoomStatus.ACTIVE:
                return room

            now = self.clock()
            interview = InterviewSession(
                id=str(uuid.uuid4()),
                candidate_name=room.candidate_name,
                start_time=now,
                status=InterviewStatus.ACTIVE,
            )
            await self.store.insert_interview(interview)

            room.status = RoomStatus.ACTIVE
            room.start_time = now
            room.interview_id = interview.id
            await self.store.save_room(room)

            log_session_start(room.room_id, interview.id, room.candidate_name)
            return room

    async def end_room(self, room_id: str) -> RoomSession:
        async with self._room_locks(room_id):
            room = await self.get_room(room_id)
            if room.status == RoomStatus.COMPLETED:
                return room

            score = None
            events = 0
            if room.interview_id:
                async with self._interview_locks(room.interview_id):
                    interview = await self.store.get_interview(room.interview_id)
                    if interview is not None:
                        self._finalize(interview)
                        await self.store.save_interview(interview)
                        score = interview.integrity_score
                        events = len(interview.events)

            room.status = RoomStatus.COMPLETED
            room.end_time = self.clock()
            await self.store.save_room(room)

            log_session_end(room.room_id, room.interview_id, score, events)
            return room

    async def start_interview(self, candidate_name: str) -> InterviewSession:
        """Open an interview that is not attached to any room."""
        interview = InterviewSession(
            id=str(uuid.uuid4()),
            candidate_name=candidate_name,
            start_time=self.clock(),
        )
        await self.store.insert_interview(interview)
        log_proctor_event(interview.id, "interview_started", {"candidate": candidate_name})
        return interview

    async def get_interview(self, interview_id: str) -> InterviewSession:
        interview = await self.store.get_interview(interview_id)
        if interview is None:
            raise InterviewNotFoundError()
        return interview

    async def log_event(self, interview_id: str, event: DetectionEvent) -> DetectionEvent:
        async with self._interview_locks(interview_id):
            interview = await self.get_interview(interview_id)
            if interview.status == InterviewStatus.COMPLETED:
                raise InterviewCompletedError()
            await self.store.append_event(interview_id, event)
            return event

    async def attach_video(self, interview_id: str, video_path: str) -> InterviewSession:
        """Record an uploaded recording; an upload closes an interview that is still open."""
        async with self._interview_locks(interview_id):
            interview = await self.get_interview(interview_id)
            interview.video_path = video_path
            if interview.status == InterviewStatus.ACTIVE:
                self._finalize(interview)
            await self.store.save_interview(interview)
            return interview

    def _finalize(self, interview: InterviewSession) -> None:
        # Score is computed exactly once, on the ACTIVE -> COMPLETED edge
        if interview.status == InterviewStatus.COMPLETED:
            return
        interview.end_time = self.clock()
        interview.status = InterviewStatus.COMPLETED
        interview.integrity_score = compute_integrity_score(interview.events)
