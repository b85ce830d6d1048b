import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError # type: ignore

from .config import Settings
from .database import INTERVIEWS_COLLECTION, ROOMS_COLLECTION, ensure_indexes, get_database
from .models import DetectionEvent, InterviewSession, RoomSession

logger = logging.getLogger(__name__)


class DuplicateRoomError(Exception):
    pass


class BaseSessionStore:
    """Persistence collaborator for rooms and interviews.

    Events are appended, never rewritten; appends keep emission order.
    """

    backend: str = "memory"

    async def insert_room(self, room: RoomSession) -> None:
        raise NotImplementedError

    async def get_room(self, room_id: str) -> Optional[RoomSession]:
        raise NotImplementedError

    async def save_room(self, room: RoomSession) -> None:
        raise NotImplementedError

    async def insert_interview(self, interview: InterviewSession) -> None:
        raise NotImplementedError

    async def get_interview(self, interview_id: str) -> Optional[InterviewSession]:
        raise NotImplementedError

    async def save_interview(self, interview: InterviewSession) -> None:
        raise NotImplementedError

    async def append_event(self, interview_id: str, event: DetectionEvent) -> None:
        raise NotImplementedError

    async def list_interviews(self) -> List[InterviewSession]:
        raise NotImplementedError


class MemorySessionStore(BaseSessionStore):
    backend: str = "memory"

    def __init__(self) -> None:
        self.rooms: Dict[str, RoomSession] = {}
        self.interviews: Dict[str, InterviewSession] = {}

    async def insert_room(self, room: RoomSession) -> None:
        if room.room_id in self.rooms:
            raise DuplicateRoomError(room.room_id)
        self.rooms[room.room_id] = room.model_copy(deep=True)

    async def get_room(self, room_id: str) -> Optional[RoomSession]:
        room = self.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def save_room(self, room: RoomSession) -> None:
        self.rooms[room.room_id] = room.model_copy(deep=True)

    async def insert_interview(self, interview: InterviewSession) -> None:
        self.interviews[interview.id] = interview.model_copy(deep=True)

    async def get_interview(self, interview_id: str) -> Optional[InterviewSession]:
        interview = self.interviews.get(interview_id)
        return interview.model_copy(deep=True) if interview else None

    async def save_interview(self, interview: InterviewSession) -> None:
        self.interviews[interview.id] = interview.model_copy(deep=True)

    async def append_event(self, interview_id: str, event: DetectionEvent) -> None:
        self.interviews[interview_id].events.append(event)

    async def list_interviews(self) -> List[InterviewSession]:
        interviews = sorted(self.interviews.values(), key=lambda i: i.start_time, reverse=True)
        return [i.model_copy(deep=True) for i in interviews]


def _to_document(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _to_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_document(v) for v in value]
    return value


class MongoSessionStore(BaseSessionStore):
    backend: str = "mongo"

    def __init__(self, database) -> None:
        self.rooms = database[ROOMS_COLLECTION]
        self.interviews = database[INTERVIEWS_COLLECTION]

    async def insert_room(self, room: RoomSession) -> None:
        doc = _to_document(room.model_dump())
        doc["_id"] = room.room_id
        try:
            await self.rooms.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateRoomError(room.room_id) from exc

    async def get_room(self, room_id: str) -> Optional[RoomSession]:
        doc = await self.rooms.find_one({"_id": room_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return RoomSession(**doc)

    async def save_room(self, room: RoomSession) -> None:
        doc = _to_document(room.model_dump())
        await self.rooms.update_one({"_id": room.room_id}, {"$set": doc})

    async def insert_interview(self, interview: InterviewSession) -> None:
        doc = _to_document(interview.model_dump())
        doc["_id"] = interview.id
        await self.interviews.insert_one(doc)

    async def get_interview(self, interview_id: str) -> Optional[InterviewSession]:
        doc = await self.interviews.find_one({"_id": interview_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return InterviewSession(**doc)

    async def save_interview(self, interview: InterviewSession) -> None:
        # events are owned by append_event; never rewrite them here
        doc = _to_document(interview.model_dump(exclude={"events"}))
        await self.interviews.update_one({"_id": interview.id}, {"$set": doc})

    async def append_event(self, interview_id: str, event: DetectionEvent) -> None:
        await self.interviews.update_one(
            {"_id": interview_id},
            {"$push": {"events": _to_document(event.model_dump())}},
        )

    async def list_interviews(self) -> List[InterviewSession]:
        cursor = self.interviews.find().sort("start_time", -1)
        interviews = []
        async for doc in cursor:
            doc.pop("_id", None)
            interviews.append(InterviewSession(**doc))
        return interviews


def get_session_store(settings: Settings) -> BaseSessionStore:
    backend = settings.store_backend.lower()
    if backend == "mongo":
        ensure_indexes(settings)
        logger.info(f"Using MongoDB session store at {settings.mongodb_url}")
        return MongoSessionStore(get_database(settings))
    return MemorySessionStore()
