"""
Tests for the room / interview lifecycle
"""

import asyncio

import pytest

from conftest import make_event
from proctoring.errors import (
    InterviewCompletedError,
    InterviewNotFoundError,
    RoomNotFoundError,
    SessionEndedError,
)
from proctoring.models import EventType, InterviewStatus, RoomStatus
from proctoring.rooms import KeyedLocks, RoomRegistry


class TestCreateRoom:
    """Tests for room creation"""

    @pytest.mark.asyncio
    async def test_new_room_is_waiting(self, registry):
        room = await registry.create_room("Ada", "Grace")

        assert room.status == RoomStatus.WAITING
        assert len(room.room_id) == 4
        assert room.interview_id is None
        assert room.start_time is None
        assert (await registry.get_room(room.room_id)).candidate_name == "Ada"

    @pytest.mark.asyncio
    async def test_id_collision_is_retried(self, store, clock):
        ids = iter(["abcd", "abcd", "efgh"])
        registry = RoomRegistry(store, clock=clock, id_factory=lambda: next(ids))

        first = await registry.create_room("Ada", "Grace")
        second = await registry.create_room("Alan", "Grace")

        assert (first.room_id, second.room_id) == ("abcd", "efgh")

    @pytest.mark.asyncio
    async def test_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            await registry.get_room("nope")


class TestJoinRoom:
    """Tests for WAITING -> ACTIVE"""

    @pytest.mark.asyncio
    async def test_join_starts_interview(self, registry, clock):
        room = await registry.create_room("Ada", "Grace")
        clock.advance(30)

        joined = await registry.join_room(room.room_id)

        assert joined.status == RoomStatus.ACTIVE
        assert joined.start_time == clock()
        interview = await registry.get_interview(joined.interview_id)
        assert interview.status == InterviewStatus.ACTIVE
        assert interview.start_time == clock()
        assert interview.events == []
        assert interview.candidate_name == "Ada"

    @pytest.mark.asyncio
    async def test_second_join_returns_same_interview(self, registry):
        room = await registry.create_room("Ada", "Grace")

        first = await registry.join_room(room.room_id)
        second = await registry.join_room(room.room_id)

        assert first.interview_id == second.interview_id

    @pytest.mark.asyncio
    async def test_concurrent_joins_create_one_interview(self, registry, store):
        room = await registry.create_room("Ada", "Grace")

        results = await asyncio.gather(*(registry.join_room(room.room_id) for _ in range(5)))

        assert len({r.interview_id for r in results}) == 1
        assert len(store.interviews) == 1

    @pytest.mark.asyncio
    async def test_join_completed_room_rejected(self, registry):
        room = await registry.create_room("Ada", "Grace")
        await registry.end_room(room.room_id)

        with pytest.raises(SessionEndedError):
            await registry.join_room(room.room_id)

    @pytest.mark.asyncio
    async def test_join_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            await registry.join_room("zzzz")


class TestLogEvent:
    """Tests for appending events"""

    @pytest.mark.asyncio
    async def test_events_keep_emission_order(self, registry):
        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        events = [
            make_event(EventType.FOCUS_LOST, at=1),
            make_event(EventType.PHONE_DETECTED, at=2, object_type="cell phone"),
            make_event(EventType.FACE_ABSENT, at=3),
        ]

        for event in events:
            await registry.log_event(room.interview_id, event)

        interview = await registry.get_interview(room.interview_id)
        assert interview.events == events

    @pytest.mark.asyncio
    async def test_unknown_interview(self, registry):
        with pytest.raises(InterviewNotFoundError):
            await registry.log_event("missing", make_event(EventType.FOCUS_LOST))

    @pytest.mark.asyncio
    async def test_completed_interview_is_not_mutated(self, registry):
        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        await registry.end_room(room.room_id)

        with pytest.raises(InterviewCompletedError):
            await registry.log_event(room.interview_id, make_event(EventType.FOCUS_LOST))

        interview = await registry.get_interview(room.interview_id)
        assert interview.events == []
        assert interview.integrity_score == 100


class TestEndRoom:
    """Tests for ACTIVE -> COMPLETED"""

    @pytest.mark.asyncio
    async def test_end_scores_interview(self, registry, clock):
        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        for i, event_type in enumerate([EventType.FOCUS_LOST, EventType.FOCUS_LOST, EventType.PHONE_DETECTED]):
            await registry.log_event(room.interview_id, make_event(event_type, at=i * 10))
        clock.advance(600)

        ended = await registry.end_room(room.room_id)

        assert ended.status == RoomStatus.COMPLETED
        assert ended.end_time == clock()
        interview = await registry.get_interview(room.interview_id)
        assert interview.status == InterviewStatus.COMPLETED
        assert interview.end_time == clock()
        assert interview.integrity_score == 70

    @pytest.mark.asyncio
    async def test_end_twice_is_idempotent(self, registry, clock):
        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        await registry.log_event(room.interview_id, make_event(EventType.BOOK_DETECTED))
        first = await registry.end_room(room.room_id)
        scored = await registry.get_interview(room.interview_id)

        clock.advance(60)
        second = await registry.end_room(room.room_id)
        rescored = await registry.get_interview(room.interview_id)

        assert second.end_time == first.end_time
        assert rescored.integrity_score == scored.integrity_score == 85
        assert rescored.end_time == scored.end_time

    @pytest.mark.asyncio
    async def test_end_waiting_room(self, registry):
        room = await registry.create_room("Ada", "Grace")

        ended = await registry.end_room(room.room_id)

        assert ended.status == RoomStatus.COMPLETED
        assert ended.interview_id is None

    @pytest.mark.asyncio
    async def test_end_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            await registry.end_room("zzzz")

    @pytest.mark.asyncio
    async def test_rooms_are_independent(self, registry):
        a = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        b = await registry.join_room((await registry.create_room("Alan", "Grace")).room_id)

        await registry.end_room(a.room_id)

        assert (await registry.get_room(b.room_id)).status == RoomStatus.ACTIVE
        assert a.interview_id != b.interview_id


class TestStandaloneInterview:
    """Tests for interviews without a room"""

    @pytest.mark.asyncio
    async def test_start_and_attach_video(self, registry):
        interview = await registry.start_interview("Ada")
        await registry.log_event(interview.id, make_event(EventType.DEVICE_DETECTED, object_type="laptop"))

        updated = await registry.attach_video(interview.id, "videos/ada.webm")

        assert updated.video_path == "videos/ada.webm"
        assert updated.status == InterviewStatus.COMPLETED
        assert updated.integrity_score == 80

    @pytest.mark.asyncio
    async def test_attach_video_keeps_existing_score(self, registry):
        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        await registry.log_event(room.interview_id, make_event(EventType.FOCUS_LOST))
        await registry.end_room(room.room_id)

        updated = await registry.attach_video(room.interview_id, "videos/late.webm")

        assert updated.integrity_score == 95


class TestKeyedLocks:
    """Tests for per-id lock bookkeeping"""

    @pytest.mark.asyncio
    async def test_unknown_ids_leave_no_locks(self, registry):
        for i in range(100):
            with pytest.raises(RoomNotFoundError):
                await registry.join_room(f"x{i}")
            with pytest.raises(InterviewNotFoundError):
                await registry.log_event(f"iv{i}", make_event(EventType.FOCUS_LOST))

        room = await registry.join_room((await registry.create_room("Ada", "Grace")).room_id)
        await registry.log_event(room.interview_id, make_event(EventType.FOCUS_LOST))
        await registry.end_room(room.room_id)

        assert len(registry._room_locks) == 0
        assert len(registry._interview_locks) == 0

    @pytest.mark.asyncio
    async def test_entry_kept_while_waiters_queue(self):
        locks = KeyedLocks()
        order = []
        gate = asyncio.Event()

        async def hold(name):
            async with locks("r1"):
                order.append(name)
                await gate.wait()

        first = asyncio.create_task(hold("a"))
        second = asyncio.create_task(hold("b"))
        await asyncio.sleep(0)
        assert len(locks) == 1
        assert order == ["a"]

        gate.set()
        await asyncio.gather(first, second)

        assert order == ["a", "b"]
        assert len(locks) == 0


class TestErrors:
    """Tests for error details"""

    def test_default_and_custom_detail(self):
        assert RoomNotFoundError().detail == "Room not found"
        assert RoomNotFoundError(None).detail == "Room not found"
        error = InterviewCompletedError("Interview iv-1 is closed")
        assert error.detail == "Interview iv-1 is closed"
        assert error.status_code == 409
        assert str(error) == "Interview iv-1 is closed"
