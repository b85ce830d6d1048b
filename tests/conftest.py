"""
Pytest configuration for the proctoring relay tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from proctoring.config import Settings  # noqa: E402
from proctoring.main import create_app  # noqa: E402
from proctoring.models import DetectionEvent, EventMetadata, EventType  # noqa: E402
from proctoring.relay import Broadcaster, EventRelay  # noqa: E402
from proctoring.rooms import RoomRegistry  # noqa: E402
from proctoring.services import Services  # noqa: E402
from proctoring.storage import MemorySessionStore  # noqa: E402

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def at(self, seconds: float) -> datetime:
        """Absolute offset from the start instant"""
        return T0 + timedelta(seconds=seconds)


def make_event(event_type: EventType, at: float = 0.0, object_type: str = None, **kwargs) -> DetectionEvent:
    metadata = EventMetadata(object_type=object_type) if object_type else None
    return DetectionEvent(
        event_type=event_type,
        timestamp=T0 + timedelta(seconds=at),
        confidence=kwargs.pop("confidence", 0.9),
        metadata=metadata,
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(frontend_url="http://frontend.test")


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def registry(store, clock):
    return RoomRegistry(store, clock=clock)


@pytest.fixture
def relay():
    return EventRelay(Broadcaster())


@pytest.fixture
def services(settings, store, registry, relay):
    return Services(settings=settings, store=store, registry=registry, relay=relay)


@pytest.fixture
def client(services):
    """FastAPI test client bound to an isolated service bundle"""
    with TestClient(create_app(services)) as test_client:
        yield test_client
