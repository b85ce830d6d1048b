from dataclasses import dataclass

from .config import Settings
from .relay import Broadcaster, EventRelay
from .rooms import RoomRegistry
from .storage import BaseSessionStore, get_session_store


@dataclass
class Services:
    """Process-scoped shared state: one room registry, one relay."""

    settings: Settings
    store: BaseSessionStore
    registry: RoomRegistry
    relay: EventRelay


def build_services(settings: Settings, store: BaseSessionStore = None) -> Services:
    store = store or get_session_store(settings)
    return Services(
        settings=settings,
        store=store,
        registry=RoomRegistry(store),
        relay=EventRelay(Broadcaster()),
    )
