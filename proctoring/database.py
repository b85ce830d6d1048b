from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase # type: ignore
from pymongo import ASCENDING, MongoClient # type: ignore

from .config import Settings


ROOMS_COLLECTION = "rooms"
INTERVIEWS_COLLECTION = "interviews"


def get_database(settings: Settings) -> AsyncIOMotorDatabase:
    # Async client for FastAPI
    client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
    return client[settings.database_name]


def ensure_indexes(settings: Settings) -> None:
    # Sync client for one-off setup at startup
    sync_client = MongoClient(settings.mongodb_url)
    try:
        sync_database = sync_client[settings.database_name]
        sync_database[ROOMS_COLLECTION].create_index([("room_id", ASCENDING)], unique=True)
        sync_database[INTERVIEWS_COLLECTION].create_index([("start_time", ASCENDING)])
    finally:
        sync_client.close()
