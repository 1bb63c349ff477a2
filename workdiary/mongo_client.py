"""
MongoDB client configuration for Work Diary
"""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from workdiary.config import MONGO_URL, DB_NAME

logger = logging.getLogger(__name__)


class MongoClient:
    _instance: Optional[AsyncIOMotorClient] = None

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:
        """Get MongoDB client instance (singleton pattern)"""
        if cls._instance is None:
            if not MONGO_URL:
                raise ValueError("MONGO_URL must be set")
            cls._instance = AsyncIOMotorClient(MONGO_URL)
        return cls._instance

    @classmethod
    def close(cls):
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None


def get_database() -> AsyncIOMotorDatabase:
    """Get the Work Diary database"""
    return MongoClient.get_client()[DB_NAME]


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the API relies on (idempotent)"""
    await db.users.create_index("id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.diaries.create_index("id", unique=True)
    # one entry per user per day
    await db.diaries.create_index([("user_id", ASCENDING), ("date", DESCENDING)], unique=True)
    logger.info("MongoDB indexes ensured on %s", db.name)
