import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core import config
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the single Motor client for the process.

    Created by create_app(), opened on startup and closed on shutdown.
    Tests pass their own client (mongomock_motor) instead of a URL.
    """

    def __init__(self, url: str = None, name: str = None, client: Any = None):
        self.client = client or AsyncIOMotorClient(
            url or config.MONGO_URL,
            serverSelectionTimeoutMS=5000,
        )
        self.db: AsyncIOMotorDatabase = self.client[name or config.MONGO_DB]

    async def connect(self) -> None:
        await self.client.admin.command("ping")
        await create_indexes(self.db)
        logger.info(f"✅ MongoDB connected ({self.db.name})")

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"⚠️ MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Uniqueness is enforced in the services; indexes back it up."""
    try:
        await db.users.create_index("email", unique=True)
        await db.users.create_index([("role", 1), ("status", 1)])

        await db.courses.create_index("title", unique=True)

        await db.assignments.create_index(
            [("course_id", 1), ("module_id", 1), ("title", 1)],
            unique=True
        )
        await db.assignments.create_index([("course_id", 1), ("due_date", 1)])

        await db.transactions.create_index("reference", unique=True)
        await db.transactions.create_index([("user_id", 1), ("course_id", 1), ("status", 1)])
        await db.transactions.create_index([("user_id", 1), ("created_at", -1)])

        logger.info("✅ Indexes created")
    except Exception as e:
        logger.warning(f"⚠️ Index creation warning: {e}")


# ==================== HELPERS ====================

def to_object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label} format")


def serialize_doc(value: Any) -> Any:
    """Convert ObjectIds (at any depth) to strings so documents are JSON-safe"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_doc(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_doc(item) for item in value]
    return value


def serialize_many(docs: list) -> list:
    return [serialize_doc(doc) for doc in docs]


def utcnow() -> datetime:
    return datetime.utcnow()


def strip_fields(doc: Optional[dict], *fields: str) -> Optional[dict]:
    if doc is None:
        return None
    return {key: value for key, value in doc.items() if key not in fields}


def clean_fields(values: dict) -> dict:
    """Drop unset/None fields and store enums by value"""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in values.items()
        if value is not None
    }
