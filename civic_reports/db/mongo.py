from __future__ import annotations

import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, GEOSPHERE

logger = logging.getLogger(__name__)


class Mongo:
    """
    Owns the Mongo client for one process. Built by the app factory,
    connected/closed by the FastAPI lifespan, handed to handlers via get_db().
    """

    def __init__(self, uri: str, db_name: str):
        self.uri = uri
        self.db_name = db_name
        self.client = None
        self.db = None

    @classmethod
    def from_client(cls, client, db_name: str) -> "Mongo":
        mongo = cls(uri="", db_name=db_name)
        mongo.client = client
        mongo.db = client[db_name]
        return mongo

    @property
    def connected(self) -> bool:
        return self.db is not None

    async def connect(self) -> None:
        if self.connected:
            return
        self.client = AsyncIOMotorClient(
            self.uri,
            serverSelectionTimeoutMS=5000,
            socketTimeoutMS=45000,
        )
        self.db = self.client[self.db_name]
        logger.info("MongoDB client created for database '%s'", self.db_name)

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False

    async def ensure_indexes(self) -> None:
        await self.reports.create_index([("location", GEOSPHERE)])
        await self.reports.create_index("report_id", unique=True)
        await self.reports.create_index(
            [("status", ASCENDING), ("priority", DESCENDING), ("created_at", DESCENDING)]
        )
        await self.reports.create_index([("citizen_id", ASCENDING), ("created_at", DESCENDING)])
        await self.reports.create_index([("assigned_staff_id", ASCENDING), ("status", ASCENDING)])
        await self.reports.create_index([("category", ASCENDING), ("status", ASCENDING)])
        # reports created without a key store null and stay out of the index
        await self.reports.create_index(
            [("citizen_id", ASCENDING), ("idempotency_key", ASCENDING)],
            unique=True,
            partialFilterExpression={"idempotency_key": {"$type": "string"}},
        )

        await self.users.create_index("email", unique=True)
        await self.users.create_index("staff_id", unique=True, sparse=True)
        await self.users.create_index("role")
        logger.info("MongoDB indexes ensured")

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None

    @property
    def users(self):
        return self.db["users"]

    @property
    def reports(self):
        return self.db["reports"]

    @property
    def counters(self):
        return self.db["counters"]

    @property
    def audit_logs(self):
        return self.db["audit_logs"]
