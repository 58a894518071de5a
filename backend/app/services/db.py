# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from app.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    async def ensure_indexes(self):
        """create lookup indexes and the one-active-request-per-child constraint"""
        await self.users.create_index("email", unique=True)
        await self.users.create_index("role")
        await self.psychologists.create_index("psychologist_id", unique=True)
        await self.psychologists.create_index("user_id", unique=True)
        await self.psychologists.create_index(
            [("approved", ASCENDING), ("rating", DESCENDING), ("completed_assessments", DESCENDING)]
        )
        await self.children.create_index("child_id", unique=True)
        await self.children.create_index("parent_id")
        await self.children.create_index("status")
        await self.assessment_requests.create_index("request_id", unique=True)
        await self.assessment_requests.create_index("psychologist_id")
        await self.assessment_requests.create_index("status")
        await self.assessment_requests.create_index(
            "child_id",
            unique=True,
            partialFilterExpression={"active": True},
            name="uq_active_request_per_child",
        )
        await self.game_results.create_index("child_id")
        await self.game_results.create_index("request_id", unique=True)
        await self.ai_analysis.create_index("child_id")
        await self.ai_analysis.create_index("request_id", unique=True)
        logger.info("MongoDB indexes ensured")

    # collection accessors

    @property
    def users(self):
        return self.db["users"]

    @property
    def psychologists(self):
        return self.db["psychologists"]

    @property
    def children(self):
        return self.db["children"]

    @property
    def assessment_requests(self):
        return self.db["assessment_requests"]

    @property
    def game_results(self):
        return self.db["game_results"]

    @property
    def ai_analysis(self):
        return self.db["ai_analysis"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
