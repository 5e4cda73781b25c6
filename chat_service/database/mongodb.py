"""
MongoDB Connection Management
============================

Motor client lifecycle for the chat store.

Features:
- Connection pooling sized from settings
- Ping on connect
- Index creation for per-user history queries
- Graceful connection handling
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Dict, Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure
import structlog

from chat_service.config.constants import CHATS_COLLECTION
from chat_service.config.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class MongoDBConfig:
    """MongoDB configuration derived from application settings"""
    uri: str = "mongodb://localhost:27017"
    database_name: str = "chat_service"
    max_pool_size: int = 100
    min_pool_size: int = 10
    server_selection_timeout_ms: int = 5000
    retry_writes: bool = True
    retry_reads: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDBConfig":
        return cls(
            uri=settings.MONGODB_URI,
            database_name=settings.MONGODB_DATABASE,
            max_pool_size=settings.MONGODB_MAX_CONNECTIONS,
            min_pool_size=settings.MONGODB_MIN_CONNECTIONS,
            server_selection_timeout_ms=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        )

    def get_client_options(self) -> Dict[str, Any]:
        """
        Get client options for AsyncIOMotorClient

        Returns:
            Dictionary of client options
        """
        return {
            'maxPoolSize': self.max_pool_size,
            'minPoolSize': self.min_pool_size,
            'serverSelectionTimeoutMS': self.server_selection_timeout_ms,
            'retryWrites': self.retry_writes,
            'retryReads': self.retry_reads,
        }


class MongoDBConnectionManager:
    """
    MongoDB connection manager
    """

    def __init__(self, config: MongoDBConfig):
        """
        Initialize connection manager

        Args:
            config: MongoDB configuration
        """
        self.config = config
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> AsyncIOMotorDatabase:
        """
        Establish connection to MongoDB

        Returns:
            MongoDB database instance

        Raises:
            ConnectionFailure: If connection cannot be established
        """
        async with self._connection_lock:
            if self.client is None:
                try:
                    logger.info("Connecting to MongoDB", database=self.config.database_name)

                    self.client = AsyncIOMotorClient(self.config.uri, **self.config.get_client_options())
                    self.database = self.client[self.config.database_name]

                    await self._test_connection()

                    logger.info("Successfully connected to MongoDB")

                except Exception as e:
                    logger.error("Failed to connect to MongoDB", error=str(e))
                    self._close_client()
                    raise ConnectionFailure(f"Failed to connect to MongoDB: {e}")

            return self.database

    async def disconnect(self) -> None:
        """Disconnect from MongoDB"""
        async with self._connection_lock:
            if self.client is not None:
                self._close_client()
                logger.info("Disconnected from MongoDB")

    def _close_client(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self.database = None

    async def _test_connection(self) -> None:
        """Test MongoDB connection"""
        if self.client is not None:
            await self.client.admin.command('ping')


# Index Management
class MongoIndexManager:
    """MongoDB index management utilities"""

    def __init__(self, database: AsyncIOMotorDatabase):
        """
        Initialize index manager

        Args:
            database: MongoDB database instance
        """
        self.database = database
        self.logger = structlog.get_logger("MongoIndexManager")

    async def create_chat_indexes(self) -> None:
        """Create indexes for the chats collection"""
        collection = self.database[CHATS_COLLECTION]

        indexes = [
            # Per-user history, newest first
            IndexModel([("user_id", ASCENDING), ("timestamp", DESCENDING)], name="user_timestamp"),
        ]

        try:
            await collection.create_indexes(indexes)
            self.logger.info("Chat indexes created successfully")
        except Exception as e:
            self.logger.error("Failed to create chat indexes", error=str(e))
            raise
