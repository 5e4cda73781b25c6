"""
Chat Repository Implementation
=============================

MongoDB repository for chat turns. Turns are append-only: inserted once
after a response stream completes, then read back for history pages and
prompt context.
"""

from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import DESCENDING

from chat_service.config.constants import CHATS_COLLECTION
from chat_service.exceptions.base_exceptions import PersistenceError
from chat_service.models.chat_turn import ChatTurn
from chat_service.repositories.base_repository import BaseRepository, Pagination

NEWEST_FIRST = [("timestamp", DESCENDING), ("_id", DESCENDING)]


class ChatRepository(BaseRepository):
    """
    MongoDB-backed chat store
    """

    def __init__(self, database: AsyncIOMotorDatabase):
        """
        Initialize chat repository

        Args:
            database: MongoDB database instance
        """
        super().__init__()
        self.database = database
        self.collection: AsyncIOMotorCollection = database[CHATS_COLLECTION]

    async def insert(self, turn: ChatTurn) -> ChatTurn:
        """
        Persist a completed chat turn

        Args:
            turn: Turn to insert; its id is assigned by the store

        Returns:
            The stored turn with its id populated

        Raises:
            PersistenceError: If the write fails
        """
        try:
            async with self._timed_operation("insert", user_id=turn.user_id):
                result = await self.collection.insert_one(turn.to_document())
            return turn.model_copy(update={"id": str(result.inserted_id)})
        except Exception as e:
            self._log_error("insert", e, user_id=turn.user_id)
            raise PersistenceError(f"Failed to insert chat turn: {e}", operation="insert", caused_by=e)

    async def find_by_user(self, user_id: str, pagination: Pagination) -> List[ChatTurn]:
        """
        Get one page of a user's turns, newest first

        Args:
            user_id: Owner of the turns
            pagination: Page and page size

        Returns:
            At most ``pagination.limit`` turns
        """
        try:
            async with self._timed_operation("find_by_user", user_id=user_id, page=pagination.page):
                cursor = (
                    self.collection.find({"user_id": user_id})
                    .sort(NEWEST_FIRST)
                    .skip(pagination.offset)
                    .limit(pagination.limit)
                )
                documents = await cursor.to_list(length=pagination.limit)
            return [ChatTurn.from_document(doc) for doc in documents]
        except Exception as e:
            self._log_error("find_by_user", e, user_id=user_id)
            raise PersistenceError(f"Failed to read chat history: {e}", operation="find_by_user", caused_by=e)

    async def count_by_user(self, user_id: str) -> int:
        """Total number of turns stored for a user"""
        try:
            async with self._timed_operation("count_by_user", user_id=user_id):
                return await self.collection.count_documents({"user_id": user_id})
        except Exception as e:
            self._log_error("count_by_user", e, user_id=user_id)
            raise PersistenceError(f"Failed to count chat turns: {e}", operation="count_by_user", caused_by=e)

    async def find_recent(self, user_id: str, limit: int) -> List[ChatTurn]:
        """
        Get the most recent turns for prompt context

        Args:
            user_id: Owner of the turns
            limit: Maximum number of turns

        Returns:
            Newest-first list of at most ``limit`` turns
        """
        if limit <= 0:
            return []
        return await self.find_by_user(user_id, Pagination(page=1, page_size=limit))

    async def ping(self) -> None:
        """Round-trip to the server; raises on failure"""
        await self.database.command("ping")
