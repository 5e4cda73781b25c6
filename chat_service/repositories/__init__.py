"""
Repository layer for Chat Service.

MongoDB chat store and Redis cache access.
"""

from chat_service.repositories.base_repository import BaseRepository, Pagination
from chat_service.repositories.chat_repository import ChatRepository
from chat_service.repositories.cache_repository import CacheRepository

__all__ = [
    "BaseRepository",
    "Pagination",
    "ChatRepository",
    "CacheRepository",
]
