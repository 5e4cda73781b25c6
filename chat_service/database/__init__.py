"""
Database connection management for Chat Service.

MongoDB holds chat turns; Redis holds cached history pages.
"""

from chat_service.database.mongodb import MongoDBConfig, MongoDBConnectionManager, MongoIndexManager
from chat_service.database.redis_client import RedisConfig, RedisConnectionManager

__all__ = [
    "MongoDBConfig",
    "MongoDBConnectionManager",
    "MongoIndexManager",
    "RedisConfig",
    "RedisConnectionManager",
]
