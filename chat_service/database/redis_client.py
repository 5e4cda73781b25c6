"""
Redis Connection Management
==========================

redis.asyncio client lifecycle for the history cache.

Features:
- Connection pooling sized from settings
- Ping on connect
- Graceful connection handling
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Dict, Any

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
import structlog

from chat_service.config.constants import HEALTH_CHECK_INTERVAL
from chat_service.config.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class RedisConfig:
    """Redis configuration derived from application settings"""
    url: str = "redis://localhost:6379"
    max_connections: int = 50
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    retry_on_timeout: bool = True
    health_check_interval: int = HEALTH_CHECK_INTERVAL
    decode_responses: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisConfig":
        return cls(
            url=settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=float(settings.REDIS_SOCKET_TIMEOUT),
            socket_connect_timeout=float(settings.REDIS_SOCKET_TIMEOUT),
        )

    def get_pool_kwargs(self) -> Dict[str, Any]:
        """
        Get connection pool parameters

        Returns:
            Dictionary of pool parameters
        """
        return {
            'max_connections': self.max_connections,
            'socket_timeout': self.socket_timeout,
            'socket_connect_timeout': self.socket_connect_timeout,
            'retry_on_timeout': self.retry_on_timeout,
            'health_check_interval': self.health_check_interval,
            'decode_responses': self.decode_responses,
        }


class RedisConnectionManager:
    """
    Redis connection manager
    """

    def __init__(self, config: RedisConfig):
        """
        Initialize connection manager

        Args:
            config: Redis configuration
        """
        self.config = config
        self.client: Optional[Redis] = None
        self.pool: Optional[ConnectionPool] = None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> Redis:
        """
        Establish connection to Redis

        Returns:
            Redis client instance

        Raises:
            ConnectionError: If connection cannot be established
        """
        async with self._connection_lock:
            if self.client is None:
                try:
                    logger.info("Connecting to Redis")

                    self.pool = ConnectionPool.from_url(self.config.url, **self.config.get_pool_kwargs())
                    self.client = Redis(connection_pool=self.pool)

                    await self.client.ping()

                    logger.info("Successfully connected to Redis")

                except Exception as e:
                    logger.error("Failed to connect to Redis", error=str(e))
                    await self._close_client()
                    raise RedisConnectionError(f"Failed to connect to Redis: {e}")

            return self.client

    async def disconnect(self) -> None:
        """Disconnect from Redis"""
        async with self._connection_lock:
            if self.client is not None:
                await self._close_client()
                logger.info("Disconnected from Redis")

    async def _close_client(self) -> None:
        if self.client is not None:
            await self.client.aclose()
        if self.pool is not None:
            await self.pool.disconnect()
        self.client = None
        self.pool = None
