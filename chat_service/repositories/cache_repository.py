"""
Cache Repository Implementation
==============================

Redis key/value access with JSON serialization and TTLs. Every failure is
raised as CacheError so that callers can degrade to a store read.
"""

import json
from typing import Any, List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chat_service.exceptions.base_exceptions import CacheError
from chat_service.repositories.base_repository import BaseRepository

SCAN_BATCH_SIZE = 100


class CacheRepository(BaseRepository):
    """
    Redis-backed cache for serialized history pages
    """

    def __init__(self, redis_client: Redis):
        """
        Initialize cache repository

        Args:
            redis_client: Redis client with ``decode_responses`` enabled
        """
        super().__init__()
        self.redis = redis_client

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Read and decode a JSON value

        Args:
            key: Cache key

        Returns:
            Decoded value, or None on a miss
        """
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            self._log_error("get", e, key=key)
            raise CacheError(f"Cache read failed: {e}", operation="get", caused_by=e)

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            self._log_error("decode", e, key=key)
            raise CacheError(f"Cached value is not valid JSON: {e}", operation="decode", caused_by=e)

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        """
        Encode and store a JSON value with expiry

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Time to live in seconds
        """
        try:
            await self.redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl)
        except (RedisError, TypeError, ValueError) as e:
            self._log_error("set", e, key=key)
            raise CacheError(f"Cache write failed: {e}", operation="set", caused_by=e)

    async def incr(self, key: str) -> int:
        """Atomically increment an integer counter; returns the new value"""
        try:
            return await self.redis.incr(key)
        except RedisError as e:
            self._log_error("incr", e, key=key)
            raise CacheError(f"Cache increment failed: {e}", operation="incr", caused_by=e)

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern

        Keys are discovered with SCAN, never KEYS, and removed in batches.

        Args:
            pattern: Redis glob pattern, e.g. ``chat_history:42:*``

        Returns:
            Number of keys removed
        """
        removed = 0
        batch: List[str] = []
        try:
            async for key in self.redis.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    removed += await self.redis.delete(*batch)
                    batch = []
            if batch:
                removed += await self.redis.delete(*batch)
        except RedisError as e:
            self._log_error("delete_pattern", e, pattern=pattern)
            raise CacheError(f"Cache invalidation failed: {e}", operation="delete_pattern", caused_by=e)

        self._log_operation("delete_pattern", pattern=pattern, removed=removed)
        return removed

    async def ping(self) -> None:
        """Round-trip to the server; raises on failure"""
        await self.redis.ping()
