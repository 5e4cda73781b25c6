"""
Chat History Service

Paginated, cache-first history reads. A page is cached under
``chat_history:{user_id}:{generation}:{page}:{limit}``. The generation is a
per-user counter bumped on every new turn, so a page read before a turn was
stored can never be served after it, even when a slow read writes its page
back after the invalidation. Cache failures never fail a request: they
degrade to a store read.
"""

from typing import Any, Dict, Optional, Protocol, List

from chat_service.config.constants import (
    CHAT_HISTORY_GENERATION_KEY,
    CHAT_HISTORY_KEY,
    CHAT_HISTORY_USER_PATTERN,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
)
from chat_service.exceptions.base_exceptions import CacheError
from chat_service.models.chat_turn import ChatTurn
from chat_service.repositories.base_repository import Pagination
from chat_service.services.base_service import BaseService
from chat_service.utils.metrics import MetricsCollector


class ChatTurnReader(Protocol):
    async def find_by_user(self, user_id: str, pagination: Pagination) -> List[ChatTurn]: ...

    async def count_by_user(self, user_id: str) -> int: ...


class JsonCache(Protocol):
    async def get_json(self, key: str) -> Optional[Any]: ...

    async def set_json(self, key: str, value: Any, ttl: int) -> None: ...

    async def incr(self, key: str) -> int: ...

    async def delete_pattern(self, pattern: str) -> int: ...


class ChatHistoryService(BaseService):
    """Serves paginated chat history"""

    def __init__(
            self,
            store: ChatTurnReader,
            cache: JsonCache,
            cache_ttl: int = 300,
            metrics: Optional[MetricsCollector] = None
    ):
        super().__init__()
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.metrics = metrics

    @staticmethod
    def cache_key(user_id: str, page: int, page_size: int, generation: int = 0) -> str:
        return CHAT_HISTORY_KEY.format(user_id=user_id, generation=generation, page=page, limit=page_size)

    @staticmethod
    def generation_key(user_id: str) -> str:
        return CHAT_HISTORY_GENERATION_KEY.format(user_id=user_id)

    async def get_history(
            self,
            user_id: str,
            page: int = DEFAULT_PAGE,
            page_size: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        """
        Get one page of a user's chat history

        Args:
            user_id: Owner of the history
            page: 1-based page number
            page_size: Turns per page

        Returns:
            ``{"chats": [...], "totalPages": int, "currentPage": int}``

        Raises:
            PersistenceError: If the store cannot be read
        """
        pagination = Pagination(page=page, page_size=page_size)
        pagination.validate()

        # The generation must be read before the store
        generation = await self._read_generation(user_id)
        key = None
        if generation is not None:
            key = self.cache_key(user_id, page, page_size, generation)
            cached = await self._read_cache(key)
            if cached is not None:
                self._record_cache(hit=True)
                return cached
        self._record_cache(hit=False)

        turns = await self.store.find_by_user(user_id, pagination)
        total = await self.store.count_by_user(user_id)

        result = {
            "chats": [turn.to_response() for turn in turns],
            "totalPages": pagination.total_pages(total),
            "currentPage": page,
        }

        if key is not None:
            try:
                await self.cache.set_json(key, result, self.cache_ttl)
            except CacheError as e:
                self.logger.warning("Failed to cache history page", user_id=user_id, key=key, error=str(e))

        return result

    async def invalidate(self, user_id: str) -> int:
        """
        Retire every cached history page of a user

        Bumps the user's generation, then removes the pages cached so far.

        Returns:
            Number of keys removed; 0 when the cache is unavailable
        """
        pattern = CHAT_HISTORY_USER_PATTERN.format(user_id=user_id)
        try:
            generation = await self.cache.incr(self.generation_key(user_id))
            removed = await self.cache.delete_pattern(pattern)
        except CacheError as e:
            self.logger.warning("Failed to invalidate history cache", user_id=user_id, error=str(e))
            return 0

        self.logger.debug("History cache invalidated", user_id=user_id, generation=generation, removed=removed)
        return removed

    async def _read_generation(self, user_id: str) -> Optional[int]:
        try:
            value = await self.cache.get_json(self.generation_key(user_id))
        except CacheError as e:
            self.logger.warning("History cache read failed, reading store", user_id=user_id, error=str(e))
            return None
        return value if isinstance(value, int) else 0

    async def _read_cache(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            cached = await self.cache.get_json(key)
        except CacheError as e:
            self.logger.warning("History cache read failed, reading store", key=key, error=str(e))
            return None
        return cached if isinstance(cached, dict) else None

    def _record_cache(self, hit: bool) -> None:
        if self.metrics is not None:
            self.metrics.record_cache(hit)
