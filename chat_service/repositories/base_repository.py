"""
Base Repository Pattern Implementation
=====================================

Shared pagination arithmetic and structured operation logging for the
MongoDB and Redis repositories.
"""

import asyncio
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog


@dataclass
class Pagination:
    """
    Pagination parameters

    Attributes:
        page: Page number (1-based)
        page_size: Number of items per page
    """
    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset for database queries"""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        """Alias for page_size for clarity"""
        return self.page_size

    def validate(self) -> None:
        """
        Validate pagination parameters

        Raises:
            ValueError: If parameters are not positive integers
        """
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1:
            raise ValueError("Page size must be >= 1")

    def total_pages(self, total: int) -> int:
        """Number of pages needed to hold ``total`` items"""
        return math.ceil(total / self.page_size)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "page": self.page,
            "page_size": self.page_size,
            "offset": self.offset,
        }


class BaseRepository:
    """
    Base repository providing structured logging of storage operations
    """

    def __init__(self):
        """Initialize repository with logger"""
        self.logger = structlog.get_logger(self.__class__.__name__)

    def _log_operation(
            self,
            operation: str,
            duration_ms: Optional[float] = None,
            **kwargs
    ) -> None:
        """
        Log repository operation with structured data

        Args:
            operation: Operation name
            duration_ms: Operation duration in milliseconds
            **kwargs: Additional context data
        """
        log_data = {
            "operation": operation,
            "repository": self.__class__.__name__,
            **kwargs
        }

        if duration_ms is not None:
            log_data["duration_ms"] = round(duration_ms, 2)

        self.logger.debug("Repository operation completed", **log_data)

    def _log_error(
            self,
            operation: str,
            error: Exception,
            **kwargs
    ) -> None:
        """
        Log repository error with context

        Args:
            operation: Failed operation name
            error: Exception that occurred
            **kwargs: Additional context data
        """
        self.logger.error(
            f"Repository operation failed: {operation}",
            error=str(error),
            error_type=type(error).__name__,
            repository=self.__class__.__name__,
            **kwargs
        )

    @asynccontextmanager
    async def _timed_operation(self, operation: str, **kwargs):
        """
        Context manager for timing and logging operations

        Args:
            operation: Operation name for logging
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        try:
            yield
        finally:
            self._log_operation(operation, (loop.time() - start_time) * 1000, **kwargs)
