"""
Diagnostics Service

Connectivity probe for the chat store, the cache and the inference provider.
Each dependency is reported as ``{"connected": bool, "error": str | None}``;
a failing probe is captured in the report, never raised.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Protocol

from chat_service.config.settings import Settings
from chat_service.services.base_service import BaseService
from chat_service.utils.formatters import format_timestamp


class Pingable(Protocol):
    async def ping(self) -> None: ...


class Probeable(Protocol):
    url: str

    async def probe(self) -> None: ...


class DiagnosticsService(BaseService):
    """Reports reachability of every external dependency"""

    def __init__(
            self,
            settings: Settings,
            store: Pingable,
            cache: Pingable,
            primary: Probeable,
            fallback: Probeable
    ):
        super().__init__()
        self.settings = settings
        self.store = store
        self.cache = cache
        self.primary = primary
        self.fallback = fallback

    async def report(self) -> Dict[str, Any]:
        """
        Probe every dependency

        Returns:
            Report with ``mongodb``, ``redis`` and ``huggingface`` sections plus
            environment details
        """
        huggingface = await self._check(self.primary.probe)
        huggingface.update({"url": self.primary.url, "fallbackUrl": self.fallback.url})

        return {
            "mongodb": await self._check(self.store.ping),
            "redis": await self._check(self.cache.ping),
            "huggingface": huggingface,
            "environment": self.settings.ENVIRONMENT.value,
            "frontendUrl": self.settings.FRONTEND_URL,
            "timestamp": format_timestamp(datetime.now(timezone.utc)),
        }

    async def _check(self, probe: Callable[[], Awaitable[None]]) -> Dict[str, Any]:
        status: Dict[str, Any] = {"connected": False, "error": None}
        try:
            await probe()
            status["connected"] = True
        except Exception as e:
            status["error"] = str(e) or type(e).__name__
            self.logger.warning("Dependency probe failed", probe=getattr(probe, "__qualname__", str(probe)), error=status["error"])
        return status
