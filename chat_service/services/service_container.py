"""
Service Container

Owns every service instance of one application. Built once in the
application lifespan from live connections, or directly from collaborators
in tests. Routes read it from ``app.state.container``.
"""

from typing import Any, Optional

import httpx
from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis

from chat_service.config.settings import Settings
from chat_service.repositories.cache_repository import CacheRepository
from chat_service.repositories.chat_repository import ChatRepository
from chat_service.services.chat_history_service import ChatHistoryService
from chat_service.services.chat_service import ChatService
from chat_service.services.context_assembler import ContextAssembler
from chat_service.services.diagnostics_service import DiagnosticsService
from chat_service.services.fallback_orchestrator import FallbackOrchestrator
from chat_service.services.identity_provider import JWTIdentityProvider
from chat_service.services.inference_client import GenerationParams, InferenceClient
from chat_service.services.rate_governor import RateGovernor
from chat_service.services.stream_relay import StreamRelay
from chat_service.utils.metrics import MetricsCollector


class ServiceContainer:
    """
    Dependency container for the chat pipeline

    Args:
        settings: Application settings
        store: Chat store (ChatRepository or an equivalent)
        cache: JSON cache (CacheRepository or an equivalent)
        primary: Primary inference target
        fallback: Fallback inference target
        identity: Token verifier; built from settings when omitted
        metrics: Metrics collector; a private registry is created when omitted
        governor: Rate governor; built from settings when omitted
        http_client: Shared HTTP client closed with the container
    """

    def __init__(
            self,
            settings: Settings,
            store: Any,
            cache: Any,
            primary: Any,
            fallback: Any,
            identity: Optional[JWTIdentityProvider] = None,
            metrics: Optional[MetricsCollector] = None,
            governor: Optional[RateGovernor] = None,
            http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings
        self.store = store
        self.cache = cache
        self.primary = primary
        self.fallback = fallback
        self.http_client = http_client

        self.metrics = metrics if metrics is not None else MetricsCollector()
        self.identity = identity if identity is not None else JWTIdentityProvider.from_settings(settings)
        self.governor = governor if governor is not None else RateGovernor(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.rate_limit_window_seconds
        )

        self.history_service = ChatHistoryService(
            store=store,
            cache=cache,
            cache_ttl=settings.CHAT_HISTORY_CACHE_TTL,
            metrics=self.metrics
        )
        self.orchestrator = FallbackOrchestrator(primary, fallback, metrics=self.metrics)
        self.stream_relay = StreamRelay(store=store, history=self.history_service, metrics=self.metrics)
        self.chat_service = ChatService(
            governor=self.governor,
            store=store,
            assembler=ContextAssembler(),
            orchestrator=self.orchestrator,
            relay=self.stream_relay,
            params=GenerationParams.from_settings(settings),
            context_turns=settings.CONTEXT_WINDOW_TURNS,
            metrics=self.metrics
        )
        self.diagnostics = DiagnosticsService(
            settings=settings,
            store=store,
            cache=cache,
            primary=primary,
            fallback=fallback
        )

    @classmethod
    def from_connections(
            cls,
            settings: Settings,
            database: AsyncIOMotorDatabase,
            redis_client: Redis,
            http_client: Optional[httpx.AsyncClient] = None
    ) -> "ServiceContainer":
        """Build the production container over live connections"""
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    settings.INFERENCE_TIMEOUT_SECONDS,
                    connect=settings.INFERENCE_CONNECT_TIMEOUT_SECONDS
                )
            )

        return cls(
            settings=settings,
            store=ChatRepository(database),
            cache=CacheRepository(redis_client),
            primary=InferenceClient.for_model(settings, settings.PRIMARY_MODEL, http_client=http_client),
            fallback=InferenceClient.for_model(settings, settings.FALLBACK_MODEL, http_client=http_client),
            http_client=http_client
        )

    async def aclose(self) -> None:
        """Release the shared HTTP client"""
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
