"""
FastAPI dependency providers.

Every provider resolves from the ServiceContainer stored on
``app.state.container`` by the application lifespan (or by ``create_app``
when a prebuilt container is supplied).
"""

from fastapi import Request

from chat_service.exceptions.base_exceptions import ChatServiceException
from chat_service.services.chat_history_service import ChatHistoryService
from chat_service.services.chat_service import ChatService
from chat_service.services.diagnostics_service import DiagnosticsService
from chat_service.services.identity_provider import JWTIdentityProvider
from chat_service.services.service_container import ServiceContainer
from chat_service.utils.metrics import MetricsCollector


def get_container(request: Request) -> ServiceContainer:
    """
    Get the application's service container

    Raises:
        ChatServiceException: If the application has not finished starting
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ChatServiceException(
            "Service container not initialized",
            error_code="SERVICE_UNAVAILABLE",
            status_code=503,
            user_message="Service is starting, try again shortly"
        )
    return container


def get_chat_service(request: Request) -> ChatService:
    return get_container(request).chat_service


def get_history_service(request: Request) -> ChatHistoryService:
    return get_container(request).history_service


def get_diagnostics_service(request: Request) -> DiagnosticsService:
    return get_container(request).diagnostics


def get_identity_provider(request: Request) -> JWTIdentityProvider:
    return get_container(request).identity


def get_metrics(request: Request) -> MetricsCollector:
    return get_container(request).metrics
