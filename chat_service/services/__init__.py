"""
Service layer for Chat Service.
"""

from chat_service.services.chat_history_service import ChatHistoryService
from chat_service.services.chat_service import ChatService
from chat_service.services.context_assembler import ContextAssembler, PromptSequence, PromptTurn
from chat_service.services.diagnostics_service import DiagnosticsService
from chat_service.services.fallback_orchestrator import FallbackOrchestrator
from chat_service.services.identity_provider import JWTIdentityProvider
from chat_service.services.inference_client import GenerationParams, InferenceClient, StreamHandle
from chat_service.services.rate_governor import Admission, RateGovernor
from chat_service.services.service_container import ServiceContainer
from chat_service.services.stream_relay import QueueSink, RelayResult, StreamRelay

__all__ = [
    "Admission",
    "ChatHistoryService",
    "ChatService",
    "ContextAssembler",
    "DiagnosticsService",
    "FallbackOrchestrator",
    "GenerationParams",
    "InferenceClient",
    "JWTIdentityProvider",
    "PromptSequence",
    "PromptTurn",
    "QueueSink",
    "RateGovernor",
    "RelayResult",
    "ServiceContainer",
    "StreamHandle",
    "StreamRelay",
]
