"""
Request and response models for the chat API.
"""

from chat_service.api.validators.chat_validators import (
    ChatHistoryResponse,
    ChatRequest,
    ChatTurnResponse,
    HealthResponse,
)

__all__ = [
    "ChatHistoryResponse",
    "ChatRequest",
    "ChatTurnResponse",
    "HealthResponse",
]
