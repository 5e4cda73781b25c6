"""
Application constants and enumerations.

This module defines all constant values, enumerations, and
configuration defaults used throughout the Chat Service.
"""

from enum import Enum

# Service Information
SERVICE_NAME = "chat-service"
SERVICE_VERSION = "1.0.0"
SERVICE_DESCRIPTION = "Authenticated LLM chat with streamed responses and cached history"

# API Configuration
API_PREFIX = "/api"
CHAT_ROUTE_PREFIX = f"{API_PREFIX}/chat"
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20

# Health Check Configuration
HEALTH_CHECK_INTERVAL = 30  # seconds
SHUTDOWN_TIMEOUT = 30

# MongoDB Collection Names
CHATS_COLLECTION = "chats"

# Redis Key Patterns
CHAT_HISTORY_KEY = "chat_history:{user_id}:{generation}:{page}:{limit}"
CHAT_HISTORY_USER_PATTERN = "chat_history:{user_id}:*"
CHAT_HISTORY_GENERATION_KEY = "chat_history_generation:{user_id}"

# Prompt formatting (instruction-tuned models)
INSTRUCTION_PREFIX = "<s>[INST] "
INSTRUCTION_SUFFIX = " [/INST]"
TURN_SEPARATOR = "\n"

# Server-sent events
SSE_MEDIA_TYPE = "text/event-stream"
SSE_DONE_MARKER = "[DONE]"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ErrorCategory(str, Enum):
    """Error categorization for monitoring."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    INTERNAL = "internal"
    EXTERNAL = "external"
    TIMEOUT = "timeout"
    PERSISTENCE = "persistence"
    CACHE = "cache"


class TurnRole(str, Enum):
    """Roles of the logical turns in a prompt."""
    USER = "user"
    ASSISTANT = "assistant"


class RelayOutcome(str, Enum):
    """Terminal states of a streaming session."""
    COMPLETED = "completed"
    FAILED = "failed"
    DISCONNECTED = "disconnected"
