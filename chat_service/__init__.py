"""
Chat Service - streaming LLM chat backend.

This package accepts authenticated chat messages, streams model output
back as server-sent events, and keeps a cached, paginated chat history.
"""

__version__ = "1.0.0"
__description__ = "Authenticated LLM chat with streamed responses and cached history"

# Package metadata
__title__ = "chat-service"

# Semantic version components
VERSION_INFO = (1, 0, 0)

# Export commonly used components for convenience
from chat_service.config.settings import get_settings
from chat_service.utils.logger import get_logger

__all__ = [
    "__version__",
    "__description__",
    "VERSION_INFO",
    "get_settings",
    "get_logger",
]
