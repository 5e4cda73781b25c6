"""
Custom exceptions package for Chat Service.

This package provides the error taxonomy of the chat pipeline and the
FastAPI handlers that render pre-stream failures as JSON.
"""

from chat_service.exceptions.base_exceptions import (
    ChatServiceException,
    ValidationError,
    AuthenticationError,
    RateLimitError,
    ProviderError,
    ProviderTimeoutError,
    PersistenceError,
    CacheError,
    setup_exception_handlers,
)

# Re-export all custom exceptions
__all__ = [
    # Base exception classes
    "ChatServiceException",
    "ValidationError",
    "AuthenticationError",
    "RateLimitError",
    "ProviderError",
    "ProviderTimeoutError",
    "PersistenceError",
    "CacheError",

    # Exception handling setup
    "setup_exception_handlers",
]
