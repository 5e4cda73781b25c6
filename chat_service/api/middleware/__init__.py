"""
API middleware for Chat Service.
"""

from chat_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from chat_service.api.middleware.logging_middleware import RequestContextMiddleware

__all__ = [
    "AuthContext",
    "get_auth_context",
    "RequestContextMiddleware",
]
