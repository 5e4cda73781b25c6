"""
API routers for Chat Service.
"""

from chat_service.api.routes.chat_routes import router as chat_router
from chat_service.api.routes.health_routes import router as health_router

__all__ = ["chat_router", "health_router"]
