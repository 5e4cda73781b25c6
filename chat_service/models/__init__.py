"""
Data models for Chat Service.
"""

from chat_service.models.chat_turn import ChatTurn

__all__ = ["ChatTurn"]
