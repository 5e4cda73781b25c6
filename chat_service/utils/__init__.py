"""
Utility package for Chat Service.

Logging setup, wire formatting helpers and metrics collection.
"""

from chat_service.utils.logger import setup_logging, get_logger
from chat_service.utils.metrics import MetricsCollector

__all__ = [
    "setup_logging",
    "get_logger",
    "MetricsCollector",
]
