"""
Configuration package for Chat Service.

This package provides centralized configuration management with
environment-based settings, validation, and constants.
"""

from chat_service.config.settings import get_settings, reload_settings, Settings
from chat_service.config.constants import (
    SERVICE_NAME,
    SERVICE_VERSION,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    HEALTH_CHECK_INTERVAL,
)

__all__ = [
    "get_settings",
    "reload_settings",
    "Settings",
    "SERVICE_NAME",
    "SERVICE_VERSION",
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_SIZE",
    "HEALTH_CHECK_INTERVAL",
]
