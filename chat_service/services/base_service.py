"""
Base Service Class

Common logging helpers shared by the chat pipeline services.
"""

from abc import ABC
from typing import Optional

import structlog


class BaseService(ABC):
    """Abstract base class for all services"""

    def __init__(self):
        self.logger = structlog.get_logger(self.__class__.__name__)
        self.service_name = self.__class__.__name__

    def log_operation(
            self,
            operation: str,
            user_id: Optional[str] = None,
            **kwargs
    ) -> None:
        """Log service operation with standard fields"""
        log_data = {
            "service": self.service_name,
            "operation": operation,
            **kwargs
        }

        if user_id:
            log_data["user_id"] = user_id

        self.logger.info("Service operation", **log_data)
