"""
Base exception classes and error handling for Chat Service.

This module provides the foundation for all custom exceptions
and centralized error handling throughout the application. Errors
raised before a chat stream starts are rendered as JSON bodies of the
form ``{"error": ..., "message": ...}``; errors raised after streaming
begins are reported in-band by the stream relay instead.
"""

import uuid
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from chat_service.config.constants import ErrorCategory
from chat_service.config.settings import get_settings
from chat_service.utils.logger import get_logger

# Initialize logger
logger = get_logger(__name__)

# pydantic prefixes messages raised from field validators
VALUE_ERROR_PREFIX = "Value error, "


class ChatServiceException(Exception):
    """
    Base exception class for all Chat Service custom exceptions.

    This provides a consistent interface for error handling with
    structured error information and logging integration.
    """

    title = "Server error"

    def __init__(
            self,
            message: str,
            error_code: str = "INTERNAL_ERROR",
            status_code: int = 500,
            details: Optional[Dict[str, Any]] = None,
            category: ErrorCategory = ErrorCategory.INTERNAL,
            user_message: Optional[str] = None,
            user_id: Optional[str] = None,
            retryable: bool = False,
            caused_by: Optional[Exception] = None,
            headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize Chat Service exception.

        Args:
            message: Internal error message for logging
            error_code: Machine-readable error code
            status_code: HTTP status code
            details: Additional error details
            category: Error category for monitoring
            user_message: User-facing error message
            user_id: User ID if available
            retryable: Whether the operation can be retried
            caused_by: Original exception that caused this error
            headers: Extra HTTP headers for the error response
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.category = category
        self.user_message = user_message or message
        self.user_id = user_id
        self.retryable = retryable
        self.caused_by = caused_by
        self.headers = headers or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to the JSON error body.

        Returns:
            Dictionary with ``error`` (short title), ``message`` and ``code``
        """
        error_dict: Dict[str, Any] = {
            "error": self.title,
            "message": self.user_message,
            "code": self.error_code,
        }

        if self.details:
            error_dict["details"] = self.details

        return error_dict

    def log_error(self, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
        """
        Log the error with appropriate level and context.

        Args:
            logger: Logger instance to use
        """
        if logger is None:
            logger = get_logger(__name__)

        log_data = {
            "error_code": self.error_code,
            "error_category": self.category.value,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }

        if self.user_id:
            log_data["user_id"] = self.user_id

        if self.details:
            log_data["details"] = self.details

        if self.caused_by:
            log_data["caused_by"] = str(self.caused_by)
            log_data["caused_by_type"] = type(self.caused_by).__name__

        if self.status_code >= 500:
            logger.error(self.message, **log_data)
        elif self.status_code >= 400:
            logger.warning(self.message, **log_data)
        else:
            logger.info(self.message, **log_data)


class ValidationError(ChatServiceException):
    """Exception for request validation errors."""

    title = "Validation failed"

    def __init__(
            self,
            message: str = "Request validation failed",
            field: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            category=ErrorCategory.VALIDATION,
            details=details,
            **kwargs
        )


class AuthenticationError(ChatServiceException):
    """Exception for missing or invalid identity."""

    title = "Authentication failed"

    def __init__(
            self,
            message: str = "Authentication failed",
            **kwargs
    ):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_FAILED",
            status_code=401,
            category=ErrorCategory.AUTHENTICATION,
            headers={"WWW-Authenticate": "Bearer"},
            **kwargs
        )


class RateLimitError(ChatServiceException):
    """Exception for chat admission denials."""

    title = "Rate limit exceeded"

    def __init__(
            self,
            retry_after_seconds: int,
            limit: Optional[int] = None,
            window_seconds: Optional[float] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        details["retry_after_seconds"] = retry_after_seconds
        if limit:
            details["limit"] = limit
        if window_seconds:
            details["window_seconds"] = window_seconds

        self.retry_after_seconds = retry_after_seconds

        super().__init__(
            message=f"Please wait {retry_after_seconds} seconds before trying again",
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            category=ErrorCategory.RATE_LIMIT,
            details=details,
            retryable=True,
            headers={"Retry-After": str(retry_after_seconds)},
            **kwargs
        )


class ProviderError(ChatServiceException):
    """
    Inference provider answered with a non-2xx status or an unusable response.

    The provider's own status code is used as the HTTP status when the error
    happens before any content was streamed.
    """

    title = "AI service error"

    def __init__(
            self,
            status_code: int,
            body: Any = None,
            provider: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider

        self.provider = provider
        self.body = body
        self.provider_status = status_code

        http_status = status_code if 400 <= status_code <= 599 else 502
        message = body if isinstance(body, str) and body else f"Provider returned status {status_code}"

        super().__init__(
            message=message,
            error_code="PROVIDER_ERROR",
            status_code=http_status,
            category=ErrorCategory.EXTERNAL,
            details=details,
            retryable=status_code >= 500 or status_code == 429,
            **kwargs
        )


class ProviderTimeoutError(ChatServiceException):
    """Inference provider did not respond within the configured bound."""

    title = "Request timeout"

    def __init__(
            self,
            timeout_seconds: Optional[float] = None,
            provider: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        if provider:
            details["provider"] = provider

        self.provider = provider

        super().__init__(
            message="AI service took too long to respond",
            error_code="TIMEOUT_ERROR",
            status_code=504,
            category=ErrorCategory.TIMEOUT,
            details=details,
            retryable=True,
            **kwargs
        )


class PersistenceError(ChatServiceException):
    """Chat store read or write failure."""

    title = "Internal server error"

    def __init__(
            self,
            message: str = "Chat store operation failed",
            operation: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            status_code=500,
            category=ErrorCategory.PERSISTENCE,
            details=details,
            retryable=True,
            **kwargs
        )


class CacheError(ChatServiceException):
    """
    Cache read, write or delete failure.

    Never surfaced to callers: every consumer degrades to a store read.
    """

    title = "Cache error"

    def __init__(
            self,
            message: str = "Cache operation failed",
            operation: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code="CACHE_ERROR",
            status_code=500,
            category=ErrorCategory.CACHE,
            details=details,
            **kwargs
        )


def _error_body(title: str, message: Any, code: str) -> Dict[str, Any]:
    return {"error": title, "message": message, "code": code}


async def chat_service_exception_handler(
        request: Request,
        exc: ChatServiceException
) -> JSONResponse:
    """
    Handler for Chat Service custom exceptions.

    Args:
        request: FastAPI request object
        exc: Chat Service exception instance

    Returns:
        JSON response with error details
    """
    exc.log_error()

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers or None
    )


async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handler for standard HTTP exceptions (404, 405, ...).

    Args:
        request: FastAPI request object
        exc: HTTP exception instance

    Returns:
        JSON response with error details
    """
    titles = {
        401: "Authentication failed",
        404: "Not Found",
        405: "Method Not Allowed",
    }

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url.path),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(titles.get(exc.status_code, "HTTP error"), exc.detail, f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
) -> JSONResponse:
    """
    Handler for request validation errors.

    Args:
        request: FastAPI request object
        exc: Request validation error instance

    Returns:
        JSON response with validation error details
    """
    validation_errors = []
    for error in exc.errors():
        message = error["msg"]
        if message.startswith(VALUE_ERROR_PREFIX):
            message = message[len(VALUE_ERROR_PREFIX):]
        validation_errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": message,
            "type": error["type"],
        })

    logger.warning(
        "Request validation failed",
        validation_errors=validation_errors,
        path=str(request.url.path),
        method=request.method
    )

    first = validation_errors[0] if validation_errors else {}
    error = ValidationError(
        first.get("message", "Request validation failed"),
        field=first.get("field"),
        details={"validation_errors": validation_errors}
    )

    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def generic_exception_handler(
        request: Request,
        exc: Exception
) -> JSONResponse:
    """
    Handler for unexpected exceptions.

    Args:
        request: FastAPI request object
        exc: Generic exception instance

    Returns:
        JSON response with generic error message
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unexpected exception occurred",
        error_id=error_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=str(request.url.path),
        method=request.method,
        exc_info=exc
    )

    message = str(exc) if get_settings().DEBUG else "Something went wrong"
    body = _error_body("Internal Server Error", message, "INTERNAL_SERVER_ERROR")
    body["error_id"] = error_id

    return JSONResponse(status_code=500, content=body)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Setup exception handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(ChatServiceException, chat_service_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Generic exception handler (catch-all)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Exception handlers configured")


__all__ = [
    "ChatServiceException",
    "ValidationError",
    "AuthenticationError",
    "RateLimitError",
    "ProviderError",
    "ProviderTimeoutError",
    "PersistenceError",
    "CacheError",
    "setup_exception_handlers",
    "chat_service_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "generic_exception_handler",
]
