"""
Logging Middleware
Request id propagation, timing headers and structured access logging.

Implemented as plain ASGI so that streamed responses pass through untouched
and client disconnects reach the endpoint.
"""

import time
from typing import Optional, Set
from uuid import uuid4

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"


class RequestContextMiddleware:
    """Binds a request id into the log context and reports processing time"""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[Set[str]] = None):
        self.app = app
        self.exclude_paths = exclude_paths or {"/health", "/metrics"}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or str(uuid4())
        path = scope.get("path", "")
        method = scope.get("method", "")
        start_time = time.perf_counter()
        status_code = 500

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_with_headers(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                headers[PROCESS_TIME_HEADER] = str(round((time.perf_counter() - start_time) * 1000, 2))
            await send(message)

        try:
            await self.app(scope, receive, send_with_headers)
        finally:
            if path not in self.exclude_paths:
                logger.info(
                    "Request completed",
                    method=method,
                    path=path,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2)
                )

    @staticmethod
    def _incoming_request_id(scope: Scope) -> Optional[str]:
        for name, value in scope.get("headers", []):
            if name.decode("latin-1").lower() == REQUEST_ID_HEADER.lower():
                return value.decode("latin-1")
        return None
