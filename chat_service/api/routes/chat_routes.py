"""
Chat API Routes
Chat submission with streamed responses, paginated history and the
environment diagnostics probe.
"""

import asyncio
from typing import Annotated, Any, AsyncIterator, Dict

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
import structlog

from chat_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from chat_service.api.validators.chat_validators import ChatHistoryResponse, ChatRequest
from chat_service.config.constants import (
    CHAT_ROUTE_PREFIX,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    SSE_HEADERS,
    SSE_MEDIA_TYPE,
)
from chat_service.dependencies import get_chat_service, get_diagnostics_service, get_history_service
from chat_service.services.chat_history_service import ChatHistoryService
from chat_service.services.chat_service import ChatService
from chat_service.services.diagnostics_service import DiagnosticsService
from chat_service.services.stream_relay import QueueSink

logger = structlog.get_logger(__name__)

router = APIRouter(prefix=CHAT_ROUTE_PREFIX, tags=["chat"])


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Send a chat message",
    description="Stream the model's response as server-sent events",
    response_class=StreamingResponse
)
async def submit_chat(
        request: ChatRequest,
        auth_context: Annotated[AuthContext, Depends(get_auth_context)],
        chat_service: Annotated[ChatService, Depends(get_chat_service)]
) -> StreamingResponse:
    """
    Submit a chat message

    The stream is opened before the response starts, so admission, history
    and provider failures are returned as JSON errors. Once streaming has
    begun, failures are reported in-band as ``{"error": ...}`` frames.

    Raises:
        400: Invalid message
        401: Authentication failed
        429: Rate limit exceeded
        504: AI service timeout
        5xx/4xx: AI service error with the provider's status
    """
    user_id = auth_context.user_id
    stream = await chat_service.open_stream(user_id, request.message)

    sink = QueueSink()
    relay_task = asyncio.create_task(chat_service.relay(stream, sink, user_id, request.message))
    relay_task.add_done_callback(_log_relay_failure)

    async def event_stream() -> AsyncIterator[str]:
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            if not relay_task.done():
                sink.disconnect()
                relay_task.cancel()

    return StreamingResponse(event_stream(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)


@router.get(
    "/history",
    response_model=ChatHistoryResponse,
    summary="Get chat history",
    description="Paginated chat history for the authenticated user, newest first"
)
async def get_chat_history(
        auth_context: Annotated[AuthContext, Depends(get_auth_context)],
        history_service: Annotated[ChatHistoryService, Depends(get_history_service)],
        page: int = Query(DEFAULT_PAGE, ge=1, description="Page number"),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, description="Turns per page")
) -> Dict[str, Any]:
    """
    Get chat history

    Raises:
        401: Authentication failed
        500: Chat store unavailable
    """
    return await history_service.get_history(auth_context.user_id, page=page, page_size=limit)


@router.get(
    "/test-env",
    summary="Environment diagnostics",
    description="Connectivity of the chat store, cache and AI service"
)
async def test_environment(
        diagnostics: Annotated[DiagnosticsService, Depends(get_diagnostics_service)]
) -> Dict[str, Any]:
    return await diagnostics.report()


def _log_relay_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Chat relay crashed", error=str(error), error_type=type(error).__name__)
