"""
Wire formatting helpers.

Server-sent event frames for the chat stream, wire timestamps and log
truncation.
"""

import json
from datetime import datetime
from typing import Any

from chat_service.config.constants import SSE_DONE_MARKER


def format_sse(data: Any) -> str:
    """
    Encode a payload as a single server-sent event frame.

    Args:
        data: JSON-serializable payload, or a preformatted string marker

    Returns:
        Frame of the form ``data: <payload>\\n\\n``
    """
    if isinstance(data, str):
        body = data
    else:
        body = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return f"data: {body}\n\n"


def delta_frame(content: str) -> str:
    """Frame carrying one generated fragment."""
    return format_sse({"choices": [{"delta": {"content": content}}]})


def done_frame() -> str:
    """Terminal frame closing a successful stream."""
    return format_sse(SSE_DONE_MARKER)


def error_frame(message: str) -> str:
    """In-band error frame for failures after streaming began."""
    return format_sse({"error": message})


def format_timestamp(value: datetime) -> str:
    """ISO-8601 timestamp with millisecond precision and a Z suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def truncate(text: str, limit: int = 200) -> str:
    """Shorten text for log fields."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


__all__ = [
    "format_sse",
    "delta_frame",
    "done_frame",
    "error_frame",
    "format_timestamp",
    "truncate",
]
