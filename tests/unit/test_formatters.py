"""
Unit tests for wire formatting helpers.
"""

from datetime import datetime, timezone

from chat_service.utils.formatters import (
    delta_frame,
    done_frame,
    error_frame,
    format_sse,
    format_timestamp,
    truncate,
)


class TestSseFrames:

    def test_delta_frame(self):
        assert delta_frame("Hi") == 'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n'

    def test_delta_frame_keeps_unicode(self):
        assert "héllo ✓" in delta_frame("héllo ✓")

    def test_done_frame(self):
        assert done_frame() == "data: [DONE]\n\n"

    def test_error_frame(self):
        assert error_frame("Stream error") == 'data: {"error":"Stream error"}\n\n'

    def test_format_sse_passes_strings_through(self):
        assert format_sse("raw") == "data: raw\n\n"


class TestTimestamps:

    def test_millisecond_precision_with_z_suffix(self):
        value = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)

        assert format_timestamp(value) == "2024-01-02T03:04:05.678Z"


def test_truncate():
    assert truncate("short") == "short"
    assert truncate("x" * 300, limit=10) == "x" * 10 + "..."
