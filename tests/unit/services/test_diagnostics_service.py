"""
Unit tests for DiagnosticsService.
"""

import pytest

from chat_service.exceptions.base_exceptions import ProviderError
from chat_service.services.diagnostics_service import DiagnosticsService


@pytest.fixture
def diagnostics(settings, store, cache, primary, fallback):
    return DiagnosticsService(settings, store, cache, primary, fallback)


class TestDiagnosticsService:

    @pytest.mark.asyncio
    async def test_all_dependencies_reachable(self, diagnostics, settings, primary, fallback):
        report = await diagnostics.report()

        assert report["mongodb"] == {"connected": True, "error": None}
        assert report["redis"] == {"connected": True, "error": None}
        assert report["huggingface"] == {
            "connected": True,
            "error": None,
            "url": primary.url,
            "fallbackUrl": fallback.url,
        }
        assert report["environment"] == "testing"
        assert report["frontendUrl"] == settings.FRONTEND_URL
        assert report["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_failures_are_reported_not_raised(self, diagnostics, store, cache, primary):
        store.ping_error = ConnectionError("mongo unreachable")
        cache.ping_error = ConnectionError()
        primary.probe_error = ProviderError(401, "Invalid credentials")

        report = await diagnostics.report()

        assert report["mongodb"] == {"connected": False, "error": "mongo unreachable"}
        assert report["redis"] == {"connected": False, "error": "ConnectionError"}
        assert report["huggingface"]["connected"] is False
        assert report["huggingface"]["error"] == "Invalid credentials"
