"""Shared fixtures: an application wired to in-memory collaborators."""

import os
from typing import Dict

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import pytest
from fastapi.testclient import TestClient

from chat_service.config.settings import Environment, Settings
from chat_service.main import create_app
from chat_service.services.rate_governor import RateGovernor
from chat_service.services.service_container import ServiceContainer
from chat_service.utils.metrics import MetricsCollector
from tests.fakes import FakeCache, FakeChatStore, FakeInferenceTarget

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT=Environment.TESTING,
        JWT_SECRET_KEY=TEST_SECRET,
        HUGGINGFACE_API_KEY="hf_test_key",
        FRONTEND_URL="http://localhost:3000",
    )


@pytest.fixture
def store() -> FakeChatStore:
    return FakeChatStore()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def primary() -> FakeInferenceTarget:
    return FakeInferenceTarget("primary-model", fragments=["Hi", " there"])


@pytest.fixture
def fallback() -> FakeInferenceTarget:
    return FakeInferenceTarget("fallback-model", fragments=["ok"])


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def governor() -> RateGovernor:
    return RateGovernor(max_requests=100, window_seconds=900)


@pytest.fixture
def container(settings, store, cache, primary, fallback, metrics, governor) -> ServiceContainer:
    return ServiceContainer(
        settings=settings,
        store=store,
        cache=cache,
        primary=primary,
        fallback=fallback,
        metrics=metrics,
        governor=governor,
    )


@pytest.fixture
def app(container, settings):
    return create_app(container=container, settings=settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers(container):
    """Build Authorization headers for a user id."""
    def _headers(user_id: str = "user-1") -> Dict[str, str]:
        return {"Authorization": f"Bearer {container.identity.issue_token(user_id)}"}
    return _headers
