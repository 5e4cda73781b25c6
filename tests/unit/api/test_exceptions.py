"""
Unit tests for the exception hierarchy and JSON error bodies.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, field_validator

from chat_service.exceptions.base_exceptions import (
    AuthenticationError,
    PersistenceError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    setup_exception_handlers,
)


class TestErrorBodies:

    def test_rate_limit_body_and_header(self):
        error = RateLimitError(120, limit=100, window_seconds=900)

        body = error.to_dict()

        assert body["error"] == "Rate limit exceeded"
        assert body["message"] == "Please wait 120 seconds before trying again"
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert body["details"]["retry_after_seconds"] == 120
        assert error.headers["Retry-After"] == "120"

    def test_timeout_body(self):
        error = ProviderTimeoutError(timeout_seconds=60, provider="m")

        assert error.status_code == 504
        assert error.to_dict()["error"] == "Request timeout"
        assert error.to_dict()["message"] == "AI service took too long to respond"

    @pytest.mark.parametrize("provider_status, http_status", [
        (400, 400),
        (429, 429),
        (503, 503),
        (302, 502),
        (200, 502),
    ])
    def test_provider_status_passthrough(self, provider_status, http_status):
        assert ProviderError(provider_status).status_code == http_status

    def test_provider_error_message(self):
        assert ProviderError(503, "Model is loading").to_dict()["message"] == "Model is loading"
        assert ProviderError(500).to_dict()["message"] == "Provider returned status 500"
        assert ProviderError(500, {"error": "x"}).to_dict()["error"] == "AI service error"

    def test_authentication_error_challenge(self):
        error = AuthenticationError("Invalid or expired token")

        assert error.status_code == 401
        assert error.headers == {"WWW-Authenticate": "Bearer"}


class EchoPayload(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v


@pytest.fixture
def error_client():
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/rate-limited")
    async def rate_limited():
        raise RateLimitError(30)

    @app.get("/store-down")
    async def store_down():
        raise PersistenceError("connection refused", operation="find_by_user")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret internals")

    @app.post("/echo")
    async def echo(payload: EchoPayload):
        return {"message": payload.message}

    return TestClient(app, raise_server_exceptions=False)


class TestExceptionHandlers:

    def test_chat_service_exception_rendered(self, error_client):
        response = error_client.get("/rate-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        assert response.json()["error"] == "Rate limit exceeded"

    def test_persistence_error_is_500(self, error_client):
        response = error_client.get("/store-down")

        assert response.status_code == 500
        assert response.json()["code"] == "PERSISTENCE_ERROR"

    def test_unknown_route_is_json_not_found(self, error_client):
        response = error_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_unexpected_exception_hides_details(self, error_client):
        response = error_client.get("/crash")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal Server Error"
        assert body["message"] == "Something went wrong"
        assert "error_id" in body

    def test_request_validation_rendered_as_validation_error(self, error_client):
        response = error_client.post("/echo", json={"message": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["message"] == "Message cannot be empty"
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "body.message"
        assert body["details"]["validation_errors"][0]["type"] == "value_error"
