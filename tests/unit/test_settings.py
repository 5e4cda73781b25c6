"""
Unit tests for Settings.
"""

import pytest
from pydantic import ValidationError

from chat_service.config.settings import Environment, Settings

SECRET = "settings-test-secret-key-long-enough-for-jwt"


class TestSettings:

    def test_defaults(self):
        settings = Settings(JWT_SECRET_KEY=SECRET)

        assert settings.RATE_LIMIT_MAX_REQUESTS == 100
        assert settings.rate_limit_window_seconds == 900.0
        assert settings.CHAT_HISTORY_CACHE_TTL == 300
        assert settings.CONTEXT_WINDOW_TURNS == 5
        assert settings.MAX_NEW_TOKENS == 1000
        assert settings.TEMPERATURE == 0.7
        assert settings.TOP_P == 0.95

    def test_model_url_joins_base_and_model(self):
        settings = Settings(JWT_SECRET_KEY=SECRET, HUGGINGFACE_API_URL="https://hf.test/models/")

        assert settings.model_url("org/model") == "https://hf.test/models/org/model"

    def test_frontend_url_overrides_allowed_origins(self):
        settings = Settings(JWT_SECRET_KEY=SECRET, FRONTEND_URL="https://app.example.com")

        assert settings.cors_origins() == ["https://app.example.com"]

    def test_production_rejects_wildcard_cors(self):
        with pytest.raises(ValidationError):
            Settings(JWT_SECRET_KEY=SECRET, ENVIRONMENT=Environment.PRODUCTION)

    def test_production_with_frontend_url(self):
        settings = Settings(
            JWT_SECRET_KEY=SECRET,
            ENVIRONMENT=Environment.PRODUCTION,
            FRONTEND_URL="https://app.example.com",
        )

        assert settings.is_production()

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(JWT_SECRET_KEY="short")
