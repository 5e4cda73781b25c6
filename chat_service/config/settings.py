"""
Application configuration settings using Pydantic Settings.

This module provides centralized configuration management with
environment variable support, validation, and type safety.
"""

import secrets
from typing import List, Optional
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment options."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        validate_assignment=True,
        extra="ignore",
    )

    # Environment Configuration
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Server Configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # Logging Configuration
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="json",
        pattern=r"^(json|text)$",
        description="Log output format"
    )

    # MongoDB Configuration
    MONGODB_URI: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DATABASE: str = Field(
        default="chat_service",
        min_length=1,
        max_length=64,
        description="MongoDB database name"
    )
    MONGODB_MAX_CONNECTIONS: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="MongoDB maximum connections"
    )
    MONGODB_MIN_CONNECTIONS: int = Field(
        default=10,
        ge=0,
        le=100,
        description="MongoDB minimum connections"
    )
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="MongoDB server selection timeout in milliseconds"
    )

    # Redis Configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Redis maximum connections"
    )
    REDIS_SOCKET_TIMEOUT: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Redis socket timeout in seconds"
    )

    # Inference Provider Configuration
    HUGGINGFACE_API_KEY: Optional[str] = Field(
        default=None,
        description="Bearer token for the inference API"
    )
    HUGGINGFACE_API_URL: str = Field(
        default="https://api-inference.huggingface.co/models",
        description="Base URL of the inference API; the model id is appended"
    )
    PRIMARY_MODEL: str = Field(
        default="mistralai/Mistral-7B-Instruct-v0.2",
        min_length=1,
        description="Model served by the primary provider"
    )
    FALLBACK_MODEL: str = Field(
        default="meta-llama/Llama-2-7b-chat-hf",
        min_length=1,
        description="Model served by the fallback provider"
    )
    INFERENCE_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Read timeout for inference requests"
    )
    INFERENCE_CONNECT_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Connect timeout for inference requests"
    )
    MAX_NEW_TOKENS: int = Field(
        default=1000,
        ge=1,
        le=8192,
        description="Maximum generated tokens per response"
    )
    TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )
    TOP_P: float = Field(
        default=0.95,
        gt=0.0,
        le=1.0,
        description="Nucleus sampling threshold"
    )

    # Security Configuration
    JWT_SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        min_length=32,
        description="JWT signing secret key"
    )
    JWT_ALGORITHM: str = Field(
        default="HS256",
        pattern=r"^(HS256|HS384|HS512)$",
        description="JWT signing algorithm"
    )
    JWT_EXPIRE_MINUTES: int = Field(
        default=1440,
        ge=1,
        le=10080,  # 1 week
        description="JWT token expiration in minutes"
    )

    # CORS Configuration
    FRONTEND_URL: Optional[str] = Field(
        default=None,
        description="Frontend origin allowed by CORS"
    )
    ALLOWED_ORIGINS: List[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )

    # Rate Limiting Configuration
    RATE_LIMIT_WINDOW_MS: int = Field(
        default=900000,  # 15 minutes
        ge=1000,
        description="Chat admission window in milliseconds"
    )
    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=100,
        ge=1,
        description="Chat submissions allowed per user per window"
    )
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Interval of the background stale-entry sweep"
    )

    # Chat Configuration
    CHAT_HISTORY_CACHE_TTL: int = Field(
        default=300,
        ge=1,
        le=86400,
        description="Chat history page cache TTL in seconds"
    )
    CONTEXT_WINDOW_TURNS: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Stored turns included in each prompt"
    )
    MAX_MESSAGE_LENGTH: int = Field(
        default=4096,
        ge=1,
        description="Maximum characters in a chat message"
    )

    @field_validator("HUGGINGFACE_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the provider base URL."""
        return v.rstrip("/")

    @model_validator(mode='after')
    def validate_environment_consistency(self):
        """Validate environment-specific consistency."""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if self.DEBUG:
                raise ValueError("Debug mode should not be enabled in production")

            if "*" in self.cors_origins():
                raise ValueError("Wildcard CORS origins not allowed in production")

        if self.MONGODB_MIN_CONNECTIONS > self.MONGODB_MAX_CONNECTIONS:
            raise ValueError("MongoDB min connections cannot exceed max connections")

        return self

    def cors_origins(self) -> List[str]:
        """Origins allowed by CORS; FRONTEND_URL wins when set."""
        if self.FRONTEND_URL:
            return [self.FRONTEND_URL]
        return list(self.ALLOWED_ORIGINS)

    def model_url(self, model: str) -> str:
        """Full endpoint URL for a model id."""
        return f"{self.HUGGINGFACE_API_URL}/{model}"

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.RATE_LIMIT_WINDOW_MS / 1000.0

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton).

    Returns:
        Settings: Configured application settings instance

    Note:
        Settings are cached using functools.lru_cache to avoid
        re-parsing environment variables on every call.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Force reload of application settings.

    Returns:
        Settings: New settings instance
    """
    get_settings.cache_clear()
    return get_settings()
