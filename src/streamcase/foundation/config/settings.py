"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from streamcase.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.streamable.warning_time
    15.0
    >>> settings.chat.max_automatic_roundtrips
    0

    # Or with environment variables:
    # STREAMCASE_STREAMABLE_WARNING_TIME=5
    # STREAMCASE_CHAT_MAX_AUTOMATIC_ROUNDTRIPS=2
    # STREAMCASE_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import (
    Field,
    NonNegativeInt,
    PositiveFloat,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMCASE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"


class StreamableSettings(BaseSettings):
    """Incremental value/UI cell configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMCASE_STREAMABLE_",
        extra="ignore",
    )

    warning_time: PositiveFloat = Field(
        default=15.0,
        description="Seconds of inactivity before an open cell logs a warning",
    )
    warn_unclosed: bool | None = Field(
        default=None,
        description="Force the idle warning on/off (None = development only)",
    )


class ChatSettings(BaseSettings):
    """Chat session defaults."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMCASE_CHAT_",
        extra="ignore",
    )

    api: str = Field(default="/api/chat", description="Endpoint used by the HTTP transport")
    max_automatic_roundtrips: NonNegativeInt = Field(
        default=0,
        description="Bound on automatic tool-result roundtrips (0 disables)",
    )
    stream_mode: Literal["stream-data", "text"] = "stream-data"
    send_extra_message_fields: bool = False


class HttpSettings(BaseSettings):
    """HTTP transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMCASE_HTTP_",
        extra="ignore",
    )

    base_url: str = ""
    timeout: PositiveFloat = Field(default=60.0, description="Default request timeout")
    verify_ssl: bool = True
    follow_redirects: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str = "streamcase-http/1.0"


class StreamcaseSettings(BaseSettings):
    """Root settings for streamcase.

    Loads configuration from environment variables with STREAMCASE_ prefix.
    Supports nested configuration and .env files.
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMCASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")
    environment: Literal["development", "staging", "production"] = "development"

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    streamable: StreamableSettings = Field(default_factory=StreamableSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        """Normalize environment name to lowercase."""
        return v.lower() if isinstance(v, str) else v

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @computed_field
    @property
    def warn_unclosed_streams(self) -> bool:
        """Whether open cells should emit the idle warning."""
        flag = self.streamable.warn_unclosed
        return self.is_development or self.debug if flag is None else flag


@lru_cache(maxsize=1)
def get_settings() -> StreamcaseSettings:
    """Get the global settings instance (cached)."""
    return StreamcaseSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
