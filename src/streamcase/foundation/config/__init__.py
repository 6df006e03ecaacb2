"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    ChatSettings,
    HttpSettings,
    LoggingSettings,
    StreamableSettings,
    StreamcaseSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ChatSettings",
    "HttpSettings",
    "LoggingSettings",
    "StreamableSettings",
    "StreamcaseSettings",
    "clear_settings_cache",
    "get_settings",
]
