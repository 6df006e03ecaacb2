"""Foundation - Core building blocks for streamcase.

Contains: error handling, configuration, identifiers, testing.
"""

from __future__ import annotations

__all__ = [
    # Errors
    "ErrorCode", "StreamError", "StreamException", "classify_exception",
    "TransportError", "UnsupportedFunctionalityError",
    "ClosedStreamError", "ConfigurationError", "SessionBusyError",
    "JsonDict", "JsonMapping", "JsonPrimitive", "JsonValue",
    # Config
    "StreamcaseSettings", "get_settings", "clear_settings_cache",
    "ChatSettings", "HttpSettings", "LoggingSettings", "StreamableSettings",
    # Ids
    "generate_id", "IdGenerator",
    # Testing
    "MockTransport", "MockLanguageModel",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("ErrorCode", "StreamError", "StreamException", "classify_exception",
                "TransportError", "UnsupportedFunctionalityError",
                "ClosedStreamError", "ConfigurationError", "SessionBusyError",
                "JsonDict", "JsonMapping", "JsonPrimitive", "JsonValue"):
        from . import errors
        return getattr(errors, name)

    if name in ("StreamcaseSettings", "get_settings", "clear_settings_cache",
                "ChatSettings", "HttpSettings", "LoggingSettings", "StreamableSettings"):
        from . import config
        return getattr(config, name)

    if name in ("generate_id", "IdGenerator"):
        from . import ids
        return getattr(ids, name)

    if name in ("MockTransport", "MockLanguageModel"):
        from . import testing
        return getattr(testing, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
