"""Unified error handling for streamcase.

- ErrorCode: Standard error codes for stream failures
- StreamError/StreamException: Structured errors and exceptions
- TransportError/UnsupportedFunctionalityError: collaborator faults
- ClosedStreamError/ConfigurationError/SessionBusyError: programming errors
"""

from .errors import (
    ClosedStreamError,
    ConfigurationError,
    ErrorCode,
    SessionBusyError,
    StreamError,
    StreamException,
    TransportError,
    UnsupportedFunctionalityError,
    classify_exception,
)
from .types import JsonDict, JsonMapping, JsonPrimitive, JsonValue

__all__ = [
    "ErrorCode", "StreamError", "StreamException", "classify_exception",
    "TransportError", "UnsupportedFunctionalityError",
    "ClosedStreamError", "ConfigurationError", "SessionBusyError",
    "JsonDict", "JsonMapping", "JsonPrimitive", "JsonValue",
]
