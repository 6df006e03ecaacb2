"""Standardized error handling for streams and chat sessions.

Two families live here:

- Runtime faults (transport drops, provider failures) are described by a
  ``StreamError`` model that callers can inspect and display, and raised as
  ``StreamException`` subclasses where an exception is needed.
- Programming errors (writing to a closed cell, conflicting configuration,
  mutating a busy session) are plain exceptions that are never caught
  internally.
"""

from __future__ import annotations

import traceback
from enum import StrEnum
from functools import lru_cache
from typing import Annotated, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


class ErrorCode(StrEnum):
    """Standard error codes for stream and session failures."""
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    HTTP_STATUS = "HTTP_STATUS"
    TIMEOUT = "TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    STREAM_FAILED = "STREAM_FAILED"
    PARSE_ERROR = "PARSE_ERROR"
    UNSUPPORTED = "UNSUPPORTED"
    UNKNOWN = "UNKNOWN"


# Pattern -> code mapping, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "connect": ErrorCode.TRANSPORT_ERROR,
    "network": ErrorCode.TRANSPORT_ERROR,
    "transport": ErrorCode.TRANSPORT_ERROR,
    "protocol": ErrorCode.TRANSPORT_ERROR,
    "status": ErrorCode.HTTP_STATUS,
    "parse": ErrorCode.PARSE_ERROR,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "unsupported": ErrorCode.UNSUPPORTED,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code via pattern matching on name/message."""
    if isinstance(exc, StreamException):
        return exc.error.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class StreamError(BaseModel):
    """Structured, displayable description of a failed request cycle.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code for programmatic handling
        recoverable: Whether re-issuing the request might succeed
        details: Optional detailed information (e.g., stack trace)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Stream Error",
            "description": "Structured error from a streamed request",
            "examples": [{
                "message": "Connection reset by peer",
                "code": "TRANSPORT_ERROR",
                "recoverable": True,
            }],
        },
    )

    message: Annotated[str, Field(
        min_length=1,
        description="Human-readable error message",
    )]
    code: ErrorCode = Field(
        default=ErrorCode.UNKNOWN,
        description="Machine-readable error classification",
    )
    recoverable: bool = Field(
        default=True,
        description="Whether retry might succeed",
    )
    details: str | None = Field(
        default=None,
        description="Optional detailed error info (e.g., stack trace)",
    )

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | BaseException) -> str:
        """Accept Exception objects and extract message."""
        if isinstance(v, BaseException):
            return str(v) or type(v).__name__
        return v or "unknown error"

    @computed_field
    @property
    def is_retryable(self) -> bool:
        """Whether this error is typically retryable (network, timeouts)."""
        return self.code in _RETRYABLE_CODES

    @classmethod
    def create(
        cls,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        *,
        recoverable: bool = True,
        details: str | None = None,
    ) -> Self:
        """Factory method for construction."""
        return cls(message=message, code=code, recoverable=recoverable, details=details)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        context: str = "",
        *,
        recoverable: bool = True,
        include_trace: bool = False,
    ) -> Self:
        """Create from exception with auto-classification."""
        if isinstance(exc, StreamException) and not context:
            return exc.error  # type: ignore[return-value]
        return cls(
            message=f"{context}: {exc}" if context else (str(exc) or type(exc).__name__),
            code=classify_exception(exc),
            recoverable=recoverable,
            details="".join(traceback.format_exception(exc)) if include_trace else None,
        )

    def render(self) -> str:
        """Format error for display."""
        parts = [f"[{self.code}] {self.message}"]
        if self.details:
            parts.append(f"\n{self.details}")
        return "".join(parts)

    __str__ = render


_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.TRANSPORT_ERROR,
    ErrorCode.TIMEOUT,
})


class StreamException(Exception):
    """Exception wrapping a StreamError for raising."""

    __slots__ = ("error",)

    def __init__(self, error: StreamError) -> None:
        self.error = error
        super().__init__(error.message)

    @classmethod
    def create(cls, message: str, code: ErrorCode = ErrorCode.UNKNOWN, *, recoverable: bool = True) -> Self:
        return cls(StreamError(message=message, code=code, recoverable=recoverable))


class TransportError(StreamException):
    """Connection drop, network failure or non-2xx response while streaming."""

    __slots__ = ("status_code",)

    def __init__(self, error: StreamError, status_code: int | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code

    @classmethod
    def from_status(cls, status_code: int, body: str = "") -> TransportError:
        message = body.strip() or f"Request failed with status {status_code}"
        return cls(
            StreamError(message=message, code=ErrorCode.HTTP_STATUS, recoverable=status_code >= 500),
            status_code=status_code,
        )


class UnsupportedFunctionalityError(StreamException):
    """A provider was asked for a setting or mode it does not support."""

    __slots__ = ("functionality",)

    def __init__(self, functionality: str) -> None:
        self.functionality = functionality
        super().__init__(StreamError(
            message=f"'{functionality}' functionality not supported.",
            code=ErrorCode.UNSUPPORTED,
            recoverable=False,
        ))


# ─────────────────────────────────────────────────────────────────────────────
# Programming errors
# ─────────────────────────────────────────────────────────────────────────────

class ClosedStreamError(RuntimeError):
    """An operation was attempted on a streamable cell that is already closed."""

    def __init__(self, method: str, kind: str = "Value") -> None:
        super().__init__(f"{method}: {kind} stream is already closed.")
        self.method = method


class ConfigurationError(ValueError):
    """Mutually exclusive or otherwise invalid options were supplied."""


class SessionBusyError(RuntimeError):
    """Conversation state was mutated while a request cycle was in flight."""
