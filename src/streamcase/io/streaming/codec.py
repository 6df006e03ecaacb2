"""JSON codec for the line protocol.

orjson is a core dependency - no fallback to stdlib json. Payloads are
always compact and never contain a raw line terminator, so one JSON value
fits on one wire line.

Usage:
    >>> from streamcase.io.streaming.codec import encode_str, decode
    >>> encode_str({"key": "value"})
    '{"key":"value"}'
    >>> decode('{"key":"value"}')
    {'key': 'value'}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson

if TYPE_CHECKING:
    from streamcase.foundation.errors import JsonValue

_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_NON_STR_KEYS

DecodeError = orjson.JSONDecodeError


def encode(data: JsonValue) -> bytes:
    """Encode to compact JSON bytes."""
    return orjson.dumps(data, option=_OPTIONS)


def encode_str(data: JsonValue) -> str:
    """Encode to compact JSON string."""
    return orjson.dumps(data, option=_OPTIONS).decode()


def decode(data: bytes | str) -> JsonValue:
    """Decode from JSON bytes/str. Raises ``DecodeError`` on malformed input."""
    return orjson.loads(data)


def try_decode(data: bytes | str) -> tuple[bool, JsonValue]:
    """Decode without raising: ``(ok, value)``."""
    try:
        return True, orjson.loads(data)
    except orjson.JSONDecodeError:
        return False, None
