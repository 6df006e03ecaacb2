"""Line protocol: one ``<prefix>:<json>\\n`` line per event.

Encoding is total for every ``StreamPart``. Decoding is best-effort and
non-fatal per line: an unknown prefix or a malformed payload drops that
line only, so one bad frame never aborts an otherwise healthy stream.

Example:
    >>> from streamcase.io.streaming import TextDelta, format_stream_part, ChunkDecoder
    >>> line = format_stream_part(TextDelta("Hel"))
    >>> line
    '0:"Hel"\\n'
    >>> decoder = ChunkDecoder()
    >>> decoder.feed(line.encode()[:3]), decoder.feed(line.encode()[3:])
    ([], [TextDelta(text='Hel')])
"""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Callable

from streamcase.foundation.errors import JsonValue
from streamcase.runtime.observability import get_logger

from .codec import encode_str, try_decode
from .parts import (
    AssistantMessage,
    DataItems,
    ErrorEvent,
    FunctionCallComplete,
    MessageAnnotation,
    Status,
    StreamPart,
    StreamPrefix,
    StreamStatus,
    TextDelta,
    ThreadId,
    ToolCallArgsDelta,
    ToolCallComplete,
    ToolCallStart,
)

log = get_logger("streamcase.protocol")


class _Malformed(Exception):
    """Payload does not match the shape its prefix requires."""


# ═══════════════════════════════════════════════════════════════════════════════
# Encoding
# ═══════════════════════════════════════════════════════════════════════════════

def _payload(part: StreamPart) -> tuple[StreamPrefix, JsonValue]:
    match part:
        case TextDelta(text=text):
            return StreamPrefix.TEXT, text
        case AssistantMessage(id=id_, role=role, content=content):
            return StreamPrefix.TEXT, {"id": id_, "role": role, "content": list(content)}
        case FunctionCallComplete(name=name, args=args):
            return StreamPrefix.FUNCTION_CALL, {"function_call": {"name": name, "arguments": encode_str(args)}}
        case DataItems(items=items):
            return StreamPrefix.DATA, list(items)
        case Status(status=status, information=information):
            body: dict[str, JsonValue] = {"status": str(status)}
            if information is not None:
                body["information"] = information
            return StreamPrefix.STATUS, body
        case ErrorEvent(message=message):
            return StreamPrefix.STATUS, message
        case ThreadId(thread_id=thread_id):
            return StreamPrefix.THREAD_ID, thread_id
        case ToolCallComplete(tool_call_id=call_id, tool_name=name, args=args):
            return StreamPrefix.TOOL_CALLS, {"tool_calls": [{
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": encode_str(args)},
            }]}
        case MessageAnnotation(value=value):
            return StreamPrefix.MESSAGE_ANNOTATIONS, [value]
        case ToolCallStart(tool_call_id=call_id, tool_name=name):
            return StreamPrefix.TOOL_CALL_DELTA, {"toolCallId": call_id, "toolName": name, "argsTextDelta": ""}
        case ToolCallArgsDelta(tool_call_id=call_id, args_text_delta=delta, tool_name=name):
            return StreamPrefix.TOOL_CALL_DELTA, {"toolCallId": call_id, "toolName": name, "argsTextDelta": delta}
    raise TypeError(f"Not a stream part: {part!r}")


def format_stream_part(part: StreamPart) -> str:
    """Serialize one event to one wire line (terminator included)."""
    prefix, payload = _payload(part)
    return f"{prefix}:{encode_str(payload)}\n"


def encode_stream_part(part: StreamPart) -> bytes:
    return format_stream_part(part).encode("utf-8")


async def encode_stream(parts: AsyncIterable[StreamPart]) -> AsyncIterator[bytes]:
    """Serialize an event stream onto a byte stream, one line per event."""
    async for part in parts:
        yield encode_stream_part(part)


# ═══════════════════════════════════════════════════════════════════════════════
# Decoding
# ═══════════════════════════════════════════════════════════════════════════════

def _expect(cond: bool) -> None:
    if not cond:
        raise _Malformed


def _parse_args(raw: JsonValue) -> JsonValue:
    """Arguments travel as JSON text; already-decoded objects are accepted too."""
    if not isinstance(raw, str):
        return raw
    ok, value = try_decode(raw)
    _expect(ok)
    return value


def _text(value: JsonValue) -> list[StreamPart]:
    if isinstance(value, str):
        return [TextDelta(value)]
    _expect(isinstance(value, dict) and isinstance(value.get("id"), str))
    content = value.get("content") or []
    _expect(isinstance(content, list) and all(map(_valid_block, content)))
    return [AssistantMessage(id=value["id"], role=value.get("role", "assistant"), content=tuple(content))]


def _valid_block(block: JsonValue) -> bool:
    if not (isinstance(block, dict) and block.get("type") == "text"):
        return True
    text = block.get("text")
    return isinstance(text, dict) and isinstance(text.get("value"), str)


def _function_call(value: JsonValue) -> list[StreamPart]:
    _expect(isinstance(value, dict))
    call = value.get("function_call", value)
    _expect(isinstance(call, dict) and isinstance(call.get("name"), str))
    return [FunctionCallComplete(name=call["name"], args=_parse_args(call.get("arguments", "{}")))]


def _data(value: JsonValue) -> list[StreamPart]:
    _expect(isinstance(value, list))
    return [DataItems(tuple(value))]


def _status(value: JsonValue) -> list[StreamPart]:
    if isinstance(value, str):
        return [ErrorEvent(value)]
    _expect(isinstance(value, dict) and value.get("status") in StreamStatus._value2member_map_)
    information = value.get("information")
    if information is not None and not isinstance(information, str):
        information = encode_str(information)
    return [Status(StreamStatus(value["status"]), information)]


def _thread_id(value: JsonValue) -> list[StreamPart]:
    _expect(isinstance(value, str))
    return [ThreadId(value)]


def _tool_calls(value: JsonValue) -> list[StreamPart]:
    calls = value.get("tool_calls") if isinstance(value, dict) else value
    _expect(isinstance(calls, list))
    parts: list[StreamPart] = []
    for call in calls:
        _expect(isinstance(call, dict))
        fn = call.get("function") or {}
        _expect(isinstance(call.get("id"), str) and isinstance(fn.get("name"), str))
        parts.append(ToolCallComplete(call["id"], fn["name"], _parse_args(fn.get("arguments", "{}"))))
    return parts


def _annotations(value: JsonValue) -> list[StreamPart]:
    _expect(isinstance(value, list))
    return [MessageAnnotation(item) for item in value]


def _tool_call_delta(value: JsonValue) -> list[StreamPart]:
    _expect(isinstance(value, dict) and isinstance(value.get("toolCallId"), str))
    name, delta = value.get("toolName", ""), value.get("argsTextDelta", "")
    _expect(isinstance(name, str) and isinstance(delta, str))
    if not delta:
        return [ToolCallStart(value["toolCallId"], name)]
    return [ToolCallArgsDelta(value["toolCallId"], delta, name)]


_PARSERS: dict[str, Callable[[JsonValue], list[StreamPart]]] = {
    StreamPrefix.TEXT: _text,
    StreamPrefix.FUNCTION_CALL: _function_call,
    StreamPrefix.DATA: _data,
    StreamPrefix.STATUS: _status,
    StreamPrefix.THREAD_ID: _thread_id,
    StreamPrefix.TOOL_CALLS: _tool_calls,
    StreamPrefix.MESSAGE_ANNOTATIONS: _annotations,
    StreamPrefix.TOOL_CALL_DELTA: _tool_call_delta,
}


def parse_stream_part(line: str) -> list[StreamPart]:
    """Decode one complete line (terminator optional). Never raises.

    A line may expand to several events (tool-call and annotation arrays);
    an unknown prefix or malformed payload yields no events.
    """
    line = line.rstrip("\r\n")
    prefix, sep, payload = line.partition(":")
    parser = _PARSERS.get(prefix) if sep else None
    if parser is None:
        log.debug("dropped line", reason="unknown prefix", prefix=prefix[:16])
        return []
    ok, value = try_decode(payload)
    if not ok:
        log.debug("dropped line", reason="malformed json", prefix=prefix)
        return []
    try:
        return parser(value)
    except (_Malformed, KeyError, TypeError, ValueError, AttributeError):
        log.debug("dropped line", reason="unexpected payload shape", prefix=prefix)
        return []


class ChunkDecoder:
    """Incremental decoder from raw byte chunks to events.

    Keeps UTF-8 decoding state and an unterminated line across calls, so the
    event sequence does not depend on where the transport split the bytes.
    """

    __slots__ = ("_decoder", "_buffer")

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[StreamPart]:
        """Decode a chunk; returns events for every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [part for line in lines if line.strip() for part in parse_stream_part(line)]

    def flush(self) -> list[StreamPart]:
        """End of input: parse a trailing unterminated line, if any."""
        rest, self._buffer = self._buffer + self._decoder.decode(b"", final=True), ""
        return parse_stream_part(rest) if rest.strip() else []

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._buffer


class TextChunkDecoder:
    """Plain-text counterpart of ``ChunkDecoder``: every chunk is a text delta."""

    __slots__ = ("_decoder",)

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[StreamPart]:
        decoded = self._decoder.decode(chunk)
        return [TextDelta(decoded)] if decoded else []

    def flush(self) -> list[StreamPart]:
        decoded = self._decoder.decode(b"", final=True)
        return [TextDelta(decoded)] if decoded else []


async def decode_stream(chunks: AsyncIterable[bytes], *, text: bool = False) -> AsyncIterator[StreamPart]:
    """Decode a byte stream into events, in wire order."""
    decoder: ChunkDecoder | TextChunkDecoder = TextChunkDecoder() if text else ChunkDecoder()
    async for chunk in chunks:
        for part in decoder.feed(chunk):
            yield part
    for part in decoder.flush():
        yield part
