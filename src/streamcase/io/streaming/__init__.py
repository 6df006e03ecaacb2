"""Line protocol for multiplexed streaming responses.

Typed events (``parts``), the ``<prefix>:<json>`` line codec (``protocol``)
and server-side producers (``response``).
"""

from .codec import decode, encode, encode_str, try_decode
from .parts import (
    AssistantMessage,
    DataItems,
    ErrorEvent,
    FunctionCallComplete,
    MessageAnnotation,
    PartKind,
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
from .protocol import (
    ChunkDecoder,
    TextChunkDecoder,
    decode_stream,
    encode_stream,
    encode_stream_part,
    format_stream_part,
    parse_stream_part,
)
from .response import AssistantStreamController, StreamData, assistant_response, stream_response

__all__ = [
    # Codec
    "encode", "encode_str", "decode", "try_decode",
    # Events
    "StreamPart", "StreamPrefix", "PartKind", "StreamStatus",
    "TextDelta", "AssistantMessage", "DataItems", "ToolCallStart", "ToolCallArgsDelta",
    "ToolCallComplete", "MessageAnnotation", "Status", "ThreadId", "FunctionCallComplete", "ErrorEvent",
    # Protocol
    "format_stream_part", "encode_stream_part", "parse_stream_part",
    "ChunkDecoder", "TextChunkDecoder", "decode_stream", "encode_stream",
    # Producers
    "StreamData", "stream_response", "assistant_response", "AssistantStreamController",
]
