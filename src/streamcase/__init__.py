"""Streamcase - Streaming chat responses, reconciled state and streamable UI.

A small toolkit for the client and server sides of a streamed chat turn:
a line protocol multiplexing text, tool calls, data and status; a chat
session that folds the stream into conversation state (with rollback on
failure and bounded tool roundtrips); and streamable cells that publish a
value or UI node revision by revision.

Server Side (Encoding a Response):
    >>> from streamcase import StreamData, stream_response, text, status
    >>>
    >>> async def parts():
    ...     yield text("Hel")
    ...     yield text("lo")
    ...     yield status("complete")
    >>>
    >>> data = StreamData()
    >>> data.append({"source": "kb"})
    >>> body = stream_response(parts(), data)   # async iterator of bytes

Client Side (Chat Session):
    >>> from streamcase import ChatSession, CreateMessage, HttpChatTransport
    >>>
    >>> session = ChatSession(HttpChatTransport("https://example.com/api/chat"),
    ...                       max_automatic_roundtrips=1)
    >>> outcome = await session.append(CreateMessage(role="user", content="Hi"))
    >>> session.messages[-1].content
    'Hello'

Streamable Values:
    >>> from streamcase import StreamableValue, read_streamable_value
    >>>
    >>> stream = StreamableValue("")
    >>> snapshot = stream.value
    >>> stream.update("Hel"); stream.update("Hello"); stream.done()
    >>> [v async for v in read_streamable_value(snapshot)]
    ['', 'Hel', 'Hello']

Rendering Model Output to UI:
    >>> from streamcase import render, ToolUI, Renderer
    >>>
    >>> node = render(model, prompt, tools={
    ...     "weather": ToolUI(WeatherParams, Renderer.awaitable(weather_card)),
    ... })
"""

from __future__ import annotations

__version__ = "0.1.0"

# Errors
from .foundation.errors import (
    ClosedStreamError,
    ConfigurationError,
    ErrorCode,
    SessionBusyError,
    StreamError,
    StreamException,
    TransportError,
    UnsupportedFunctionalityError,
)

# Config
from .foundation.config import StreamcaseSettings, clear_settings_cache, get_settings

# Protocol
from .io.streaming import (
    AssistantMessage,
    AssistantStreamController,
    ChunkDecoder,
    DataItems,
    ErrorEvent,
    FunctionCallComplete,
    MessageAnnotation,
    Status,
    StreamData,
    StreamPart,
    StreamStatus,
    TextDelta,
    ThreadId,
    ToolCallArgsDelta,
    ToolCallComplete,
    ToolCallStart,
    assistant_response,
    decode_stream,
    encode_stream_part,
    format_stream_part,
    parse_stream_part,
    stream_response,
)
from .io.streaming.parts import data, error, status, text

# Streamable
from .runtime.streamable import (
    Patch,
    Renderer,
    StreamableUI,
    StreamableValue,
    ToolUI,
    UIRevision,
    ValueRevision,
    create_streamable_ui,
    create_streamable_value,
    read_streamable_ui,
    read_streamable_value,
    render,
)

# Chat
from .chat import (
    ChatPhase,
    ChatRequestOptions,
    ChatSession,
    ChatTransport,
    CreateMessage,
    CycleOutcome,
    CycleStatus,
    HttpChatTransport,
    Message,
    MessageRole,
    ToolInvocation,
)

# Providers
from .providers import LanguageModel, ToolCallDeltaMerger, ToolDefinition

# Observability
from .runtime.observability import configure_logging, get_logger, log_context

__all__ = [
    "__version__",
    # Errors
    "ErrorCode", "StreamError", "StreamException", "TransportError", "UnsupportedFunctionalityError",
    "ClosedStreamError", "ConfigurationError", "SessionBusyError",
    # Config
    "StreamcaseSettings", "get_settings", "clear_settings_cache",
    # Protocol
    "StreamPart", "StreamStatus", "TextDelta", "AssistantMessage", "DataItems",
    "ToolCallStart", "ToolCallArgsDelta", "ToolCallComplete", "MessageAnnotation",
    "Status", "ThreadId", "FunctionCallComplete", "ErrorEvent",
    "text", "data", "status", "error",
    "format_stream_part", "encode_stream_part", "parse_stream_part", "ChunkDecoder", "decode_stream",
    "StreamData", "stream_response", "assistant_response", "AssistantStreamController",
    # Streamable
    "StreamableValue", "ValueRevision", "create_streamable_value", "read_streamable_value",
    "StreamableUI", "UIRevision", "create_streamable_ui", "read_streamable_ui",
    "Patch", "render", "Renderer", "ToolUI",
    # Chat
    "ChatSession", "ChatPhase", "ChatTransport", "HttpChatTransport", "ChatRequestOptions",
    "CreateMessage", "Message", "MessageRole", "ToolInvocation", "CycleOutcome", "CycleStatus",
    # Providers
    "LanguageModel", "ToolDefinition", "ToolCallDeltaMerger",
    # Observability
    "configure_logging", "get_logger", "log_context",
]
