"""Typed protocol events carried by the line protocol.

Every event maps to exactly one wire prefix (see ``StreamPrefix``). Events
are frozen dataclasses; sequence payloads are normalized to tuples so that
an event built by hand compares equal to the same event after a trip over
the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Union

from streamcase.foundation.errors import JsonValue


class StreamPrefix(StrEnum):
    """Wire prefixes. Values must stay bit-exact for interoperability."""
    TEXT = "0"                  # text delta (string) or assistant message (object)
    FUNCTION_CALL = "1"         # legacy function-call object
    DATA = "2"                  # auxiliary data array chunk
    STATUS = "3"                # status object (or error string)
    THREAD_ID = "4"             # thread/session identifier
    TOOL_CALLS = "5"            # tool-calls array
    MESSAGE_ANNOTATIONS = "6"   # message-annotations array
    TOOL_CALL_DELTA = "7"       # tool-call-arguments delta object


class PartKind(StrEnum):
    """Event kinds, independent of their wire prefix."""
    TEXT_DELTA = "text-delta"
    ASSISTANT_MESSAGE = "assistant-message"
    DATA_ITEMS = "data-items"
    TOOL_CALL_START = "tool-call-start"
    TOOL_CALL_ARGS_DELTA = "tool-call-args-delta"
    TOOL_CALL_COMPLETE = "tool-call-complete"
    MESSAGE_ANNOTATION = "message-annotation"
    STATUS = "status"
    THREAD_ID = "thread-id"
    FUNCTION_CALL_COMPLETE = "function-call-complete"
    ERROR = "error"


class StreamStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


def _freeze(value: object) -> tuple[JsonValue, ...]:
    return value if isinstance(value, tuple) else tuple(value)  # type: ignore[arg-type]


@dataclass(slots=True, frozen=True)
class TextDelta:
    """A fragment of assistant text."""
    kind: ClassVar[PartKind] = PartKind.TEXT_DELTA
    text: str


@dataclass(slots=True, frozen=True)
class AssistantMessage:
    """A whole assistant message object, as sent by assistant-style producers.

    Attributes:
        id: Message identifier chosen by the producer
        content: Content blocks, ``{"type": "text", "text": {"value": ...}}``
        role: Always ``"assistant"`` on the wire
    """
    kind: ClassVar[PartKind] = PartKind.ASSISTANT_MESSAGE
    id: str
    content: tuple[JsonValue, ...] = ()
    role: str = "assistant"

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", _freeze(self.content))

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        parts: list[str] = []
        for block in self.content:
            if not (isinstance(block, dict) and block.get("type") == "text"):
                continue
            text = block.get("text")
            if isinstance(text, dict) and isinstance(text.get("value"), str):
                parts.append(text["value"])
        return "".join(parts)

    @classmethod
    def from_text(cls, id: str, text: str) -> AssistantMessage:  # noqa: A002
        return cls(id=id, content=({"type": "text", "text": {"value": text}},))


@dataclass(slots=True, frozen=True)
class DataItems:
    """Values appended to the auxiliary data array."""
    kind: ClassVar[PartKind] = PartKind.DATA_ITEMS
    items: tuple[JsonValue, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", _freeze(self.items))


@dataclass(slots=True, frozen=True)
class ToolCallStart:
    kind: ClassVar[PartKind] = PartKind.TOOL_CALL_START
    tool_call_id: str
    tool_name: str


@dataclass(slots=True, frozen=True)
class ToolCallArgsDelta:
    """A fragment of a tool call's JSON argument text.

    An empty ``args_text_delta`` is indistinguishable from a ``ToolCallStart``
    on the wire and decodes as one.
    """
    kind: ClassVar[PartKind] = PartKind.TOOL_CALL_ARGS_DELTA
    tool_call_id: str
    args_text_delta: str
    tool_name: str = ""


@dataclass(slots=True, frozen=True)
class ToolCallComplete:
    kind: ClassVar[PartKind] = PartKind.TOOL_CALL_COMPLETE
    tool_call_id: str
    tool_name: str
    args: JsonValue


@dataclass(slots=True, frozen=True)
class MessageAnnotation:
    kind: ClassVar[PartKind] = PartKind.MESSAGE_ANNOTATION
    value: JsonValue


@dataclass(slots=True, frozen=True)
class Status:
    kind: ClassVar[PartKind] = PartKind.STATUS
    status: StreamStatus
    information: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", StreamStatus(self.status))

    @property
    def failed(self) -> bool:
        return self.status is StreamStatus.FAILED


@dataclass(slots=True, frozen=True)
class ThreadId:
    kind: ClassVar[PartKind] = PartKind.THREAD_ID
    thread_id: str


@dataclass(slots=True, frozen=True)
class FunctionCallComplete:
    """Legacy single function call (pre tool-call API)."""
    kind: ClassVar[PartKind] = PartKind.FUNCTION_CALL_COMPLETE
    name: str
    args: JsonValue


@dataclass(slots=True, frozen=True)
class ErrorEvent:
    """An explicit error raised by the model or producer."""
    kind: ClassVar[PartKind] = PartKind.ERROR
    message: str


StreamPart = Union[
    TextDelta,
    AssistantMessage,
    DataItems,
    ToolCallStart,
    ToolCallArgsDelta,
    ToolCallComplete,
    MessageAnnotation,
    Status,
    ThreadId,
    FunctionCallComplete,
    ErrorEvent,
]


# ─────────────────────────────────────────────────────────────────────────────
# Factory Functions
# ─────────────────────────────────────────────────────────────────────────────

def text(content: str) -> TextDelta:
    return TextDelta(content)


def data(*items: JsonValue) -> DataItems:
    return DataItems(items)


def status(value: StreamStatus | str, information: str | None = None) -> Status:
    return Status(StreamStatus(value), information)


def error(message: str) -> ErrorEvent:
    return ErrorEvent(message)
