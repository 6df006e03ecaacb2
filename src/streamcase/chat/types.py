"""Conversation model: messages, tool invocations and chat requests.

Field names are snake_case in Python and camelCase on the wire
(``tool_call_id`` <-> ``toolCallId``); both spellings are accepted on input.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from streamcase.foundation.errors import JsonDict, JsonValue
from streamcase.foundation.ids import generate_id

# Keys sent for each message unless extra message fields are requested.
_WIRE_FIELDS = frozenset({"role", "content", "name", "tool_invocations", "function_call"})


class MessageRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"
    TOOL = "tool"
    DATA = "data"


class ToolInvocationState(StrEnum):
    PARTIAL_CALL = "partial-call"
    CALL = "call"
    RESULT = "result"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolInvocation(_WireModel):
    """One tool call inside an assistant message.

    Created on the first tool-call event, its argument text accumulates until
    it parses (state ``call``). It is answered once a result is attached
    (state ``result``); the stream itself never produces results.
    """

    tool_call_id: str
    tool_name: str = ""
    args: JsonValue = None
    state: ToolInvocationState = ToolInvocationState.PARTIAL_CALL
    result: Any = None
    args_text: str = Field(default="", exclude=True, repr=False)

    @property
    def has_result(self) -> bool:
        return self.state is ToolInvocationState.RESULT

    def resolve(self, result: Any) -> None:
        """Attach an external result, answering the call."""
        self.result = result
        self.state = ToolInvocationState.RESULT


class FunctionCall(BaseModel):
    """Legacy single function call; ``arguments`` is JSON text."""

    name: str
    arguments: str = "{}"


class Message(_WireModel):
    id: str = Field(default_factory=generate_id)
    role: MessageRole
    content: str = ""
    created_at: datetime | None = None
    name: str | None = None
    tool_invocations: list[ToolInvocation] | None = None
    function_call: FunctionCall | None = Field(default=None, alias="function_call")
    annotations: list[JsonValue] | None = None
    # True while this message is the open target of a streaming response.
    streaming: bool = Field(default=False, exclude=True)

    def tool_invocation(self, tool_call_id: str) -> ToolInvocation | None:
        for inv in self.tool_invocations or ():
            if inv.tool_call_id == tool_call_id:
                return inv
        return None

    def to_wire(self, *, extra_fields: bool = False) -> JsonDict:
        """JSON-ready dict as sent to the chat endpoint."""
        include = None if extra_fields else _WIRE_FIELDS
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, include=include)


class CreateMessage(_WireModel):
    """A message about to be appended; ``id`` is assigned when missing."""

    role: MessageRole
    content: str
    id: str | None = None
    created_at: datetime | None = None
    name: str | None = None
    annotations: list[JsonValue] | None = None

    def to_message(self, id_generator: Callable[[], str] = generate_id) -> Message:
        return Message(**self.model_dump(exclude={"id"}), id=self.id or id_generator())


class ChatRequestOptions(BaseModel):
    """Per-call additions to the outgoing request."""

    headers: dict[str, str] = Field(default_factory=dict)
    body: JsonDict = Field(default_factory=dict)
    data: JsonDict | None = None


class ChatRequest(BaseModel):
    """Everything a transport needs to send one request."""

    messages: list[Message]
    data: JsonDict | None = None
    options: ChatRequestOptions | None = None
    body: JsonDict = Field(default_factory=dict)
    extra_message_fields: bool = False

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.options.headers) if self.options else {}

    def payload(self) -> JsonDict:
        """Request body: messages, data, session body, then per-call body."""
        payload: dict[str, Any] = {
            "messages": [m.to_wire(extra_fields=self.extra_message_fields) for m in self.messages],
        }
        if self.data is not None:
            payload["data"] = self.data
        payload.update(self.body)
        if self.options is not None:
            payload.update(self.options.body)
        return payload

