"""Provider adapter contract.

A provider adapter wraps one vendor model and exposes a uniform
single-shot ``generate`` and a streaming ``stream`` that yields protocol
events (``TextDelta``, ``ToolCallStart`` ... ``ToolCallComplete``,
``ErrorEvent``). Adapters raise ``UnsupportedFunctionalityError`` for modes
or settings they cannot honor.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Annotated, Any, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from streamcase.foundation.errors import JsonDict, JsonValue
from streamcase.io.streaming import StreamPart

Prompt = Sequence[Mapping[str, Any]]


class ToolDefinition(BaseModel):
    """A function the model may call, described by a JSON schema."""

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(min_length=1)]
    description: str | None = None
    parameters: JsonDict = Field(default_factory=lambda: {"type": "object", "properties": {}})

    @classmethod
    def from_model(cls, name: str, params: type[BaseModel], description: str | None = None) -> ToolDefinition:
        return cls(name=name, description=description, parameters=params.model_json_schema())


class RegularMode(BaseModel):
    type: Literal["regular"] = "regular"
    tools: list[ToolDefinition] | None = None


class ObjectJsonMode(BaseModel):
    type: Literal["object-json"] = "object-json"


class ObjectToolMode(BaseModel):
    type: Literal["object-tool"] = "object-tool"
    tool: ToolDefinition


CallMode = Annotated[Union[RegularMode, ObjectJsonMode, ObjectToolMode], Field(discriminator="type")]


class ToolCall(BaseModel):
    tool_call_id: str
    tool_name: str
    args: JsonValue


class GenerateResult(BaseModel):
    """Result of a single-shot generation."""

    text: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)


@runtime_checkable
class LanguageModel(Protocol):
    """Uniform model contract implemented by provider adapters."""

    model_id: str

    async def generate(self, *, mode: CallMode, prompt: Prompt) -> GenerateResult:
        """Generate a complete response in one call."""
        ...

    def stream(self, *, mode: CallMode, prompt: Prompt) -> AsyncIterator[StreamPart]:
        """Stream a response as a finite, non-restartable sequence of events."""
        ...
