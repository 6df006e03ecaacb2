"""Mock collaborators for session and render testing.

Provides MockTransport and MockLanguageModel for:
- Replaying scripted responses without a network or a model
- Simulating transport faults and provider errors mid-stream
- Pausing a stream so tests can cancel it at a known point
- Recording requests for verification
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field

from streamcase.chat.types import ChatRequest
from streamcase.foundation.errors import ErrorCode, StreamError, TransportError
from streamcase.io.streaming import StreamPart, TextDelta, ToolCallComplete, encode_stream_part
from streamcase.providers.base import CallMode, GenerateResult, Prompt, ToolCall

ScriptItem = StreamPart | str | bytes


def _to_bytes(item: ScriptItem) -> bytes:
    if isinstance(item, bytes):
        return item
    if isinstance(item, str):
        return item.encode("utf-8")
    return encode_stream_part(item)


@dataclass
class MockTransport:
    """Scripted ``ChatTransport`` with request recording.

    Each request replays the next script; the last script is reused once
    they run out. Items may be events, raw lines or raw byte chunks.

    Example:
        >>> transport = MockTransport.of([text("Hel"), text("lo")], fail_after=1)
        >>> session = ChatSession(transport)
    """
    scripts: list[list[bytes]] = field(default_factory=list)
    fail_after: int | None = None
    failure: Exception | None = None
    hold_after: int | None = None
    requests: list[ChatRequest] = field(default_factory=list)
    held: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def of(cls, *scripts: Sequence[ScriptItem], **kwargs: object) -> MockTransport:
        return cls(scripts=[[_to_bytes(item) for item in script] for script in scripts], **kwargs)  # type: ignore[arg-type]

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def called(self) -> bool:
        return self.call_count > 0

    @property
    def last_request(self) -> ChatRequest | None:
        return self.requests[-1] if self.requests else None

    def assert_called(self, times: int | None = None) -> None:
        if not self.called:
            raise AssertionError("Expected transport to be called")
        if times is not None and self.call_count != times:
            raise AssertionError(f"Expected {times} requests, got {self.call_count}")

    def assert_not_called(self) -> None:
        if self.called:
            raise AssertionError(f"Transport called {self.call_count} times")

    def _fault(self) -> Exception:
        return self.failure or TransportError(StreamError.create("connection reset by peer", ErrorCode.TRANSPORT_ERROR))

    async def stream(self, request: ChatRequest) -> AsyncIterator[bytes]:
        self.requests.append(request)
        script = self.scripts[min(len(self.requests), len(self.scripts)) - 1] if self.scripts else []
        for i, chunk in enumerate(script):
            if i == self.fail_after:
                raise self._fault()
            if i == self.hold_after:
                self.held.set()
                await self.release.wait()
            yield chunk
            await asyncio.sleep(0)
        if self.fail_after is not None and self.fail_after >= len(script):
            raise self._fault()


@dataclass
class MockLanguageModel:
    """Scripted ``LanguageModel`` recording every call.

    ``generate`` folds the script into a ``GenerateResult``; ``stream``
    replays it event by event, then raises ``raises`` if set.
    """
    parts: list[StreamPart] = field(default_factory=list)
    model_id: str = "mock-model"
    raises: Exception | None = None
    calls: list[tuple[CallMode, Prompt]] = field(default_factory=list)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_mode(self) -> CallMode | None:
        return self.calls[-1][0] if self.calls else None

    async def generate(self, *, mode: CallMode, prompt: Prompt) -> GenerateResult:
        self.calls.append((mode, prompt))
        if self.raises is not None:
            raise self.raises
        text = "".join(p.text for p in self.parts if isinstance(p, TextDelta))
        return GenerateResult(
            text=text or None,
            tool_calls=[
                ToolCall(tool_call_id=p.tool_call_id, tool_name=p.tool_name, args=p.args)
                for p in self.parts if isinstance(p, ToolCallComplete)
            ],
        )

    async def stream(self, *, mode: CallMode, prompt: Prompt) -> AsyncIterator[StreamPart]:
        self.calls.append((mode, prompt))
        for part in self.parts:
            yield part
            await asyncio.sleep(0)
        if self.raises is not None:
            raise self.raises
