"""Stream reconciliation: fold decoded events into conversation state.

One ``StreamReconciler`` drives one request cycle::

    IDLE ──dispatch──▶ STREAMING ──end of input──▶ FINALIZING ──▶ IDLE
                           │
                           └─ Status(failed) / Error / transport fault ──▶ rollback

Before streaming, messages and data are snapshotted. A failure restores the
snapshot and records the error; cancellation keeps whatever content already
arrived.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterable, Awaitable, Callable, Sequence
from contextlib import aclosing
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from streamcase.foundation.errors import ErrorCode, JsonValue, StreamError, StreamException
from streamcase.foundation.ids import IdGenerator, generate_id
from streamcase.io.streaming import (
    AssistantMessage,
    DataItems,
    ErrorEvent,
    FunctionCallComplete,
    MessageAnnotation,
    Status,
    StreamPart,
    StreamStatus,
    TextDelta,
    ThreadId,
    ToolCallArgsDelta,
    ToolCallComplete,
    ToolCallStart,
    decode_stream,
    encode_str,
    try_decode,
)
from streamcase.runtime.observability import get_logger

from .types import FunctionCall, Message, MessageRole, ToolInvocation, ToolInvocationState

log = get_logger("streamcase.chat")

OnUpdate = Callable[[list[Message], list[JsonValue]], None]
OnToolCall = Callable[[ToolInvocation], Awaitable[Any]]


class ChatPhase(StrEnum):
    IDLE = "idle"
    STREAMING = "streaming"
    FINALIZING = "finalizing"


class CycleStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class CycleOutcome:
    """Result of one request cycle."""
    status: CycleStatus
    message: Message | None = None
    error: StreamError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is CycleStatus.SUCCESS

    @property
    def cancelled(self) -> bool:
        return self.status is CycleStatus.CANCELLED


@dataclass(slots=True, frozen=True)
class _Snapshot:
    messages: list[Message]
    data: list[JsonValue]


@dataclass(slots=True)
class ConversationState:
    """Mutable state owned by a chat session."""
    messages: list[Message] = field(default_factory=list)
    data: list[JsonValue] = field(default_factory=list)
    thread_id: str | None = None
    status: StreamStatus | None = None
    error: StreamError | None = None
    phase: ChatPhase = ChatPhase.IDLE

    def snapshot(self) -> _Snapshot:
        return _Snapshot([m.model_copy(deep=True) for m in self.messages], deepcopy(self.data))

    def restore(self, snap: _Snapshot) -> None:
        self.messages = snap.messages
        self.data = snap.data


class StreamReconciler:
    """Applies protocol events to a ``ConversationState`` for one request."""

    __slots__ = ("state", "_generate_id", "_on_update", "_on_tool_call", "_message", "_pending_annotations")

    def __init__(
        self,
        state: ConversationState,
        *,
        generate_id: IdGenerator = generate_id,
        on_update: OnUpdate | None = None,
        on_tool_call: OnToolCall | None = None,
    ) -> None:
        self.state = state
        self._generate_id = generate_id
        self._on_update = on_update
        self._on_tool_call = on_tool_call
        self._message: Message | None = None
        self._pending_annotations: list[JsonValue] = []

    @property
    def message(self) -> Message | None:
        """The assistant message this cycle streams into, once one exists."""
        return self._message

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(list(self.state.messages), list(self.state.data))

    # ─────────────────────────────────────────────────────────────────
    # Cycle
    # ─────────────────────────────────────────────────────────────────

    async def run(
        self,
        request_messages: Sequence[Message],
        chunks: AsyncIterable[bytes],
        *,
        text: bool = False,
    ) -> CycleOutcome:
        """Consume ``chunks`` and return the cycle outcome.

        Failures are returned, not raised. Cancellation propagates after the
        partial message has been settled.
        """
        snapshot = self.state.snapshot()
        self.state.messages = list(request_messages)
        self.state.data = []
        self.state.error = None
        self.state.phase = ChatPhase.STREAMING
        self._notify()

        try:
            async with aclosing(decode_stream(chunks, text=text)) as parts:
                async for part in parts:
                    await self.apply(part)
        except asyncio.CancelledError:
            self._settle()
            self._notify()
            raise
        except Exception as exc:  # noqa: BLE001
            error = StreamError.from_exception(exc)
            self.state.restore(snapshot)
            self.state.error = error
            self._notify()
            return CycleOutcome(CycleStatus.FAILURE, error=error)
        finally:
            if isinstance(chunks, AsyncGenerator):
                await chunks.aclose()

        self.state.phase = ChatPhase.FINALIZING
        self._settle()
        self._notify()
        return CycleOutcome(CycleStatus.SUCCESS, message=self._message)

    def _settle(self) -> None:
        if self._message is not None:
            self._message.streaming = False

    # ─────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────

    async def apply(self, part: StreamPart) -> None:
        """Apply one event. Raises ``StreamException`` for failure events."""
        match part:
            case TextDelta(text=delta):
                self._assistant().content += delta
            case AssistantMessage():
                self._upsert(part)
            case ToolCallStart(tool_call_id=call_id, tool_name=name):
                await self._parse_args(self._invocation(call_id, name))
            case ToolCallArgsDelta(tool_call_id=call_id, args_text_delta=delta, tool_name=name):
                inv = self._invocation(call_id, name)
                inv.args_text += delta
                await self._parse_args(inv)
            case ToolCallComplete(tool_call_id=call_id, tool_name=name, args=args):
                inv = self._invocation(call_id, name)
                inv.args = args
                if not inv.args_text:
                    inv.args_text = encode_str(args)
                if inv.state is ToolInvocationState.PARTIAL_CALL:
                    await self._called(inv)
            case FunctionCallComplete(name=name, args=args):
                self._assistant().function_call = FunctionCall(name=name, arguments=encode_str(args))
            case DataItems(items=items):
                self.state.data.extend(items)
            case MessageAnnotation(value=value):
                if self._message is None:
                    self._pending_annotations.append(value)
                else:
                    self._message.annotations = [*(self._message.annotations or ()), value]
            case ThreadId(thread_id=thread_id):
                self.state.thread_id = thread_id
            case Status(status=status, information=info):
                self.state.status = status
                if status is StreamStatus.FAILED:
                    raise StreamException.create(info or "The assistant run failed.", ErrorCode.STREAM_FAILED)
                if status is StreamStatus.COMPLETE:
                    self._settle()
            case ErrorEvent(message=message):
                raise StreamException.create(message, ErrorCode.PROVIDER_ERROR)
        self._notify()

    def _assistant(self) -> Message:
        if self._message is None:
            self._open(Message(
                id=self._generate_id(),
                role=MessageRole.ASSISTANT,
                created_at=datetime.now(UTC),
            ))
        return self._message  # type: ignore[return-value]

    def _open(self, message: Message) -> None:
        message.streaming = True
        if self._pending_annotations:
            message.annotations = [*(message.annotations or ()), *self._pending_annotations]
            self._pending_annotations.clear()
        self._message = message
        self.state.messages.append(message)

    def _upsert(self, part: AssistantMessage) -> None:
        if self._message is not None and self._message.id == part.id:
            self._message.content = part.text
            return
        for existing in self.state.messages:
            if existing.id == part.id:
                existing.content = part.text
                return
        self._open(Message(id=part.id, role=MessageRole.ASSISTANT, content=part.text, created_at=datetime.now(UTC)))

    def _invocation(self, tool_call_id: str, tool_name: str) -> ToolInvocation:
        message = self._assistant()
        inv = message.tool_invocation(tool_call_id)
        if inv is None:
            inv = ToolInvocation(tool_call_id=tool_call_id, tool_name=tool_name)
            message.tool_invocations = [*(message.tool_invocations or ()), inv]
        elif tool_name and not inv.tool_name:
            inv.tool_name = tool_name
        return inv

    async def _parse_args(self, inv: ToolInvocation) -> None:
        # Start and argument deltas may arrive in either order.
        if not (inv.tool_name and inv.args_text) or inv.state is not ToolInvocationState.PARTIAL_CALL:
            return
        ok, args = try_decode(inv.args_text)
        if ok:
            inv.args = args
            await self._called(inv)

    async def _called(self, inv: ToolInvocation) -> None:
        inv.state = ToolInvocationState.CALL
        log.debug("tool call ready", tool_call_id=inv.tool_call_id, tool_name=inv.tool_name)
        if self._on_tool_call is None:
            return
        result = await self._on_tool_call(inv)
        if result is not None:
            inv.resolve(result)
