"""Chat session: conversation state plus request cycles against a transport.

Example:
    >>> session = ChatSession(HttpChatTransport("https://example.com/api/chat"))
    >>> outcome = await session.append(CreateMessage(role="user", content="Hi"))
    >>> session.messages[-1].content
    'Hello! How can I help?'

Only one cycle runs at a time. Starting a new request stops the one in
flight first; ``stop()`` keeps whatever content already arrived.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any, Literal

from streamcase.foundation.config import StreamcaseSettings, get_settings
from streamcase.foundation.errors import JsonDict, JsonValue, SessionBusyError, StreamError
from streamcase.foundation.ids import IdGenerator, generate_id
from streamcase.io.streaming import StreamStatus
from streamcase.runtime.observability import get_logger, log_context

from .reconcile import ChatPhase, ConversationState, CycleOutcome, CycleStatus, OnToolCall, OnUpdate, StreamReconciler
from .roundtrip import should_auto_submit
from .transport import ChatTransport, HttpChatTransport
from .types import ChatRequest, ChatRequestOptions, CreateMessage, Message, MessageRole

OnFinish = Callable[[Message], None]
OnError = Callable[[StreamError], None]


class ChatSession:
    """A single conversation driven by streaming chat requests."""

    def __init__(
        self,
        transport: ChatTransport | None = None,
        *,
        session_id: str | None = None,
        initial_messages: Sequence[Message] | None = None,
        max_automatic_roundtrips: int | None = None,
        stream_mode: Literal["stream-data", "text"] | None = None,
        send_extra_message_fields: bool | None = None,
        body: JsonDict | None = None,
        on_finish: OnFinish | None = None,
        on_error: OnError | None = None,
        on_update: OnUpdate | None = None,
        on_tool_call: OnToolCall | None = None,
        generate_id: IdGenerator = generate_id,
        settings: StreamcaseSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        chat = settings.chat
        self.id = session_id or generate_id()
        self._transport = transport if transport is not None else HttpChatTransport(settings=settings)
        self._state = ConversationState(messages=list(initial_messages or ()))
        self._max_roundtrips = chat.max_automatic_roundtrips if max_automatic_roundtrips is None else max_automatic_roundtrips
        self._stream_mode = stream_mode or chat.stream_mode
        self._send_extra = chat.send_extra_message_fields if send_extra_message_fields is None else send_extra_message_fields
        self._body = dict(body or {})
        self._on_finish = on_finish
        self._on_error = on_error
        self._on_update = on_update
        self._on_tool_call = on_tool_call
        self._generate_id = generate_id
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[CycleOutcome] | None = None
        self._stop_requested = False
        self._log = get_logger("streamcase.chat", session_id=self.id)

    # ─────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────

    @property
    def messages(self) -> list[Message]:
        return list(self._state.messages)

    @property
    def data(self) -> list[JsonValue]:
        return list(self._state.data)

    @property
    def error(self) -> StreamError | None:
        return self._state.error

    @property
    def phase(self) -> ChatPhase:
        return self._state.phase

    @property
    def is_loading(self) -> bool:
        return self._state.phase is not ChatPhase.IDLE

    @property
    def thread_id(self) -> str | None:
        return self._state.thread_id

    @property
    def status(self) -> StreamStatus | None:
        """Last status reported by the stream, if any."""
        return self._state.status

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(list(self._state.messages), list(self._state.data))

    def _ensure_idle(self, method: str) -> None:
        if self.is_loading:
            raise SessionBusyError(f"{method}: a request is in flight; call stop() first.")

    # ─────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────

    async def append(self, message: Message | CreateMessage, options: ChatRequestOptions | None = None) -> CycleOutcome:
        """Append a message and request the assistant's response."""
        msg = message if isinstance(message, Message) else message.to_message(self._generate_id)
        return await self._submit(lambda: [*self._state.messages, msg], options)

    async def reload(self, options: ChatRequestOptions | None = None) -> CycleOutcome | None:
        """Regenerate the last response; drops a trailing assistant message first."""
        if not self._state.messages:
            return None

        def build() -> list[Message]:
            msgs = self._state.messages
            return list(msgs[:-1] if msgs and msgs[-1].role is MessageRole.ASSISTANT else msgs)

        return await self._submit(build, options)

    def stop(self) -> None:
        """Abort the in-flight request, keeping partial content.

        Also ends a pending run of automatic tool roundtrips.
        """
        if self._lock.locked():
            self._stop_requested = True
        if self._task is not None and not self._task.done():
            self._stop_requested = True
            self._task.cancel()

    def set_messages(self, messages: Sequence[Message]) -> None:
        self._ensure_idle("set_messages()")
        self._state.messages = list(messages)
        self._notify()

    async def add_tool_result(self, tool_call_id: str, result: Any) -> CycleOutcome | None:
        """Attach ``result`` to a tool call in the last assistant message.

        Re-sends the conversation when that completes every tool call and
        the roundtrip bound allows it.
        """
        self._ensure_idle("add_tool_result()")
        msgs = self._state.messages
        if not msgs or msgs[-1].role is not MessageRole.ASSISTANT:
            return None
        last = msgs[-1].model_copy(deep=True)
        inv = last.tool_invocation(tool_call_id)
        if inv is None:
            self._log.warning("tool result for unknown call ignored", tool_call_id=tool_call_id)
            return None
        inv.resolve(result)
        self._state.messages = [*msgs[:-1], last]
        self._notify()

        if should_auto_submit(self._state.messages, self._max_roundtrips):
            return await self._submit(lambda: list(self._state.messages), None)
        return None

    # ─────────────────────────────────────────────────────────────────
    # Cycles
    # ─────────────────────────────────────────────────────────────────

    async def _submit(self, build: Callable[[], list[Message]], options: ChatRequestOptions | None) -> CycleOutcome:
        self.stop()
        async with self._lock:
            outcome = await self._cycle(build(), options)
            roundtrips = 0
            while (
                outcome.succeeded
                and not self._stop_requested
                and should_auto_submit(self._state.messages, self._max_roundtrips)
            ):
                roundtrips += 1
                self._log.info("automatic tool roundtrip", roundtrip=roundtrips)
                outcome = await self._cycle(list(self._state.messages), None)
            return outcome

    async def _cycle(self, messages: list[Message], options: ChatRequestOptions | None) -> CycleOutcome:
        request = ChatRequest(
            messages=messages,
            data=options.data if options else None,
            options=options,
            body=self._body,
            extra_message_fields=self._send_extra,
        )
        reconciler = StreamReconciler(
            self._state,
            generate_id=self._generate_id,
            on_update=self._on_update,
            on_tool_call=self._on_tool_call,
        )
        self._stop_requested = False

        with log_context(session_id=self.id):
            self._log.info("chat request started", messages=len(messages), stream_mode=self._stream_mode)
            self._task = asyncio.create_task(
                reconciler.run(messages, self._transport.stream(request), text=self._stream_mode == "text")
            )
            try:
                outcome = await self._task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if not self._stop_requested or (current is not None and current.cancelling()):
                    self._state.phase = ChatPhase.IDLE
                    raise
                outcome = CycleOutcome(CycleStatus.CANCELLED, message=reconciler.message)
            finally:
                self._task = None

            try:
                match outcome.status:
                    case CycleStatus.SUCCESS:
                        self._log.info("chat request finished", has_message=outcome.message is not None)
                        if self._on_finish is not None and outcome.message is not None:
                            self._on_finish(outcome.message)
                    case CycleStatus.FAILURE if (error := outcome.error) is not None:
                        self._log.warning("chat request failed", error=error.render(), code=error.code)
                        if self._on_error is not None:
                            self._on_error(error)
                    case CycleStatus.CANCELLED:
                        self._log.info("chat request stopped", partial=outcome.message is not None)
            finally:
                self._state.phase = ChatPhase.IDLE
                self._notify()
        return outcome
