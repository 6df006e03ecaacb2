"""Server-side helpers that produce line-protocol byte streams.

- ``StreamData``: side channel for auxiliary data and message annotations
  that a server appends while the model is still generating.
- ``stream_response``: multiplex a model's event stream with a ``StreamData``.
- ``assistant_response``: imperative producer API (status, thread id, whole
  messages) for assistant-style backends.

Example:
    >>> data = StreamData()
    >>> data.append({"source": "kb-42"})
    >>> async for chunk in stream_response(model.stream(mode, prompt), data):
    ...     await response.write(chunk)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable

from streamcase.foundation.errors import ClosedStreamError, JsonValue
from streamcase.runtime.concurrency import merge_streams, pump
from streamcase.runtime.observability import get_logger

from .parts import (
    AssistantMessage,
    DataItems,
    ErrorEvent,
    MessageAnnotation,
    Status,
    StreamPart,
    StreamStatus,
    TextDelta,
    ThreadId,
)
from .protocol import encode_stream_part

log = get_logger("streamcase.response")

_CLOSED = object()


class StreamData:
    """Append-only side channel rendered as ``2:`` and ``6:`` lines.

    Iterating a ``StreamData`` yields encoded lines until ``close()`` is
    called. Writing after ``close()`` is a programming error.
    """

    __slots__ = ("_queue", "_closed")

    def __init__(self) -> None:
        self._queue: asyncio.Queue[bytes | object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, method: str, part: StreamPart) -> None:
        if self._closed:
            raise ClosedStreamError(method, kind="Data")
        self._queue.put_nowait(encode_stream_part(part))

    def append(self, *values: JsonValue) -> None:
        """Append values to the consumer's auxiliary data array."""
        self._put(".append()", DataItems(values))

    def append_message_annotation(self, value: JsonValue) -> None:
        """Attach an annotation to the assistant message being streamed."""
        self._put(".append_message_annotation()", MessageAnnotation(value))

    def close(self) -> None:
        if self._closed:
            raise ClosedStreamError(".close()", kind="Data")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while (item := await self._queue.get()) is not _CLOSED:
            yield item  # type: ignore[misc]


async def _encode_with_error(parts: AsyncIterable[StreamPart]) -> AsyncIterator[bytes]:
    """Encode parts; a producer failure is reported on the wire, then re-raised."""
    try:
        async for part in parts:
            yield encode_stream_part(part)
    except Exception as e:
        log.exception("producer failed mid-stream", error=str(e))
        yield encode_stream_part(ErrorEvent(str(e) or type(e).__name__))
        raise


async def stream_response(
    parts: AsyncIterable[StreamPart],
    data: StreamData | None = None,
    *,
    close_data: bool = True,
) -> AsyncIterator[bytes]:
    """Encode ``parts`` and interleave lines appended to ``data``.

    With ``close_data`` the side channel is closed once the model stream
    ends, which ends the response. Otherwise the caller closes it.
    """
    if data is None:
        async for chunk in _encode_with_error(parts):
            yield chunk
        return

    async def model_lines() -> AsyncIterator[bytes]:
        try:
            async for chunk in _encode_with_error(parts):
                yield chunk
        finally:
            if close_data and not data.closed:
                data.close()

    async for chunk in merge_streams(model_lines(), data.__aiter__()):
        yield chunk


class AssistantStreamController:
    """Write handle passed to an ``assistant_response`` producer."""

    __slots__ = ("_queue",)

    def __init__(self, queue: asyncio.Queue[bytes]) -> None:
        self._queue = queue

    def send(self, part: StreamPart) -> None:
        self._queue.put_nowait(encode_stream_part(part))

    def send_status(self, status: StreamStatus | str, information: str | None = None) -> None:
        self.send(Status(StreamStatus(status), information))

    def send_thread_id(self, thread_id: str) -> None:
        self.send(ThreadId(thread_id))

    def send_message(self, message: AssistantMessage) -> None:
        self.send(message)

    def send_text(self, text: str) -> None:
        self.send(TextDelta(text))

    def send_data(self, *items: JsonValue) -> None:
        self.send(DataItems(items))


def assistant_response(
    process: Callable[[AssistantStreamController], Awaitable[None]],
) -> AsyncIterator[bytes]:
    """Run ``process`` with a controller and stream everything it sends.

    If ``process`` raises, an error line is written before the exception
    propagates to the consumer of the byte stream.
    """
    async def producer(queue: asyncio.Queue[bytes]) -> None:
        controller = AssistantStreamController(queue)
        try:
            await process(controller)
        except Exception as e:
            log.exception("assistant process failed", error=str(e))
            controller.send(ErrorEvent(str(e) or type(e).__name__))
            raise

    return pump(producer)
