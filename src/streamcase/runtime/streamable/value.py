"""Streamable values: a value whose revisions are streamed to a consumer.

Producer side:
    >>> stream = StreamableValue("")
    >>> stream.update("Hel")
    >>> stream.update("Hello")     # published as Patch(offset=3, suffix="lo")
    >>> stream.done()
    >>> snapshot = stream.value    # hand this to the consumer

Consumer side:
    >>> async for text in read_streamable_value(snapshot):
    ...     print(text)
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from streamcase.foundation.errors import ClosedStreamError

from .revision import IdleWarning, Patch, RevisionChannel, RevisionRef

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class ValueRevision(Generic[T]):
    """One published state of a streamable value.

    Exactly one of ``curr`` (with ``has_value``), ``diff`` or ``error`` is
    meaningful; a revision with none of them is an empty terminal marker.
    ``next`` is absent on terminal revisions.
    """
    curr: T | None = None
    has_value: bool = False
    diff: Patch | None = None
    error: BaseException | None = None
    next: RevisionRef[ValueRevision[T]] | None = None

    @property
    def done(self) -> bool:
        return self.next is None


class StreamableValue(Generic[T]):
    """Mutable cell whose observers see a lazy, append-only revision chain."""

    __slots__ = ("_channel", "_current", "_patch", "_error", "_warning")

    def __init__(self, initial: T | None = None, *, warning: IdleWarning | None = None) -> None:
        self._channel: RevisionChannel[ValueRevision[T]] = RevisionChannel()
        self._current = initial
        self._patch: Patch | None = None
        self._error: BaseException | None = None
        self._warning = warning or IdleWarning("value")
        self._warning.rearm()

    # ─────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._channel.closed

    @property
    def current(self) -> T | None:
        return self._current

    @property
    def revisions(self) -> int:
        return self._channel.count

    @property
    def value(self) -> ValueRevision[T]:
        """Externally-visible representation; always carries the full value."""
        return self._wrap(initial=True, next=self._channel.head)

    def _assert_open(self, method: str) -> None:
        if self._channel.closed:
            raise ClosedStreamError(method, kind="Value")

    def _set_current(self, value: T) -> None:
        self._patch = Patch.between(self._current, value)
        self._current = value

    def _wrap(self, *, initial: bool, next: RevisionRef[ValueRevision[T]] | None) -> ValueRevision[T]:  # noqa: A002
        if self._error is not None:
            return ValueRevision(error=self._error)
        if self._patch is not None and not initial:
            return ValueRevision(diff=self._patch, next=next)
        return ValueRevision(curr=self._current, has_value=True, next=next)

    # ─────────────────────────────────────────────────────────────────
    # Producer API
    # ─────────────────────────────────────────────────────────────────

    def update(self, value: T) -> None:
        """Publish a new value (as a patch when it extends the previous string)."""
        self._assert_open(".update()")
        self._set_current(value)
        self._channel.push(lambda nxt: self._wrap(initial=False, next=nxt))
        self._warning.rearm()

    def error(self, error: BaseException) -> None:
        """Close the cell with an error; consumers awaiting it will raise."""
        self._assert_open(".error()")
        self._warning.cancel()
        self._error = error
        self._channel.fail(error)

    def done(self, *final: T) -> None:
        """Close the cell, optionally publishing a final value."""
        self._assert_open(".done()")
        self._warning.cancel()
        if final:
            self._set_current(final[0])
            self._channel.close(self._wrap(initial=False, next=None))
            return
        self._channel.close(ValueRevision())


def create_streamable_value(initial: T | None = None) -> StreamableValue[T]:
    return StreamableValue(initial)


async def read_streamable_value(snapshot: ValueRevision[T]) -> AsyncIterator[T]:
    """Yield each full value reconstructed from a snapshot and its successors.

    Patches are merged into a local running string. Each revision is pulled
    exactly once; the producer's error, if any, is raised.
    """
    row: ValueRevision[Any] = snapshot
    current: Any = None
    while True:
        if row.error is not None:
            raise row.error
        if row.has_value:
            current = row.curr
            yield current
        elif row.diff is not None:
            current = row.diff.apply(current if isinstance(current, str) else "")
            yield current
        if row.next is None:
            return
        row = await row.next
