"""Streamable UI: a tree node whose content is replaced or extended over time.

``update`` replaces the last segment, ``append`` adds a new one. After an
append the previous segment is frozen; later updates only touch the new
one. A consumer sees the node as a growing tuple of segments.

Example:
    >>> ui = StreamableUI("loading...")
    >>> ui.update("<card>")
    >>> ui.append("<footer>")
    >>> ui.done()
    >>> async for segments in read_streamable_ui(node):
    ...     draw(segments)     # ("loading...",), ("<card>",), ("<card>", "<footer>"), ...
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from streamcase.foundation.errors import ClosedStreamError

from .revision import IdleWarning, RevisionChannel, RevisionRef

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class UIRevision(Generic[T]):
    """One published state of a UI node."""
    value: T | None
    done: bool = False
    append: bool = False
    next: RevisionRef[UIRevision[T]] | None = None


class StreamableUI(Generic[T]):
    """Tree-shaped streamable cell with append semantics."""

    __slots__ = ("_channel", "_root", "_current", "_subscribed", "_appended", "_failed", "_warning")

    def __init__(self, initial: T | None = None, *, warning: IdleWarning | None = None) -> None:
        self._channel: RevisionChannel[UIRevision[T]] = RevisionChannel()
        self._root: UIRevision[T] = UIRevision(value=initial, next=self._channel.head)
        self._current = initial
        self._subscribed = False
        self._appended = False
        self._failed = False
        self._warning = warning or IdleWarning("UI")
        self._warning.rearm()

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
    def value(self) -> UIRevision[T]:
        """Entry point for consumers.

        A cell finished with ``done()`` before anyone subscribed (and never
        appended) collapses to a terminal snapshot of its final value. A
        failed cell always hands out the chain so readers see the error.
        """
        if self._channel.closed and not (self._failed or self._subscribed or self._appended):
            return UIRevision(value=self._current, done=True)
        self._subscribed = True
        return self._root

    def _assert_open(self, method: str) -> None:
        if self._channel.closed:
            raise ClosedStreamError(method, kind="UI")

    def update(self, value: T) -> None:
        """Replace the current node. Re-publishing the same object is a no-op."""
        self._assert_open(".update()")
        if value is self._current:
            self._warning.rearm()
            return
        self._current = value
        self._channel.push(lambda nxt: UIRevision(value=value, next=nxt))
        self._warning.rearm()

    def append(self, value: T) -> None:
        """Append a node after the current one; the previous node is frozen."""
        self._assert_open(".append()")
        self._current = value
        self._appended = True
        self._channel.push(lambda nxt: UIRevision(value=value, append=True, next=nxt))
        self._warning.rearm()

    def error(self, error: BaseException) -> None:
        self._assert_open(".error()")
        self._warning.cancel()
        self._failed = True
        self._channel.fail(error)

    def done(self, *final: T) -> None:
        """Finalize the node, optionally replacing it with a final value."""
        self._assert_open(".done()")
        self._warning.cancel()
        if final:
            self._current = final[0]
        self._channel.close(UIRevision(value=self._current, done=True))


def create_streamable_ui(initial: T | None = None) -> StreamableUI[T]:
    return StreamableUI(initial)


async def read_streamable_ui(node: UIRevision[T]) -> AsyncIterator[tuple[T | None, ...]]:
    """Yield the node's segments after every revision, starting with the initial one."""
    segments: list[T | None] = [node.value]
    yield tuple(segments)
    row = node
    while row.next is not None:
        row = await row.next
        if row.append:
            segments.append(row.value)
        elif row.done and row.value is segments[-1]:
            continue
        else:
            segments[-1] = row.value
        yield tuple(segments)
