"""Revision channel shared by streamable values and UI cells.

A producer publishes revisions one at a time over a single-producer /
single-consumer channel. Exactly one ``RevisionRef`` is open (unresolved)
while the channel is open; publishing resolves it with a revision that
points at a fresh open ref. Consumers pull by awaiting refs, so a slow
consumer only delays observation and never blocks the producer.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from streamcase.foundation.config import get_settings
from streamcase.runtime.observability import get_logger

R = TypeVar("R")

log = get_logger("streamcase.streamable")


@dataclass(slots=True, frozen=True)
class Patch:
    """Compact encoding of a string update: keep ``offset`` chars, add ``suffix``."""
    offset: int
    suffix: str

    def apply(self, base: str) -> str:
        return base[:self.offset] + self.suffix

    @classmethod
    def between(cls, old: object, new: object) -> Patch | None:
        """Patch turning ``old`` into ``new``, when ``new`` extends ``old``."""
        if isinstance(old, str) and isinstance(new, str) and new.startswith(old):
            return cls(len(old), new[len(old):])
        return None


class RevisionRef(Generic[R]):
    """Deferred reference to the next revision.

    Awaiting a resolved ref returns the same revision every time; awaiting a
    rejected ref raises the producer's error every time.
    """

    __slots__ = ("_event", "_revision", "_error")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._revision: R | None = None
        self._error: BaseException | None = None

    @property
    def resolved(self) -> bool:
        return self._event.is_set()

    def _resolve(self, revision: R) -> None:
        self._revision = revision
        self._event.set()

    def _reject(self, error: BaseException) -> None:
        self._error = error
        self._event.set()

    async def get(self) -> R:
        await self._event.wait()
        if self._error is not None:
            raise self._error
        return self._revision  # type: ignore[return-value]

    def __await__(self):  # type: ignore[no-untyped-def]
        return self.get().__await__()

    def __repr__(self) -> str:
        state = "rejected" if self._error is not None else "resolved" if self.resolved else "open"
        return f"RevisionRef({state})"


class RevisionChannel(Generic[R]):
    """Single-producer channel holding at most one unresolved revision."""

    __slots__ = ("_open", "_count")

    def __init__(self) -> None:
        self._open: RevisionRef[R] | None = RevisionRef()
        self._count = 0

    @property
    def head(self) -> RevisionRef[R] | None:
        """The open ref consumers will pull next (None once closed)."""
        return self._open

    @property
    def closed(self) -> bool:
        return self._open is None

    @property
    def count(self) -> int:
        """Number of revisions published so far."""
        return self._count

    def _take(self) -> RevisionRef[R]:
        if self._open is None:
            raise RuntimeError("revision channel is closed")
        current, self._open = self._open, None
        return current

    def push(self, build: Callable[[RevisionRef[R]], R]) -> None:
        """Publish ``build(next_ref)`` and open ``next_ref`` as the new tail."""
        current = self._take()
        self._open = nxt = RevisionRef()
        self._count += 1
        current._resolve(build(nxt))

    def close(self, final: R) -> None:
        """Publish a terminal revision; nothing may follow it."""
        self._count += 1
        self._take()._resolve(final)

    def fail(self, error: BaseException) -> None:
        self._take()._reject(error)


class IdleWarning:
    """Logs a warning when a cell stays open without activity for too long.

    Only armed inside a running event loop, and by default only in the
    development environment (``STREAMCASE_STREAMABLE_WARN_UNCLOSED``).
    """

    __slots__ = ("_label", "_delay", "_enabled", "_handle")

    def __init__(self, label: str, delay: float | None = None, enabled: bool | None = None) -> None:
        settings = get_settings()
        self._label = label
        self._delay = settings.streamable.warning_time if delay is None else delay
        self._enabled = settings.warn_unclosed_streams if enabled is None else enabled
        self._handle: asyncio.TimerHandle | None = None

    def rearm(self) -> None:
        self.cancel()
        if not self._enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        log.warning(
            f"The streamable {self._label} has been slow to update. This may be a bug or a "
            "performance issue or you forgot to call `.done()`.",
            idle_seconds=self._delay,
        )
