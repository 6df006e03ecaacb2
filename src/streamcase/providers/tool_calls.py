"""Merge index-keyed tool call deltas into tool-call events.

Chat-completion style APIs stream tool calls as fragments keyed by a
position index: the first fragment carries the id and name, later ones
carry slices of the JSON argument text. ``ToolCallDeltaMerger`` turns
those fragments into ``ToolCallStart`` / ``ToolCallArgsDelta`` events and
emits ``ToolCallComplete`` as soon as the accumulated text parses.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from streamcase.foundation.ids import IdGenerator, generate_id
from streamcase.io.streaming import StreamPart, ToolCallArgsDelta, ToolCallComplete, ToolCallStart, try_decode
from streamcase.runtime.observability import get_logger

log = get_logger("streamcase.providers")


@dataclass(slots=True)
class _PendingCall:
    tool_call_id: str
    tool_name: str = ""
    args_text: str = ""
    started: bool = False
    complete: bool = False


@dataclass(slots=True)
class ToolCallDeltaMerger:
    generate_id: IdGenerator = generate_id
    _calls: dict[int, _PendingCall] = field(default_factory=dict)

    def feed(
        self,
        index: int,
        *,
        id: str | None = None,  # noqa: A002
        name: str | None = None,
        arguments: str | None = None,
    ) -> list[StreamPart]:
        """Apply one fragment; returns the events it produced."""
        call = self._calls.get(index)
        if call is None:
            call = self._calls[index] = _PendingCall(tool_call_id=id or self.generate_id())
        if call.complete:
            log.debug("fragment after completed tool call ignored", index=index, tool_call_id=call.tool_call_id)
            return []
        if name:
            call.tool_name = name

        parts: list[StreamPart] = []
        if not call.started and call.tool_name:
            call.started = True
            parts.append(ToolCallStart(call.tool_call_id, call.tool_name))
        if arguments:
            call.args_text += arguments
            parts.append(ToolCallArgsDelta(call.tool_call_id, arguments, call.tool_name))

        if call.tool_name and call.args_text:
            ok, args = try_decode(call.args_text)
            if ok:
                call.complete = True
                parts.append(ToolCallComplete(call.tool_call_id, call.tool_name, args))
        return parts

    @property
    def incomplete(self) -> list[str]:
        """Ids of tool calls whose arguments never became valid JSON."""
        return [c.tool_call_id for c in self._calls.values() if not c.complete]
