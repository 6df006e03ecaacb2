"""Automatic tool-call roundtrips.

When every tool call in the last assistant message has a result, the
conversation can be sent back to the endpoint without user input. The
number of consecutive assistant messages bounds how often this happens,
so a misconfigured tool cannot loop forever.
"""

from __future__ import annotations

from collections.abc import Sequence

from .types import Message, MessageRole


def is_assistant_message_with_completed_tool_calls(message: Message) -> bool:
    """Assistant message with at least one tool invocation, all of them answered."""
    return (
        message.role is MessageRole.ASSISTANT
        and bool(message.tool_invocations)
        and all(inv.has_result for inv in message.tool_invocations or ())
    )


def count_trailing_assistant_messages(messages: Sequence[Message]) -> int:
    count = 0
    for message in reversed(messages):
        if message.role is not MessageRole.ASSISTANT:
            break
        count += 1
    return count


def should_auto_submit(messages: Sequence[Message], max_roundtrips: int) -> bool:
    """Whether the conversation should be re-sent automatically."""
    if max_roundtrips <= 0 or not messages:
        return False
    return (
        is_assistant_message_with_completed_tool_calls(messages[-1])
        and count_trailing_assistant_messages(messages) <= max_roundtrips
    )
