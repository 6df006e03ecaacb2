"""Chat client: conversation state reconciled from streamed responses.

- ChatSession: append/reload/stop and automatic tool roundtrips
- StreamReconciler: folds protocol events into messages and data
- ChatTransport/HttpChatTransport: request bytes from an endpoint
"""

from .reconcile import (
    ChatPhase,
    ConversationState,
    CycleOutcome,
    CycleStatus,
    OnToolCall,
    OnUpdate,
    StreamReconciler,
)
from .roundtrip import count_trailing_assistant_messages, is_assistant_message_with_completed_tool_calls, should_auto_submit
from .session import ChatSession, OnError, OnFinish
from .transport import ChatTransport, HttpChatTransport
from .types import (
    ChatRequest,
    ChatRequestOptions,
    CreateMessage,
    FunctionCall,
    Message,
    MessageRole,
    ToolInvocation,
    ToolInvocationState,
)

__all__ = [
    # Types
    "Message", "MessageRole", "CreateMessage", "FunctionCall", "ToolInvocation", "ToolInvocationState",
    "ChatRequest", "ChatRequestOptions",
    # Reconciliation
    "ChatPhase", "ConversationState", "CycleOutcome", "CycleStatus", "StreamReconciler",
    "OnUpdate", "OnToolCall", "OnFinish", "OnError",
    # Roundtrips
    "should_auto_submit", "count_trailing_assistant_messages", "is_assistant_message_with_completed_tool_calls",
    # Session & transport
    "ChatSession", "ChatTransport", "HttpChatTransport",
]
