"""Provider adapter contract and helpers for adapter authors."""

from streamcase.foundation.errors import UnsupportedFunctionalityError

from .base import (
    CallMode,
    GenerateResult,
    LanguageModel,
    ObjectJsonMode,
    ObjectToolMode,
    Prompt,
    RegularMode,
    ToolCall,
    ToolDefinition,
)
from .tool_calls import ToolCallDeltaMerger

__all__ = [
    "CallMode", "RegularMode", "ObjectJsonMode", "ObjectToolMode",
    "GenerateResult", "LanguageModel", "Prompt", "ToolCall", "ToolDefinition",
    "ToolCallDeltaMerger", "UnsupportedFunctionalityError",
]
