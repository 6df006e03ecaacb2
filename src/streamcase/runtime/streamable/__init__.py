"""Streamable cells: values and UI nodes published as lazy revision chains."""

from .render import (
    ComposeProps,
    RenderedCall,
    Renderer,
    RendererKind,
    TextProps,
    ToolUI,
    as_renderer,
    default_compose,
    render,
)
from .revision import IdleWarning, Patch, RevisionChannel, RevisionRef
from .ui import StreamableUI, UIRevision, create_streamable_ui, read_streamable_ui
from .value import StreamableValue, ValueRevision, create_streamable_value, read_streamable_value

__all__ = [
    # Revisions
    "Patch", "RevisionRef", "RevisionChannel", "IdleWarning",
    # Cells
    "StreamableValue", "ValueRevision", "create_streamable_value", "read_streamable_value",
    "StreamableUI", "UIRevision", "create_streamable_ui", "read_streamable_ui",
    # Rendering
    "render", "Renderer", "RendererKind", "as_renderer", "ToolUI",
    "TextProps", "ComposeProps", "RenderedCall", "default_compose",
]
