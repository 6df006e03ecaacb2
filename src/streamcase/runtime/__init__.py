"""Runtime - Execution flow and monitoring.

Contains: streamable cells and rendering, stream concurrency, observability.
"""

from __future__ import annotations

__all__ = [
    # Streamable
    "StreamableValue", "ValueRevision", "create_streamable_value", "read_streamable_value",
    "StreamableUI", "UIRevision", "create_streamable_ui", "read_streamable_ui",
    "Patch", "RevisionRef", "RevisionChannel", "IdleWarning",
    "render", "Renderer", "RendererKind", "ToolUI", "TextProps", "ComposeProps", "RenderedCall",
    # Concurrency
    "merge_streams", "pump",
    # Observability
    "BoundLogger", "get_logger", "configure_logging", "configure_from_settings", "log_context",
    "ConsoleRenderer", "JsonRenderer", "NoOpRenderer", "CaptureRenderer",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("StreamableValue", "ValueRevision", "create_streamable_value", "read_streamable_value",
                "StreamableUI", "UIRevision", "create_streamable_ui", "read_streamable_ui",
                "Patch", "RevisionRef", "RevisionChannel", "IdleWarning",
                "render", "Renderer", "RendererKind", "ToolUI", "TextProps", "ComposeProps", "RenderedCall"):
        from . import streamable
        return getattr(streamable, name)

    if name in ("merge_streams", "pump"):
        from . import concurrency
        return getattr(concurrency, name)

    if name in ("BoundLogger", "get_logger", "configure_logging", "configure_from_settings", "log_context",
                "ConsoleRenderer", "JsonRenderer", "NoOpRenderer", "CaptureRenderer"):
        from . import observability
        return getattr(observability, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
