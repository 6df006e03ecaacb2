"""Concurrency helpers for async stream multiplexing."""

from .stream import merge_streams, pump

__all__ = ["merge_streams", "pump"]
