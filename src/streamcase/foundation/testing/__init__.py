"""Testing utilities: scripted transports and models for deterministic tests."""

from .mock import MockLanguageModel, MockTransport

__all__ = ["MockTransport", "MockLanguageModel"]
