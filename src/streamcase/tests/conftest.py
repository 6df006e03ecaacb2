"""Shared fixtures: quiet logging and fresh settings for every test."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from streamcase.foundation.config import clear_settings_cache
from streamcase.runtime.observability import CaptureRenderer, configure_logging


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Silence log output and reset cached settings around each test."""
    clear_settings_cache()
    configure_logging(format="none")
    yield
    clear_settings_cache()


@pytest.fixture
def captured_logs() -> CaptureRenderer:
    """Record log entries (DEBUG and up) for assertions."""
    capture = CaptureRenderer()
    configure_logging(level="DEBUG", renderer=capture)
    return capture
