"""Short random identifiers for messages and tool calls."""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable

_ALPHABET = string.ascii_letters + string.digits

IdGenerator = Callable[[], str]


def generate_id(size: int = 7) -> str:
    """URL-safe alphanumeric id (7 chars by default)."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(size))
