"""Random object names and payloads for probe checks."""

from __future__ import annotations

import secrets

from ..constants import OBJECT_NAME_HEX_LENGTH


def random_hex(length: int = OBJECT_NAME_HEX_LENGTH) -> str:
    """Generate a random lowercase hex string of exactly ``length`` characters."""
    return secrets.token_hex((length + 1) // 2)[:length]


def random_object(size: int) -> bytes:
    """Generate ``size`` random bytes used as an object payload."""
    return secrets.token_bytes(size)
