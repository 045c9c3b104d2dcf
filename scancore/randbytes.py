"""Cryptographically secure random bytes from the operating system."""

from __future__ import annotations

import os


def random_bytes(n: int) -> bytes:
    """Return n bytes from the system's secure random source."""
    if n < 0:
        raise ValueError("byte count must not be negative")
    return os.urandom(n)