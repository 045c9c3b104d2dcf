"""A paged bitmap holding one bit for every 32-bit value.

Pages of 65536 bits are created only when a value inside them is set,
so sparse sets of addresses stay small.
"""

from __future__ import annotations

import socket
from typing import Dict

from scancore.logger import log_fatal

_PAGE_BITS = 0x10000
_PAGE_BYTES = _PAGE_BITS // 8
_PAGE_MASK = 0xFFFF


def _split(value: int) -> tuple:
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"value out of range: {value!r}")
    return value >> 16, value & _PAGE_MASK


class PagedBitmap:
    """A set of 32-bit values backed by lazily allocated bit pages."""

    def __init__(self) -> None:
        self._pages: Dict[int, bytearray] = {}

    def check(self, value: int) -> bool:
        """Return True if the value has been set."""
        top, bottom = _split(value)
        page = self._pages.get(top)
        return page is not None and bool(page[bottom >> 3] & (1 << (bottom & 7)))

    def set(self, value: int) -> None:
        """Add the value to the bitmap."""
        top, bottom = _split(value)
        page = self._pages.get(top)
        if page is None:
            page = self._pages[top] = bytearray(_PAGE_BYTES)
        page[bottom >> 3] |= 1 << (bottom & 7)

    def __contains__(self, value: int) -> bool:
        return self.check(value)

    def load_from_file(self, path: str) -> int:
        """Set one IPv4 address per line of a file; return the number of lines.

        Text after '#' is ignored. Addresses are stored as their integer
        value. Any line that is not an address is fatal.
        """
        try:
            handle = open(path, "r")
        except OSError as exc:
            log_fatal("pbm", "unable to open file: %s: %s", path, exc.strerror)
        count = 0
        with handle:
            for line in handle:
                text = line.split("#", 1)[0].strip()
                try:
                    packed = socket.inet_aton(text)
                except (OSError, ValueError):
                    log_fatal("pbm", "unable to parse IP address: %s", line)
                self.set(int.from_bytes(packed, "big"))
                count += 1
        return count