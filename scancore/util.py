"""Small helpers for argument checking, formatting and process setup."""

from __future__ import annotations

import os
import re
import textwrap
from typing import List, TextIO

from scancore.logger import log_fatal

MAX_SPLITS = 128
MAC_ADDR_LEN = 6

_ADDRESS_SPACE = 1 << 32
_NUMBER_PREFIX = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?)",
    re.IGNORECASE,
)


def check_range(value: int, lo: int, hi: int) -> bool:
    """Return True if lo <= value <= hi."""
    return lo <= value <= hi


def enforce_range(name: str, value: int, lo: int, hi: int) -> None:
    """Fail fatally if an argument lies outside [lo, hi]."""
    if not check_range(value, lo, hi):
        log_fatal("zmap", "argument `%s' must be between %d and %d", name, lo, hi)


def split_string(text: str) -> List[str]:
    """Split on commas and spaces, dropping empty fields."""
    fields = [part for part in re.split(r"[, ]", text) if part]
    if len(fields) > MAX_SPLITS:
        raise ValueError(f"too many fields (at most {MAX_SPLITS})")
    return fields


def fprintw(stream: TextIO, text: str, width: int) -> None:
    """Write text wrapped at width columns, keeping existing line breaks."""
    if len(text) <= width:
        stream.write(text)
        return
    for line in text.split("\n"):
        if not line:
            continue
        if len(line) <= width:
            stream.write(line + "\n")
            continue
        for piece in textwrap.wrap(
            line, width, break_long_words=False, break_on_hyphens=False
        ):
            stream.write(piece + "\n")


def parse_max_hosts(max_targets: str) -> int:
    """Parse a host count or a percentage of the IPv4 space."""
    match = _NUMBER_PREFIX.match(max_targets)
    if not match:
        log_fatal("argparse", "can't convert max-targets to a number")
    value = float(match.group(0))
    rest = max_targets[match.end():]
    if rest == "%":
        value = value * _ADDRESS_SPACE / 100.0
    elif rest:
        log_fatal("eargparse", "extra characters after max-targets")
    if value <= 0:
        return 0
    if value >= _ADDRESS_SPACE:
        return 0xFFFFFFFF
    return int(value)


def time_string(seconds: int, est: bool) -> str:
    """Render a duration; estimates are shown more coarsely."""
    years = seconds // 31556736
    days = (seconds % 31556736) // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if est:
        if years > 0:
            return f"{years} years"
        if days > 9:
            return f"{days}d"
        if days > 0:
            return f"{days}d{hours:02d}h"
        if hours > 9:
            return f"{hours}h"
        if hours > 0:
            return f"{hours}h{minutes:02d}m"
        if minutes > 9:
            return f"{minutes}m"
        if minutes > 0:
            return f"{minutes}m{secs:02d}s"
        return f"{secs}s"
    if days > 0:
        return f"{days}d{hours}:{minutes:02d}:{secs:02d}"
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def number_string(n: int) -> str:
    """Render a count with a K or M suffix."""
    if n < 1000:
        return f"{n} "
    if n < 1_000_000:
        if n < 10_000:
            figs = 2
        elif n < 100_000:
            figs = 1
        else:
            figs = 0
        return f"{n / 1000:.{figs}f} K"
    return f"{n / 1_000_000:.2f} M"


def parse_mac(text: str) -> bytes:
    """Parse a colon-separated MAC address into six bytes."""
    if len(text) < MAC_ADDR_LEN * 3 - 1:
        raise ValueError(f"MAC address too short: {text!r}")
    octets = bytearray()
    for i in range(MAC_ADDR_LEN):
        if i < MAC_ADDR_LEN - 1 and text[i * 3 + 2] != ":":
            raise ValueError(f"invalid MAC address: {text!r}")
        pair = text[i * 3:i * 3 + 2]
        try:
            octets.append(int(pair, 16) & 0xFF)
        except ValueError:
            raise ValueError(f"invalid MAC address: {text!r}") from None
    return bytes(octets)


def file_exists(name: str) -> bool:
    """Return True if the file can be opened for reading."""
    try:
        with open(name, "rb"):
            return True
    except OSError:
        return False


def drop_privs() -> bool:
    """When running as root, switch to user "nobody"; True on success."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() != 0:
        return True
    try:
        import pwd

        os.setuid(pwd.getpwnam("nobody").pw_uid)
    except (ImportError, KeyError, OSError):
        return False
    return True


def set_cpu(core: int) -> bool:
    """Pin the calling thread to one CPU core; True on success."""
    setaffinity = getattr(os, "sched_setaffinity", None)
    if setaffinity is None:
        return False
    try:
        setaffinity(0, {core})
    except (OSError, ValueError, OverflowError):
        return False
    return True