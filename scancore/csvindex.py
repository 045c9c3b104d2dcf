"""Locate and extract columns in simple comma-separated lines."""

from __future__ import annotations

from typing import Iterable, Optional


def find_index(header: str, names: Iterable[str]) -> Optional[int]:
    """Return the index of the first column starting with any of names."""
    names = list(names)
    columns = header.split(",")
    for idx in range(len(columns)):
        remainder = ",".join(columns[idx:])
        if any(remainder.startswith(name) for name in names):
            return idx
    return None


def get_index(row: str, idx: int) -> Optional[str]:
    """Return column idx of row, or None if the row has too few columns."""
    columns = row.split(",")
    if idx < 0 or idx >= len(columns):
        return None
    return columns[idx]