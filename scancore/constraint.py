"""Prefix-painting constraints over the IPv4 address space.

Every address carries a value. Values are assigned to network prefixes,
and a later assignment replaces whatever the prefix (or any part of it)
held before. The space is stored as a binary tree whose root is
0.0.0.0/0. Each leaf holds the value of every address beneath it.

Painting a value precomputes per-node counts so that the n-th address
with that value can be found quickly. Every /20 prefix wholly covered by
the painted value is kept in a radix table. Those prefixes come first in
index order, followed by the addresses that remain in the tree.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import List, Optional

from scancore.logger import log_debug

RADIX_LENGTH = 20
_RADIX_BLOCK = 1 << (32 - RADIX_LENGTH)
_ADDRESS_SPACE = 1 << 32
_TOP_BIT = 0x80000000
_MASK32 = 0xFFFFFFFF


class _Node:
    __slots__ = ("left", "right", "value", "count")

    def __init__(self, value: int) -> None:
        self.left: Optional[_Node] = None
        self.right: Optional[_Node] = None
        self.value = value
        self.count = 0

    @property
    def is_leaf(self) -> bool:
        return self.left is None

    def make_leaf(self, value: int) -> None:
        self.left = None
        self.right = None
        self.value = value


def _set_recurse(node: _Node, prefix: int, length: int, value: int) -> None:
    if length == 0:
        node.make_leaf(value)
        return
    if node.is_leaf:
        if node.value == value:
            return
        node.left = _Node(node.value)
        node.right = _Node(node.value)
    child = node.right if prefix & _TOP_BIT else node.left
    _set_recurse(child, (prefix << 1) & _MASK32, length - 1, value)
    left, right = node.left, node.right
    if left.is_leaf and right.is_leaf and left.value == right.value:
        node.make_leaf(left.value)


def _count_recurse(node: _Node, value: int, size: int, paint: bool, exclude_radix: bool) -> int:
    if node.is_leaf:
        if node.value != value:
            n = 0
        elif exclude_radix and size >= _RADIX_BLOCK:
            n = 0
        else:
            n = size
    else:
        half = size >> 1
        n = _count_recurse(node.left, value, half, paint, exclude_radix) + _count_recurse(
            node.right, value, half, paint, exclude_radix
        )
    if paint:
        node.count = n
    return n


def _check_address(address: int) -> None:
    if not 0 <= address < _ADDRESS_SPACE:
        raise ValueError(f"address out of range: {address!r}")


class Constraint:
    """Values for every IPv4 address, assigned by prefix."""

    def __init__(self, value: int) -> None:
        self._root = _Node(value)
        self._painted = False
        self._paint_value: Optional[int] = None
        # Radix table as runs of consecutive /20 prefixes: the radix index of
        # each run's first block, and that block's prefix.
        self._run_firsts: List[int] = []
        self._run_starts: List[int] = []
        self._radix_len = 0

    def set(self, prefix: int, length: int, value: int) -> None:
        """Give every address in prefix/length the value."""
        _check_address(prefix)
        if not 0 <= length <= 32:
            raise ValueError(f"prefix length out of range: {length!r}")
        _set_recurse(self._root, prefix, length, value)
        self._painted = False

    def lookup_ip(self, address: int) -> int:
        """Return the value of one address."""
        _check_address(address)
        node = self._root
        mask = _TOP_BIT
        while not node.is_leaf:
            node = node.right if address & mask else node.left
            mask >>= 1
        return node.value

    def count_ips(self, value: int) -> int:
        """Return how many addresses hold the value."""
        if self._painted and self._paint_value == value:
            return self._root.count + self._radix_len * _RADIX_BLOCK
        return _count_recurse(self._root, value, _ADDRESS_SPACE, False, False)

    def paint_value(self, value: int) -> None:
        """Precompute counts and the radix table for one value."""
        log_debug("constraint", "Painting value %s", value)
        _count_recurse(self._root, value, _ADDRESS_SPACE, True, True)
        self._run_firsts = []
        self._run_starts = []
        self._radix_len = 0
        self._collect_radix(self._root, 0, 0, value)
        log_debug(
            "constraint",
            "%d IPs in radix array, %d IPs in tree",
            self._radix_len * _RADIX_BLOCK,
            self._root.count,
        )
        self._painted = True
        self._paint_value = value

    def _collect_radix(self, node: _Node, prefix: int, depth: int, value: int) -> None:
        if node.is_leaf:
            if node.value == value:
                self._run_firsts.append(self._radix_len)
                self._run_starts.append(prefix)
                self._radix_len += 1 << (RADIX_LENGTH - depth)
            return
        if depth == RADIX_LENGTH:
            return
        self._collect_radix(node.left, prefix, depth + 1, value)
        self._collect_radix(node.right, prefix | (1 << (31 - depth)), depth + 1, value)

    def lookup_index(self, index: int, value: int) -> int:
        """Return the address with zero-based position index among those holding value."""
        if not self._painted or self._paint_value != value:
            self.paint_value(value)
        if index < 0:
            raise IndexError(f"index out of range: {index}")
        radix_idx = index // _RADIX_BLOCK
        if radix_idx < self._radix_len:
            run = bisect_right(self._run_firsts, radix_idx) - 1
            block = self._run_starts[run] + (radix_idx - self._run_firsts[run]) * _RADIX_BLOCK
            return block | (index % _RADIX_BLOCK)
        n = index - self._radix_len * _RADIX_BLOCK
        if n >= self._root.count:
            raise IndexError(f"index out of range: {index}")
        node = self._root
        ip = 0
        mask = _TOP_BIT
        while not node.is_leaf:
            if n < node.left.count:
                node = node.left
            else:
                n -= node.left.count
                node = node.right
                ip |= mask
            mask >>= 1
        return ip | n