"""Allow and block lists of IPv4 networks that decide which addresses may be scanned."""

from __future__ import annotations

import ipaddress
import re
import socket
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from scancore.constraint import Constraint
from scancore.logger import log_debug, log_error, log_fatal, log_warn

ADDR_DISALLOWED = 0
ADDR_ALLOWED = 1

_ADDRESS_SPACE = 1 << 32
_PREFIX_LEN = re.compile(r"\s*[+-]?\d+")

Address = Union[int, str]


class BlocklistError(Exception):
    """Raised when the configuration leaves no address eligible to scan."""


@dataclass(frozen=True)
class CidrEntry:
    """A network that was added to the allow or block list."""

    ip_address: int
    prefix_len: int

    def __str__(self) -> str:
        return f"{ipaddress.IPv4Address(self.ip_address)}/{self.prefix_len}"


def _to_int(address: Address) -> int:
    if isinstance(address, int):
        if not 0 <= address < _ADDRESS_SPACE:
            raise ValueError(f"address out of range: {address!r}")
        return address
    return int(ipaddress.IPv4Address(address))


def _parse_dotted(text: str) -> Optional[int]:
    try:
        return int.from_bytes(socket.inet_aton(text), "big")
    except (OSError, ValueError):
        return None


class Blocklist:
    """Decides, for every IPv4 address, whether it may be scanned."""

    def __init__(
        self,
        allowlist_file: Optional[str] = None,
        blocklist_file: Optional[str] = None,
        allowlist_entries: Optional[Iterable[str]] = None,
        blocklist_entries: Optional[Iterable[str]] = None,
        ignore_invalid_hosts: bool = False,
    ) -> None:
        self._blocklisted: List[CidrEntry] = []
        self._allowlisted: List[CidrEntry] = []
        allow_entries = list(allowlist_entries) if allowlist_entries is not None else []
        block_entries = list(blocklist_entries) if blocklist_entries is not None else []

        if allowlist_file and allow_entries:
            log_warn(
                "allowlist",
                "both a allowlist file and destination addresses were specified. "
                "The union of these two sources will be utilized.",
            )
        if allowlist_file or allow_entries:
            # Using an allowlist, so default to allowing nothing.
            self._constraint = Constraint(ADDR_DISALLOWED)
            log_debug("constraint", "blocklisting 0.0.0.0/0")
            if allowlist_file:
                self._load_file(allowlist_file, "allowlist", ADDR_ALLOWED, ignore_invalid_hosts)
            if allow_entries:
                self._load_entries(allow_entries, ADDR_ALLOWED, ignore_invalid_hosts)
        else:
            log_debug("blocklist", "no allowlist file or allowlist entries provided")
            self._constraint = Constraint(ADDR_ALLOWED)
        if blocklist_file:
            self._load_file(blocklist_file, "blocklist", ADDR_DISALLOWED, ignore_invalid_hosts)
        if block_entries:
            self._load_entries(block_entries, ADDR_DISALLOWED, ignore_invalid_hosts)
        self._add_from_string("0.0.0.0", ADDR_DISALLOWED)
        self._constraint.paint_value(ADDR_ALLOWED)

        allowed = self.count_allowed()
        log_debug(
            "constraint",
            "%d addresses (%0.0f%% of address space) can be scanned",
            allowed,
            allowed * 100.0 / _ADDRESS_SPACE,
        )
        if not allowed:
            log_error(
                "blocklist",
                "no addresses are eligible to be scanned in the current configuration. "
                "This may be because the blocklist being used (%s) prevents any "
                "addresses from receiving probe packets.",
                blocklist_file,
            )
            raise BlocklistError("no addresses are eligible to be scanned")

    def _add_constraint(self, address: int, prefix_len: int, value: int) -> None:
        self._constraint.set(address, prefix_len, value)
        entry = CidrEntry(address, prefix_len)
        if value == ADDR_ALLOWED:
            self._allowlisted.append(entry)
        elif value == ADDR_DISALLOWED:
            self._blocklisted.append(entry)
        else:
            log_fatal("blocklist", "unknown type of blocklist operation specified")

    def _add_from_string(self, entry: str, value: int) -> bool:
        host = entry
        prefix_len = 32
        if "/" in entry:
            host, _, length_text = entry.partition("/")
            match = _PREFIX_LEN.match(length_text)
            prefix_len = int(match.group(0)) if match else -1
            if not 0 <= prefix_len <= 32:
                log_fatal("constraint", "'%s' is not a valid prefix length", length_text)
        address = _parse_dotted(host)
        if address is not None:
            self._add_constraint(address, prefix_len, value)
            return True
        # Neither an address nor a CIDR block: try name resolution.
        try:
            results = socket.getaddrinfo(host, None, socket.AF_INET)
        except (socket.gaierror, UnicodeError, ValueError):
            log_error("constraint", "'%s' is not a valid IP address or hostname", host)
            return False
        added = False
        for family, _type, _proto, _canon, sockaddr in results:
            if family != socket.AF_INET:
                continue
            resolved = _parse_dotted(sockaddr[0])
            if resolved is None:
                continue
            log_debug("constraint", "%s retrieved by hostname", sockaddr[0])
            self._add_constraint(resolved, prefix_len, value)
            added = True
        return added

    def _load_file(self, path: str, name: str, value: int, ignore_invalid_hosts: bool) -> None:
        try:
            handle = open(path, "r")
        except OSError as exc:
            log_fatal(name, "unable to open %s file: %s: %s", name, path, exc.strerror)
        with handle:
            for line in handle:
                tokens = line.split("#", 1)[0].split()
                if not tokens:
                    continue
                if not self._add_from_string(tokens[0], value) and not ignore_invalid_hosts:
                    log_fatal(name, "unable to parse %s file: %s", name, path)

    def _load_entries(self, entries: List[str], value: int, ignore_invalid_hosts: bool) -> None:
        for entry in entries:
            if not self._add_from_string(entry, value) and not ignore_invalid_hosts:
                log_fatal("constraint", "Unable to init from CIDR list")

    def lookup_index(self, index: int) -> int:
        """Return the allowed address at zero-based position index."""
        return self._constraint.lookup_index(index, ADDR_ALLOWED)

    def is_allowed(self, address: Address) -> bool:
        """Return True if the address may be scanned."""
        return self._constraint.lookup_ip(_to_int(address)) == ADDR_ALLOWED

    def blocklist_prefix(self, ip: str, prefix_len: int) -> None:
        """Block a network given as a dotted address and a prefix length."""
        address = _parse_dotted(ip)
        if address is None:
            raise ValueError(f"invalid IPv4 address: {ip!r}")
        self._add_constraint(address, prefix_len, ADDR_DISALLOWED)

    def allowlist_prefix(self, ip: str, prefix_len: int) -> None:
        """Allow a network given as a dotted address and a prefix length."""
        address = _parse_dotted(ip)
        if address is None:
            raise ValueError(f"invalid IPv4 address: {ip!r}")
        self._add_constraint(address, prefix_len, ADDR_ALLOWED)

    def count_allowed(self) -> int:
        return self._constraint.count_ips(ADDR_ALLOWED)

    def count_not_allowed(self) -> int:
        return self._constraint.count_ips(ADDR_DISALLOWED)

    def ip_to_index(self, address: Address) -> int:
        """Return the constraint value stored for the address."""
        return self._constraint.lookup_ip(_to_int(address))

    def blocklisted_cidrs(self) -> List[CidrEntry]:
        """Networks blocked so far, in the order they were added."""
        return list(self._blocklisted)

    def allowlisted_cidrs(self) -> List[CidrEntry]:
        """Networks allowed so far, in the order they were added."""
        return list(self._allowlisted)