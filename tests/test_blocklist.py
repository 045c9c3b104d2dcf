import ipaddress
import socket
from unittest import mock

import pytest

from scancore.blocklist import Blocklist, BlocklistError, CidrEntry
from scancore.logger import FatalError


def ip(text):
    return int(ipaddress.IPv4Address(text))


def test_default_allows_everything_but_zero_address():
    bl = Blocklist()
    assert bl.is_allowed("1.2.3.4")
    assert not bl.is_allowed("0.0.0.0")
    assert bl.count_allowed() + bl.count_not_allowed() == 1 << 32
    assert bl.count_not_allowed() == 1


def test_first_index_skips_zero_address():
    bl = Blocklist()
    assert bl.lookup_index(0) == 1


def test_blocklist_entries():
    bl = Blocklist(blocklist_entries=["10.0.0.0/8"])
    assert not bl.is_allowed("10.1.2.3")
    assert bl.is_allowed("11.0.0.0")
    assert bl.ip_to_index("10.0.0.1") == 0
    assert bl.ip_to_index(ip("11.0.0.1")) == 1
    assert bl.count_allowed() + bl.count_not_allowed() == 1 << 32


def test_allowlist_entries_count_and_lookup():
    bl = Blocklist(allowlist_entries=["192.168.0.0/24"])
    assert bl.count_allowed() == 256
    assert bl.lookup_index(0) == ip("192.168.0.0")
    assert bl.is_allowed("192.168.0.200")
    assert not bl.is_allowed("192.168.1.0")


def test_lookup_covers_exactly_allowed_addresses():
    bl = Blocklist(allowlist_entries=["192.168.0.0/24"], blocklist_entries=["192.168.0.128/25"])
    count = bl.count_allowed()
    found = {bl.lookup_index(i) for i in range(count)}
    base = ip("192.168.0.0")
    assert found == set(range(base, base + 128))
    with pytest.raises(IndexError):
        bl.lookup_index(count)


def test_cidr_records():
    bl = Blocklist(allowlist_entries=["192.168.0.0/24"], blocklist_entries=["192.168.0.5"])
    assert bl.allowlisted_cidrs() == [CidrEntry(ip("192.168.0.0"), 24)]
    blocked = bl.blocklisted_cidrs()
    assert blocked[0] == CidrEntry(ip("192.168.0.5"), 32)
    assert str(blocked[-1]) == "0.0.0.0/32"


def test_prefix_methods_update_lookups():
    bl = Blocklist()
    bl.blocklist_prefix("172.16.0.0", 12)
    assert not bl.is_allowed("172.20.1.1")
    bl.allowlist_prefix("172.20.0.0", 16)
    assert bl.is_allowed("172.20.1.1")
    assert not bl.is_allowed("172.21.0.0")
    assert bl.count_allowed() + bl.count_not_allowed() == 1 << 32
    with pytest.raises(ValueError):
        bl.blocklist_prefix("not an address", 8)


def test_files(tmp_path):
    allow = tmp_path / "allow.txt"
    allow.write_text("# comment only\n\n10.0.0.0/24  # trailing\n10.0.1.0/24\n")
    block = tmp_path / "block.txt"
    block.write_text("10.0.0.0/25\n")
    bl = Blocklist(allowlist_file=str(allow), blocklist_file=str(block))
    assert bl.count_allowed() == 384
    assert not bl.is_allowed("10.0.0.1")
    assert bl.is_allowed("10.0.0.200")
    assert bl.is_allowed("10.0.1.7")


def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(FatalError):
        Blocklist(blocklist_file=str(tmp_path / "nope.txt"))


def test_invalid_prefix_length_is_fatal():
    with pytest.raises(FatalError):
        Blocklist(blocklist_entries=["10.0.0.0/33"])


def test_everything_blocked_raises():
    with pytest.raises(BlocklistError):
        Blocklist(blocklist_entries=["0.0.0.0/0"])


@mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no such host"))
def test_unresolvable_host(_getaddrinfo):
    with pytest.raises(FatalError):
        Blocklist(blocklist_entries=["nosuchhost.example.com"])
    bl = Blocklist(blocklist_entries=["nosuchhost.example.com"], ignore_invalid_hosts=True)
    assert bl.count_not_allowed() == 1


@mock.patch(
    "socket.getaddrinfo",
    return_value=[(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("203.0.113.5", 0))],
)
def test_hostname_resolution(_getaddrinfo):
    bl = Blocklist(allowlist_entries=["host.example.com"])
    assert bl.count_allowed() == 1
    assert bl.lookup_index(0) == ip("203.0.113.5")