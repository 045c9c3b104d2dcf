"""Address constraints, allow and block lists, AES-based random words, result records and filters for IPv4 scanners."""

__version__ = "0.1.0"

__all__ = [
    "aesrand",
    "blocklist",
    "constraint",
    "csvindex",
    "expression",
    "fieldset",
    "logger",
    "pbm",
    "randbytes",
    "redisio",
    "util",
]