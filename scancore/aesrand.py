"""A deterministic pseudo-random word generator built on AES-128."""

from __future__ import annotations

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from scancore.randbytes import random_bytes

AES_KEY_BYTES = 16
_BLOCK_BYTES = 16


class AesRand:
    """Produces 64-bit words by repeatedly encrypting the previous block."""

    def __init__(self, key: bytes) -> None:
        key = bytes(key)
        if len(key) != AES_KEY_BYTES:
            raise ValueError(f"key must be {AES_KEY_BYTES} bytes, got {len(key)}")
        self._encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
        self._output = bytes(_BLOCK_BYTES)

    @classmethod
    def from_seed(cls, seed: int) -> "AesRand":
        """Build a generator whose key is the 64-bit seed, little-endian, zero-padded."""
        if not 0 <= seed < 1 << 64:
            raise ValueError(f"seed must be a 64-bit unsigned integer: {seed!r}")
        return cls(seed.to_bytes(8, "little") + bytes(AES_KEY_BYTES - 8))

    @classmethod
    def from_random(cls) -> "AesRand":
        """Build a generator keyed from the system's secure random source."""
        return cls(random_bytes(AES_KEY_BYTES))

    def getword(self) -> int:
        """Return the next 64-bit word."""
        self._output = self._encryptor.update(self._output)
        return int.from_bytes(self._output[:8], "little")