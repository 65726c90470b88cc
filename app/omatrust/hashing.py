"""Hash primitives shared by the identifier, DID and integrity modules.

Keccak-256 here is the original Keccak padding used by Ethereum, not the
NIST SHA3-256 variant exposed by hashlib.sha3_256.
"""

import hashlib

from Crypto.Hash import keccak


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (32 bytes)."""
    return keccak.new(digest_bits=256, data=data).digest()


def sha256(data: bytes) -> bytes:
    """SHA-256 digest (32 bytes)."""
    return hashlib.sha256(data).digest()


def to_hex(data: bytes) -> str:
    """Lowercase 0x-prefixed hex."""
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """Decode 0x-prefixed (or bare) hex to bytes.

    Raises:
        ValueError: If value is not valid hex.
    """
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)
