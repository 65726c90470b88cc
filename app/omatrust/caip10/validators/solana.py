"""Solana CAIP-10 validation.

Reference format: "mainnet", "devnet", "testnet"
Address format: base58-encoded 32-byte public key (case preserved)
"""

import re
from typing import Optional

import base58

from app.core.config import SOLANA_REFERENCES

from . import ValidationResult

# Bitcoin/Solana alphabet: no 0, O, I or l
_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")

SOLANA_ADDRESS_BYTES = 32


def is_base58(value: str) -> bool:
    """Check that every character is in the base58 alphabet."""
    return bool(_BASE58_RE.match(value or ""))


def decode_base58(value: str) -> Optional[bytes]:
    """Decode a base58 string, preserving leading zero bytes.

    Each leading '1' decodes to one leading zero byte.

    Returns:
        Decoded bytes, or None for empty input or characters outside the alphabet.
    """
    if not is_base58(value):
        return None
    try:
        return base58.b58decode(value)
    except ValueError:
        return None


def encode_base58(data: bytes) -> str:
    """Encode bytes as base58 (leading zero bytes become leading '1's)."""
    return base58.b58encode(data).decode("ascii")


def validate_solana(reference: str, address: str) -> ValidationResult:
    """Validate Solana CAIP-10 components."""
    if reference.lower() not in SOLANA_REFERENCES:
        return ValidationResult.failure(
            f"Solana reference must be one of: {', '.join(SOLANA_REFERENCES)}"
        )

    if not is_base58(address):
        return ValidationResult.failure(
            "Solana address must be base58-encoded (no 0, O, I, or l)"
        )

    decoded = decode_base58(address)
    if decoded is None:
        return ValidationResult.failure("Invalid base58 encoding")

    if len(decoded) != SOLANA_ADDRESS_BYTES:
        return ValidationResult.failure(
            f"Solana address must decode to {SOLANA_ADDRESS_BYTES} bytes "
            f"(got {len(decoded)})"
        )

    # Solana addresses are already canonical
    return ValidationResult(valid=True, normalized_address=address)
