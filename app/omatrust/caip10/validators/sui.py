"""Sui CAIP-10 validation.

Reference format: "mainnet", "testnet", "devnet"
Address format: 0x-prefixed 32-byte hex (64 characters). Short forms are
left-padded, e.g. 0x1 -> 0x0000...0001.
"""

import re

from app.core.config import SUI_REFERENCES

from . import ValidationResult

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_SUI_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")

SUI_ADDRESS_HEX_CHARS = 64


def normalize_0x32_bytes(address: str) -> str:
    """Normalize a Sui address to lowercase 32-byte hex.

    Raises:
        ValueError: If the prefix is missing, the body is not hex, or it is
            longer than 32 bytes.
    """
    if not address.startswith("0x"):
        raise ValueError("Sui address must start with 0x")

    body = address[2:].lower()
    if not _HEX_RE.match(body):
        raise ValueError("Sui address must contain only hexadecimal characters")

    if len(body) > SUI_ADDRESS_HEX_CHARS:
        raise ValueError("Sui address exceeds 32 bytes (64 hex characters)")

    return "0x" + body.rjust(SUI_ADDRESS_HEX_CHARS, "0")


def is_sui_address(address: str) -> bool:
    """Check Sui address shape before normalization."""
    return bool(_SUI_ADDRESS_RE.match(address or ""))


def validate_sui(reference: str, address: str) -> ValidationResult:
    """Validate Sui CAIP-10 components."""
    if reference.lower() not in SUI_REFERENCES:
        return ValidationResult.failure(
            f"Sui reference must be one of: {', '.join(SUI_REFERENCES)}"
        )

    try:
        normalized = normalize_0x32_bytes(address)
    except ValueError as e:
        return ValidationResult.failure(str(e))

    return ValidationResult(valid=True, normalized_address=normalized)
