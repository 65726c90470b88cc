"""EVM (eip155) CAIP-10 validation and EIP-55 checksum normalization.

Reference: https://eips.ethereum.org/EIPS/eip-55
"""

import re

from app.omatrust.hashing import keccak256

from . import ValidationResult

_HEX_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_CHAIN_ID_RE = re.compile(r"^[0-9]+$")


def to_checksum_address(address: str) -> str:
    """Return the EIP-55 mixed-case form of a 20-byte hex address.

    Each hex letter is uppercased when the matching nibble of
    keccak256(lowercase hex, as ASCII) is >= 8.

    Raises:
        ValueError: If address is not 0x + 40 hex characters.
    """
    if not _HEX_ADDRESS_RE.match(address):
        raise ValueError(f"Invalid EVM address: {address}")

    lower = address[2:].lower()
    digest = keccak256(lower.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(lower)
    )


def is_evm_address(address: str) -> bool:
    """True for any 0x + 40 hex string, regardless of casing."""
    return bool(_HEX_ADDRESS_RE.match(address or ""))


def is_checksum_address(address: str) -> bool:
    """True when the address is already in EIP-55 form."""
    return is_evm_address(address) and to_checksum_address(address) == address


def validate_evm(reference: str, address: str) -> ValidationResult:
    """Validate EVM CAIP-10 components.

    Args:
        reference: Decimal chain id (e.g. "1", "137").
        address: 0x-prefixed 20-byte hex address, any casing.

    Returns:
        ValidationResult with the EIP-55 checksummed address.
    """
    if not _CHAIN_ID_RE.match(reference):
        return ValidationResult.failure("Chain reference must be a valid numeric chainId")
    chain_id = int(reference)

    if not address.startswith("0x"):
        return ValidationResult.failure("EVM address must start with 0x")

    if len(address) != 42:
        return ValidationResult.failure(
            "EVM address must be 20 bytes (0x + 40 hex characters)"
        )

    if not _HEX_ADDRESS_RE.match(address):
        return ValidationResult.failure(
            "EVM address must contain only hexadecimal characters"
        )

    return ValidationResult(
        valid=True,
        normalized_address=to_checksum_address(address),
        chain_id=chain_id,
    )
