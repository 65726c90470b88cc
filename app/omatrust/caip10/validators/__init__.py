"""Namespace-specific CAIP-10 validators."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one namespace's reference + address.

    Attributes:
        valid: Whether both reference and address are acceptable.
        error: Human-readable reason when invalid.
        normalized_address: Address in the namespace's canonical encoding.
        chain_id: Numeric chain id (EVM only).
    """
    valid: bool
    error: Optional[str] = None
    normalized_address: Optional[str] = None
    chain_id: Optional[int] = None

    @classmethod
    def failure(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


from .evm import validate_evm, to_checksum_address, is_checksum_address, is_evm_address
from .solana import validate_solana, is_base58, decode_base58, encode_base58
from .sui import validate_sui, normalize_0x32_bytes, is_sui_address

__all__ = [
    "ValidationResult",
    "validate_evm",
    "to_checksum_address",
    "is_checksum_address",
    "is_evm_address",
    "validate_solana",
    "is_base58",
    "decode_base58",
    "encode_base58",
    "validate_sui",
    "normalize_0x32_bytes",
    "is_sui_address",
]
