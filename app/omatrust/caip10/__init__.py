"""CAIP-10 account identifier parsing, validation and normalization."""

from .chains import ALL_CHAINS, NON_EVM_REFERENCES, ChainInfo, get_chain_by_id, search_chains
from .normalize import NormalizationResult, build_normalized_caip10, normalize_caip10
from .parse import SUPPORTED_NAMESPACES, Namespace, ParsedCaip10, build_caip10, parse_caip10
from .validators import (
    ValidationResult,
    decode_base58,
    encode_base58,
    is_base58,
    is_checksum_address,
    is_evm_address,
    is_sui_address,
    normalize_0x32_bytes,
    to_checksum_address,
    validate_evm,
    validate_solana,
    validate_sui,
)

__all__ = [
    "ALL_CHAINS",
    "NON_EVM_REFERENCES",
    "ChainInfo",
    "get_chain_by_id",
    "search_chains",
    "NormalizationResult",
    "build_normalized_caip10",
    "normalize_caip10",
    "SUPPORTED_NAMESPACES",
    "Namespace",
    "ParsedCaip10",
    "build_caip10",
    "parse_caip10",
    "ValidationResult",
    "decode_base58",
    "encode_base58",
    "is_base58",
    "is_checksum_address",
    "is_evm_address",
    "is_sui_address",
    "normalize_0x32_bytes",
    "to_checksum_address",
    "validate_evm",
    "validate_solana",
    "validate_sui",
]
