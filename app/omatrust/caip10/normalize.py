"""CAIP-10 normalization - validates and normalizes addresses per namespace.

Canonical encodings:
- eip155: EIP-55 mixed-case checksum, chain id reference unchanged
- solana: base58 address unchanged, reference lowercased
- sui: lowercase hex left-padded to 32 bytes, reference lowercased
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.omatrust.api_models import ErrorCode
from app.omatrust.exceptions import MalformedInputError

from .parse import SUPPORTED_NAMESPACES, Namespace, ParsedCaip10, build_caip10, parse_caip10
from .validators import validate_evm, validate_solana, validate_sui

logger = logging.getLogger("omatrust.caip10")


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalize_caip10.

    Attributes:
        valid: Whether the identifier is acceptable.
        normalized: Canonical CAIP-10 string (valid only).
        error: Reason for rejection (invalid only).
        error_code: UNSUPPORTED_NAMESPACE or MALFORMED_INPUT (invalid only).
        parsed: Canonical components (valid only).
    """
    valid: bool
    normalized: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    parsed: Optional[ParsedCaip10] = None


def normalize_caip10(value: str) -> NormalizationResult:
    """Validate a CAIP-10 string and return its canonical form.

    Never raises for bad input; the reason is carried in the result.
    """
    try:
        raw = parse_caip10(value)
    except MalformedInputError as e:
        return NormalizationResult(valid=False, error=e.message, error_code=e.code)

    namespace = Namespace.lookup(raw.namespace)

    if namespace is Namespace.EIP155:
        result = validate_evm(raw.reference, raw.address)
        reference = raw.reference
    elif namespace is Namespace.SOLANA:
        result = validate_solana(raw.reference, raw.address)
        reference = raw.reference.lower()
    elif namespace is Namespace.SUI:
        result = validate_sui(raw.reference, raw.address)
        reference = raw.reference.lower()
    else:
        return NormalizationResult(
            valid=False,
            error=f"Unsupported namespace: {raw.namespace}. Supported: {SUPPORTED_NAMESPACES}",
            error_code=ErrorCode.UNSUPPORTED_NAMESPACE,
        )

    if not result.valid:
        logger.debug(f"CAIP-10 rejected: {value!r}: {result.error}")
        return NormalizationResult(valid=False, error=result.error, error_code=ErrorCode.MALFORMED_INPUT)

    parsed = ParsedCaip10(
        namespace=namespace.value,
        reference=reference,
        address=result.normalized_address,
    )
    return NormalizationResult(valid=True, normalized=str(parsed), parsed=parsed)


def build_normalized_caip10(namespace: str, reference: str, address: str) -> NormalizationResult:
    """Build a CAIP-10 string from components and re-validate it."""
    return normalize_caip10(build_caip10(namespace, reference, address))
