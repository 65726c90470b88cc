"""CAIP-10 account identifier parsing.

Format: namespace:reference:address
Example: eip155:1:0xAbc123...

Reference: https://github.com/ChainAgnostic/CAIPs/blob/master/CAIPs/caip-10.md
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.omatrust.exceptions import MalformedInputError


class Namespace(str, Enum):
    """Supported CAIP-2 namespaces."""
    EIP155 = "eip155"
    SOLANA = "solana"
    SUI = "sui"

    @classmethod
    def lookup(cls, value: str) -> Optional["Namespace"]:
        """Case-insensitive lookup; None for unsupported namespaces."""
        try:
            return cls(value.lower())
        except ValueError:
            return None


SUPPORTED_NAMESPACES = ", ".join(ns.value for ns in Namespace)

_NAMESPACE_RE = re.compile(r"^[a-z0-9]+$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedCaip10:
    """CAIP-10 components as written by the caller (not yet normalized)."""
    namespace: str
    reference: str
    address: str

    def __str__(self) -> str:
        return build_caip10(self.namespace, self.reference, self.address)


def parse_caip10(value: str) -> ParsedCaip10:
    """Split a CAIP-10 string into its three components.

    Args:
        value: Raw CAIP-10 string; surrounding whitespace is ignored.

    Returns:
        ParsedCaip10 with the raw components.

    Raises:
        MalformedInputError: If the string is empty, does not have exactly
            three colon-delimited fields, or the namespace is not alphanumeric.
    """
    if not value or not isinstance(value, str):
        raise MalformedInputError("CAIP-10 string is required")

    parts = value.strip().split(":")
    if len(parts) != 3:
        raise MalformedInputError(
            f"Invalid CAIP-10 format. Expected: namespace:reference:address "
            f"(got {len(parts)} field{'s' if len(parts) != 1 else ''})"
        )

    namespace, reference, address = parts
    if not _NAMESPACE_RE.match(namespace):
        raise MalformedInputError(f"Invalid CAIP-10 namespace: {namespace!r}")
    if not reference:
        raise MalformedInputError("CAIP-10 reference is empty")
    if not address:
        raise MalformedInputError("CAIP-10 address is empty")

    return ParsedCaip10(namespace=namespace, reference=reference, address=address)


def build_caip10(namespace: str, reference: str, address: str) -> str:
    """Build a CAIP-10 string from components (no validation)."""
    return f"{namespace}:{reference}:{address}"
