"""DID canonicalization and index address derivation.

Attestations about a DID are indexed on chain under a 20-byte "index
address" derived from the canonical DID:

    didHash      = keccak256(utf8(canonical_did))
    indexAddress = keccak256(utf8("DID:Solidity:Address:v1:") || didHash)[12:]

The on-chain indexer recomputes the same value, so both canonicalization
and derivation must agree with it bit for bit.
"""

import re
from typing import Optional, Union

from app.core.config import DID_INDEX_PREFIX
from app.omatrust.exceptions import InvalidDidFormatError, InvalidPkhFormatError
from app.omatrust.hashing import from_hex, keccak256, to_hex

_DID_RE = re.compile(r"^did:([a-z0-9]+):(.+)$", re.IGNORECASE | re.DOTALL)
_ENCODED_PORT_RE = re.compile(r"%3a", re.IGNORECASE)

WEB_PREFIX = "did:web:"
PKH_PREFIX = "did:pkh:"


# =============================================================================
# Predicates and extraction (total: never raise)
# =============================================================================


def is_valid_did(did: str) -> bool:
    """True for anything shaped like did:<method>:<identifier>."""
    if not isinstance(did, str):
        return False
    return bool(_DID_RE.match(did))


def extract_did_method(did: str) -> Optional[str]:
    """Return the method name ("web" for did:web:example.com), or None."""
    if not isinstance(did, str):
        return None
    m = _DID_RE.match(did)
    return m.group(1) if m else None


def extract_did_identifier(did: str) -> Optional[str]:
    """Return the method-specific identifier, or None."""
    if not isinstance(did, str):
        return None
    m = _DID_RE.match(did)
    return m.group(2) if m else None


def normalize_domain(domain: str) -> str:
    """Lowercase a domain name and drop a trailing root dot."""
    domain = domain.strip().lower()
    return domain[:-1] if domain.endswith(".") else domain


# =============================================================================
# Canonicalization
# =============================================================================


def normalize_did_web(value: str) -> str:
    """Canonicalize a did:web identifier or bare host.

    Only the host is lowercased. A percent-encoded port (host%3A8443) is
    decoded, lowercased with the host and re-encoded. Path segments after
    the host, whether ':' or '/' separated, are kept as written.

    Raises:
        InvalidDidFormatError: For a DID of another method or an empty host.
    """
    s = value.strip()
    if s.lower().startswith("did:"):
        if extract_did_method(s) is None or extract_did_method(s).lower() != "web":
            raise InvalidDidFormatError(s, reason="normalize_did_web received non-web DID")
        s = s[len(WEB_PREFIX):]

    # Host ends at the first ':' path separator or '/'
    end = len(s)
    for sep in (":", "/"):
        idx = s.find(sep)
        if idx != -1:
            end = min(end, idx)
    host, rest = s[:end], s[end:]

    if not host:
        raise InvalidDidFormatError(value)

    host_port = _ENCODED_PORT_RE.split(host, maxsplit=1)
    if len(host_port) == 2:
        host = f"{host_port[0].lower()}%3A{host_port[1].lower()}"
    else:
        host = host.lower()

    return f"{WEB_PREFIX}{host}{rest}"


def normalize_did_pkh(did: str) -> str:
    """Canonicalize did:pkh:<namespace>:<reference>:<address>.

    Only the address segment is lowercased.

    Raises:
        InvalidPkhFormatError: If the DID does not have exactly five segments.
    """
    parts = did.strip().split(":")
    if len(parts) != 5 or parts[0].lower() != "did" or parts[1].lower() != "pkh":
        raise InvalidPkhFormatError(did)
    if not all(parts[2:]):
        raise InvalidPkhFormatError(did)
    _, _, namespace, reference, address = parts
    return f"{PKH_PREFIX}{namespace}:{reference}:{address.lower()}"


def canonicalize_did(did: str) -> str:
    """Return the canonical form of a DID.

    did:web and did:pkh get method-specific normalization; any other
    method is returned as written (trimmed).

    Raises:
        InvalidDidFormatError: If the input is not did:<method>:<identifier>.
        InvalidPkhFormatError: If a did:pkh does not have five segments.
    """
    if not isinstance(did, str):
        raise InvalidDidFormatError(repr(did))
    s = did.strip()
    method = extract_did_method(s)
    if method is None:
        raise InvalidDidFormatError(s)

    method = method.lower()
    if method == "web":
        return normalize_did_web(s)
    if method == "pkh":
        return normalize_did_pkh(s)
    return s


# =============================================================================
# Index address derivation
# =============================================================================


def compute_did_hash(did: str) -> bytes:
    """keccak256 of the canonical DID's UTF-8 bytes (32 bytes)."""
    return keccak256(canonicalize_did(did).encode("utf-8"))


def compute_index_address(did_hash: Union[bytes, str]) -> bytes:
    """Derive the 20-byte index address from a 32-byte DID hash.

    Args:
        did_hash: Raw digest, or its 0x-prefixed hex form.

    Raises:
        ValueError: If the digest is not 32 bytes.
    """
    if isinstance(did_hash, str):
        did_hash = from_hex(did_hash)
    if len(did_hash) != 32:
        raise ValueError(f"DID hash must be 32 bytes (got {len(did_hash)})")
    return keccak256(DID_INDEX_PREFIX.encode("utf-8") + did_hash)[12:]


def did_to_index_address(did: str) -> str:
    """Index address for a DID as 0x + 40 lowercase hex characters."""
    return to_hex(compute_index_address(compute_did_hash(did)))


def validate_did_index_address(did: str, candidate: str) -> bool:
    """Check that candidate is the index address of did (case-insensitive).

    Returns False for a malformed DID instead of raising.
    """
    try:
        expected = did_to_index_address(did)
    except (InvalidDidFormatError, InvalidPkhFormatError):
        return False
    return isinstance(candidate, str) and candidate.lower() == expected


# =============================================================================
# Builders and accessors
# =============================================================================


def build_did_web(domain: str) -> str:
    return normalize_did_web(normalize_domain(domain))


def build_did_pkh(namespace: str, reference: str, address: str) -> str:
    return normalize_did_pkh(f"{PKH_PREFIX}{namespace}:{reference}:{address}")


def get_domain_from_did_web(did: str) -> Optional[str]:
    """Return the (lowercased) host of a did:web, without port or path."""
    try:
        canonical = normalize_did_web(did)
    except InvalidDidFormatError:
        return None
    s = canonical[len(WEB_PREFIX):]
    for sep in (":", "/"):
        s = s.split(sep, 1)[0]
    return _ENCODED_PORT_RE.split(s, maxsplit=1)[0]


def get_address_from_did_pkh(did: str) -> Optional[str]:
    """Return the address segment of a did:pkh, or None."""
    try:
        return normalize_did_pkh(did).split(":")[4]
    except InvalidPkhFormatError:
        return None
