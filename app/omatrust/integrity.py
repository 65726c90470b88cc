"""Off-chain metadata integrity.

The registry records a commitment (dataHash, dataHashAlgorithm) to the
JSON document served at an app's dataUrl. Verification fetches the
document, canonicalizes it and compares digests:

    dataHash = H(utf8(canonical_json(document)))

Canonical JSON is RFC 8785 (JCS): object keys sorted at every depth,
arrays in order, no insignificant whitespace, and numbers in the
ECMAScript form that JSON.stringify produces.
"""

import json
import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

import httpx
import rfc8785

from app.core.config import (
    ACCEPTED_JSON_CONTENT_TYPES,
    DATA_URL_MAX_BYTES,
    DATA_URL_MAX_REDIRECTS,
    DATA_URL_TIMEOUT_SECONDS,
)
from app.omatrust.api_models import ErrorCode
from app.omatrust.exceptions import (
    FetchError,
    MalformedInputError,
    OmaTrustError,
)
from app.omatrust.hashing import keccak256, sha256, to_hex
from app.omatrust.registry import RegistryReadClient

log = logging.getLogger("omatrust.integrity")

# Largest integer an IEEE double holds exactly
_MAX_SAFE_INTEGER = 2**53 - 1


class HashAlgorithm(IntEnum):
    """dataHashAlgorithm codes as recorded on chain."""
    KECCAK256 = 0
    SHA256 = 1


@dataclass(frozen=True)
class CanonicalizationResult:
    canonical_json: str
    hash: str


@dataclass
class HashVerificationResult:
    """Outcome of verify_hash.

    ok is False both on mismatch (error is None, error_code INTEGRITY_MISMATCH)
    and on fetch failure (error describes it, status_code set for non-2xx).
    """
    ok: bool
    computed_hash: Optional[str] = None
    canonical_json: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    status_code: Optional[int] = None


# =============================================================================
# Canonical JSON
# =============================================================================


def _prepare(value: Any) -> Any:
    """Recursively check a JSON-compatible value for canonical output.

    Integers outside the IEEE double safe range become floats, as they do
    when JavaScript parses the same document.
    """
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, int):
        if abs(value) <= _MAX_SAFE_INTEGER:
            return value
        try:
            return float(value)
        except OverflowError:
            raise MalformedInputError(f"Integer out of range for a JSON number: {value}")
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise MalformedInputError(f"Non-finite number not representable in JSON: {value}")
        return value
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise MalformedInputError(f"Object keys must be strings (got {type(k).__name__})")
            out[k] = _prepare(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_prepare(v) for v in value]
    raise MalformedInputError(f"Value of type {type(value).__name__} is not JSON-compatible")


def canonical_json(value: Any) -> str:
    """Serialize value per RFC 8785 (JCS).

    Keys are sorted by UTF-16 code units and numbers use the ECMAScript
    Number-to-String form, so 1.0 is written 1 and 1e-7 is written 1e-7.

    Raises:
        MalformedInputError: For NaN/Infinity, non-string keys or
            non-JSON types.
    """
    try:
        return rfc8785.dumps(_prepare(value)).decode("utf-8")
    except rfc8785.CanonicalizationError as e:
        raise MalformedInputError(f"Value cannot be canonicalized: {e}")


def hash_canonical_json(text: str, algorithm: HashAlgorithm = HashAlgorithm.KECCAK256) -> str:
    """0x-prefixed hex digest of canonical JSON text."""
    data = text.encode("utf-8")
    if HashAlgorithm(algorithm) is HashAlgorithm.SHA256:
        return to_hex(sha256(data))
    return to_hex(keccak256(data))


def canonicalize_for_hash(
    value: Any,
    algorithm: HashAlgorithm = HashAlgorithm.KECCAK256,
) -> CanonicalizationResult:
    """Canonicalize a JSON-compatible value and hash it."""
    text = canonical_json(value)
    return CanonicalizationResult(canonical_json=text, hash=hash_canonical_json(text, algorithm))


# =============================================================================
# Bounded fetch
# =============================================================================


async def compute_hash_from_url(
    url: str,
    algorithm: HashAlgorithm = HashAlgorithm.KECCAK256,
    max_bytes: int = DATA_URL_MAX_BYTES,
    timeout_seconds: float = DATA_URL_TIMEOUT_SECONDS,
) -> CanonicalizationResult:
    """Fetch a JSON document and return its canonical form and digest.

    The content type is checked before the body is read; the body is
    streamed and abandoned as soon as it exceeds max_bytes.

    Raises:
        FetchError: Non-2xx status (status_code set), bad content type,
            oversize body, timeout, transport failure or invalid JSON.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout_seconds,
            max_redirects=DATA_URL_MAX_REDIRECTS,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", url, headers={"Accept": "application/json"}) as response:
                if not response.is_success:
                    raise FetchError.http_status(response.status_code, response.reason_phrase)

                content_type = response.headers.get("content-type", "")
                base_type = content_type.split(";")[0].strip().lower()
                if base_type not in ACCEPTED_JSON_CONTENT_TYPES:
                    raise FetchError.content_type(content_type)

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > max_bytes:
                        raise FetchError.too_large(max_bytes)
                    chunks.append(chunk)

    except FetchError:
        raise
    except httpx.TimeoutException:
        raise FetchError(f"Timeout after {timeout_seconds}s fetching {url}")
    except httpx.TooManyRedirects:
        raise FetchError(f"Exceeded {DATA_URL_MAX_REDIRECTS} redirects fetching {url}")
    except httpx.HTTPError as e:
        raise FetchError(f"Request failed: {e}")

    try:
        document = json.loads(b"".join(chunks).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise FetchError(f"Invalid JSON at {url}: {e}")

    try:
        return canonicalize_for_hash(document, algorithm)
    except MalformedInputError as e:
        raise FetchError(f"Document at {url} cannot be canonicalized: {e.message}")


async def verify_hash(
    url: str,
    expected_hash: str,
    algorithm: HashAlgorithm = HashAlgorithm.KECCAK256,
    max_bytes: int = DATA_URL_MAX_BYTES,
    timeout_seconds: float = DATA_URL_TIMEOUT_SECONDS,
) -> HashVerificationResult:
    """Fetch url and compare its canonical digest with expected_hash.

    Comparison is case-insensitive on the hex digest. Never raises for
    network or content failures.
    """
    try:
        algorithm = HashAlgorithm(algorithm)
    except ValueError:
        return HashVerificationResult(
            ok=False,
            error=f"Unsupported hash algorithm: {algorithm}",
            error_code=ErrorCode.MALFORMED_INPUT,
        )

    try:
        result = await compute_hash_from_url(url, algorithm, max_bytes, timeout_seconds)
    except FetchError as e:
        log.warning(f"dataUrl fetch failed: {e.message}")
        return HashVerificationResult(
            ok=False,
            error=e.message,
            error_code=e.code,
            status_code=e.status_code,
        )

    ok = result.hash.lower() == (expected_hash or "").strip().lower()
    if not ok:
        log.info(f"dataHash mismatch for {url}: expected {expected_hash}, computed {result.hash}")
    return HashVerificationResult(
        ok=ok,
        computed_hash=result.hash,
        canonical_json=result.canonical_json,
        error_code=None if ok else ErrorCode.INTEGRITY_MISMATCH,
    )


async def verify_registry_data_hash(
    did: str,
    registry: RegistryReadClient,
    max_bytes: int = DATA_URL_MAX_BYTES,
    timeout_seconds: float = DATA_URL_TIMEOUT_SECONDS,
) -> HashVerificationResult:
    """Verify the metadata behind a registered DID against its recorded hash."""
    try:
        record = await registry.get_data_record(did)
    except OmaTrustError as e:
        return HashVerificationResult(ok=False, error=e.message, error_code=e.code)

    if record is None:
        return HashVerificationResult(
            ok=False,
            error=f"No registry record for {did}",
            error_code=ErrorCode.REGISTRY_LOOKUP_FAILED,
        )

    return await verify_hash(
        record.data_url,
        record.data_hash,
        record.data_hash_algorithm,
        max_bytes=max_bytes,
        timeout_seconds=timeout_seconds,
    )


# =============================================================================
# Off-chain metadata document
# =============================================================================

_STRING_FIELDS = (
    "external_url",
    "image",
    "description",
    "publisher",
    "summary",
    "owner",
    "legalUrl",
    "supportUrl",
    "iwpsPortalUrl",
    "a2a",
)
_ARRAY_FIELDS = ("screenshotUrls", "videoUrls", "traits", "interfaceVersions")
_OBJECT_FIELDS = ("endpoint", "artifacts", "mcp")

# Artifact descriptors belong in "artifacts", never in "platforms"
_PLATFORM_ARTIFACT_KEYS = frozenset({
    "artifactType",
    "artifactOs",
    "artifactArchitecture",
    "type",
    "os",
    "architecture",
})


def deep_clean(value: Any) -> Any:
    """Recursively drop None, blank strings, empty lists and empty dicts.

    Returns None when nothing is left.
    """
    if value is None:
        return None
    if isinstance(value, list):
        cleaned = [c for c in (deep_clean(v) for v in value) if c is not None]
        return cleaned or None
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if isinstance(v, str) and not v.strip():
                continue
            c = deep_clean(v)
            if c is not None:
                out[k] = c
        return out or None
    return value


def _clean_platforms(platforms: Any) -> Dict[str, Any]:
    if not isinstance(platforms, dict):
        return {}
    return {
        name: {k: v for k, v in entry.items() if k not in _PLATFORM_ARTIFACT_KEYS}
        for name, entry in platforms.items()
        if isinstance(entry, dict)
    }


def build_offchain_metadata(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build the canonical off-chain metadata object for hashing.

    Each field is taken from data["extra"], then the top level, then the
    legacy nested data["metadata"], in that order of precedence. Empty
    values are removed recursively.
    """
    data = data or {}
    nested = data.get("metadata") or {}
    extra = data.get("extra") or {}

    def pick(key: str) -> Any:
        if key in extra:
            return extra[key]
        if key in data:
            return data[key]
        return nested.get(key)

    def pick_list(key: str) -> List[Any]:
        v = pick(key)
        return v if isinstance(v, list) else []

    out: Dict[str, Any] = {"name": data.get("name") or None}
    for key in _STRING_FIELDS:
        out[key] = pick(key) or None
    for key in _ARRAY_FIELDS:
        out[key] = pick_list(key)
    out["3dAssetUrls"] = pick_list("3dAssetUrls") or pick_list("threeDAssetUrls")
    out["platforms"] = _clean_platforms(pick("platforms"))
    for key in _OBJECT_FIELDS:
        v = pick(key)
        out[key] = v if isinstance(v, dict) else None
    payments = pick("payments")
    out["payments"] = payments if isinstance(payments, list) else None

    return deep_clean(out) or {}
