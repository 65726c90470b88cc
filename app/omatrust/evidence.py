"""Controller evidence verification (DNS TXT and did.json).

Evidence sources are untrusted and may be slow, unreachable or hostile.
Every lookup is bounded by a timeout and degrades to EvidenceResult with
found=False and a diagnostic; nothing here raises for network failures.

Evidence string format (TXT record at _omatrust.<domain>):
    v=1;controller=did:pkh:eip155:66238:0xAbC...

- fields separated by ';' or whitespace, order not significant
- unknown fields ignored
- controller values must be DIDs; bare CAIP-10 strings or raw addresses
  are dropped

Controllers are matched at the address level: the chain id is ignored
since the same key controls the same address on every EVM chain.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver
import httpx

from app.core.config import (
    DID_DOCUMENT_PATH,
    DID_DOCUMENT_TIMEOUT_SECONDS,
    DNS_TIMEOUT_SECONDS,
    EVIDENCE_DNS_PREFIX,
    EVIDENCE_VERSION_TOKEN,
)
from app.omatrust.api_models import ErrorCode
from app.omatrust.did import (
    extract_did_method,
    get_address_from_did_pkh,
    get_domain_from_did_web,
    normalize_domain,
)

log = logging.getLogger("omatrust.evidence")

_FIELD_SPLIT_RE = re.compile(r"[;\s]+")
_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

CONTROLLER_KEY = "controller="


class EvidenceMethod(str, Enum):
    """Where controller evidence is published."""
    DNS_TXT = "dns-txt"
    DID_JSON = "did-json"


@dataclass(frozen=True)
class EvidenceRecord:
    """Parsed v=1 evidence string."""
    version: str
    controllers: List[str] = field(default_factory=list)


@dataclass
class EvidenceResult:
    """Outcome of an evidence lookup.

    Attributes:
        found: True when a published controller matches the expected one.
        matched_controller: The matching controller as published.
        details: Diagnostic for logs and error messages when not found.
        method: Evidence source consulted (set by the combined lookups).
        error_code: Why nothing matched (set by the combined lookups).
    """
    found: bool
    matched_controller: Optional[str] = None
    details: Optional[str] = None
    method: Optional[EvidenceMethod] = None
    error_code: Optional[str] = None


# =============================================================================
# Evidence string parsing and address matching
# =============================================================================


def parse_evidence_string(text: str) -> Optional[EvidenceRecord]:
    """Parse a v=1 evidence string.

    Returns:
        EvidenceRecord, or None when the v=1 marker is absent.
    """
    entries = [e.strip() for e in _FIELD_SPLIT_RE.split(text or "") if e.strip()]
    if EVIDENCE_VERSION_TOKEN not in entries:
        return None

    controllers = []
    for entry in entries:
        if not entry.startswith(CONTROLLER_KEY):
            continue
        value = entry[len(CONTROLLER_KEY):].strip()
        if not value.startswith("did:"):
            log.debug(f"Dropping non-DID controller value: {value!r}")
            continue
        controllers.append(value)

    return EvidenceRecord(version="1", controllers=controllers)


def extract_address(did_or_address: str) -> Optional[str]:
    """Underlying lowercase address of a did:pkh or raw 0x address.

    Other DID methods (did:key, did:web, ...) carry no extractable
    address and yield None.
    """
    if not isinstance(did_or_address, str):
        return None
    if did_or_address.startswith("did:pkh:"):
        address = get_address_from_did_pkh(did_or_address)
        return address.lower() if address else None
    if _EVM_ADDRESS_RE.match(did_or_address):
        return did_or_address.lower()
    return None


def addresses_match(a: str, b: str) -> bool:
    """True when both sides resolve to the same address (chain id ignored)."""
    addr_a = extract_address(a)
    addr_b = extract_address(b)
    if not addr_a or not addr_b:
        return False
    return addr_a == addr_b


# =============================================================================
# DNS TXT evidence
# =============================================================================


def _txt_value(rdata: Any) -> str:
    """Join a TXT rdata's character-strings (long values are split at 255 bytes)."""
    return b"".join(rdata.strings).decode("utf-8", errors="replace")


async def find_controller_in_dns_txt(
    domain: str,
    expected_controller: str,
    resolver: Optional[dns.asyncresolver.Resolver] = None,
) -> EvidenceResult:
    """Look for expected_controller in the TXT records at _omatrust.<domain>.

    Args:
        domain: Bare domain (example.com), not a DID.
        expected_controller: DID or 0x address to match.
        resolver: Resolver to use; a default async resolver bounded by
            DNS_TIMEOUT_SECONDS otherwise.
    """
    record_name = f"{EVIDENCE_DNS_PREFIX}.{normalize_domain(domain)}"

    if resolver is None:
        resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = DNS_TIMEOUT_SECONDS

    try:
        answer = await resolver.resolve(record_name, "TXT")
        records = [_txt_value(rdata) for rdata in answer]
    except dns.resolver.NXDOMAIN:
        return EvidenceResult(found=False, details=f"DNS lookup failed for {record_name}: NXDOMAIN")
    except dns.resolver.NoAnswer:
        records = []
    except dns.exception.Timeout:
        return EvidenceResult(
            found=False,
            details=f"DNS lookup failed for {record_name}: timeout after {DNS_TIMEOUT_SECONDS}s",
        )
    except dns.exception.DNSException as e:
        return EvidenceResult(found=False, details=f"DNS lookup failed for {record_name}: {e}")

    if not records:
        return EvidenceResult(found=False, details=f"No TXT records found at {record_name}")

    seen: List[str] = []
    for text in records:
        parsed = parse_evidence_string(text)
        if parsed is None:
            continue
        for controller in parsed.controllers:
            seen.append(controller)
            if addresses_match(controller, expected_controller):
                log.info(
                    f"DNS evidence matched at {record_name}",
                    extra={"domain": domain},
                )
                return EvidenceResult(found=True, matched_controller=controller)

    if not seen:
        return EvidenceResult(
            found=False,
            details=f"TXT records at {record_name} found but no controller entries",
        )

    return EvidenceResult(
        found=False,
        details=(
            f"Controllers [{', '.join(seen)}] in {record_name} "
            f"do not match expected {expected_controller}"
        ),
    )


# =============================================================================
# did.json evidence
# =============================================================================


async def _fetch_did_document(url: str) -> Any:
    async with httpx.AsyncClient(
        timeout=DID_DOCUMENT_TIMEOUT_SECONDS,
        follow_redirects=True,
    ) as client:
        response = await client.get(url, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()


async def find_controller_in_did_document(
    domain: str,
    expected_controller: str,
) -> EvidenceResult:
    """Look for expected_controller in https://<domain>/.well-known/did.json.

    Checks verificationMethod[].blockchainAccountId (CAIP-10) and
    verificationMethod[].publicKeyHex (raw address, 0x optional).
    """
    url = f"https://{normalize_domain(domain)}{DID_DOCUMENT_PATH}"

    try:
        document = await _fetch_did_document(url)
    except httpx.TimeoutException:
        return EvidenceResult(
            found=False,
            details=f"Timeout after {DID_DOCUMENT_TIMEOUT_SECONDS}s fetching DID document at {url}",
        )
    except httpx.HTTPStatusError as e:
        return EvidenceResult(
            found=False,
            details=(
                f"DID document fetch failed: {e.response.status_code} "
                f"{e.response.reason_phrase} at {url}"
            ),
        )
    except httpx.HTTPError as e:
        return EvidenceResult(found=False, details=f"Failed to fetch DID document at {url}: {e}")
    except ValueError as e:
        return EvidenceResult(found=False, details=f"DID document at {url} is not valid JSON: {e}")

    if not isinstance(document, dict):
        return EvidenceResult(found=False, details=f"DID document at {url} is not a JSON object")

    methods = document.get("verificationMethod") or []
    if not isinstance(methods, list) or not methods:
        return EvidenceResult(
            found=False,
            details=f"DID document at {url} has no verificationMethod entries",
        )

    found_addresses: List[str] = []
    for method in methods:
        if not isinstance(method, dict):
            continue

        account_id = method.get("blockchainAccountId")
        if isinstance(account_id, str):
            parts = account_id.split(":")
            if len(parts) == 3:
                address = parts[2]
                found_addresses.append(address)
                if addresses_match(address, expected_controller):
                    return EvidenceResult(found=True, matched_controller=f"did:pkh:{account_id}")

        public_key_hex = method.get("publicKeyHex")
        if isinstance(public_key_hex, str) and public_key_hex:
            address = public_key_hex if public_key_hex.startswith("0x") else f"0x{public_key_hex}"
            found_addresses.append(address)
            if addresses_match(address, expected_controller):
                return EvidenceResult(found=True, matched_controller=address)

    return EvidenceResult(
        found=False,
        details=(
            f"Addresses [{', '.join(found_addresses)}] in {url} "
            f"do not match expected {expected_controller}"
        ),
    )


# =============================================================================
# Subject-level verification
# =============================================================================


def _subject_domain(subject: str) -> Optional[str]:
    method = extract_did_method(subject)
    if method is None or method.lower() != "web":
        return None
    return get_domain_from_did_web(subject)


async def verify_controller_evidence(
    subject: str,
    controller: str,
    method: str,
) -> EvidenceResult:
    """Check one evidence source for a did:web subject's controller.

    Args:
        subject: did:web DID whose domain publishes the evidence.
        controller: DID expected as controller.
        method: "dns-txt" or "did-json".
    """
    try:
        evidence_method = EvidenceMethod(method)
    except ValueError:
        supported = ", ".join(m.value for m in EvidenceMethod)
        return EvidenceResult(
            found=False,
            details=f"Unsupported evidence method: {method}. Supported: {supported}",
            error_code=ErrorCode.UNSUPPORTED_EVIDENCE_METHOD,
        )

    domain = _subject_domain(subject)
    if not domain:
        return EvidenceResult(
            found=False,
            details=f"{evidence_method.value} evidence requires a did:web subject (got {subject})",
            method=evidence_method,
            error_code=ErrorCode.MALFORMED_INPUT,
        )

    if evidence_method is EvidenceMethod.DNS_TXT:
        result = await find_controller_in_dns_txt(domain, controller)
    else:
        result = await find_controller_in_did_document(domain, controller)

    result.method = evidence_method
    if not result.found:
        result.error_code = ErrorCode.EVIDENCE_NOT_FOUND
    return result


async def verify_did_web_control(did: str, controller: str) -> EvidenceResult:
    """Check DNS TXT evidence first, falling back to did.json.

    The returned result names the source that matched, or carries both
    diagnostics when neither did.
    """
    dns_result = await verify_controller_evidence(did, controller, EvidenceMethod.DNS_TXT.value)
    if dns_result.found:
        return dns_result

    domain = _subject_domain(did)
    if not domain:
        return dns_result

    log.debug(f"DNS evidence not found for {did}, trying did.json", extra={"did": did})
    doc_result = await verify_controller_evidence(did, controller, EvidenceMethod.DID_JSON.value)
    if doc_result.found:
        return doc_result

    return EvidenceResult(
        found=False,
        details=f"dns-txt: {dns_result.details}; did-json: {doc_result.details}",
        error_code=ErrorCode.EVIDENCE_NOT_FOUND,
    )
