"""Attestation data types.

Records are created by the attestation service and only read here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AttestedEvent:
    """An Attested log entry.

    Attributes:
        uid: Attestation UID (0x + 64 hex).
        schema_uid: Schema UID the attestation was made against.
        recipient: Indexed recipient (the subject's index address).
        attester: Issuer address.
        block_number: Block containing the log.
        log_index: Position of the log within the block.
    """
    uid: str
    schema_uid: str
    recipient: str
    attester: str
    block_number: int
    log_index: int = 0


@dataclass(frozen=True)
class RawAttestation:
    """Full attestation as returned by getAttestation(uid)."""
    uid: str
    schema_uid: str
    time: int
    expiration_time: int
    revocation_time: int
    ref_uid: str
    recipient: str
    attester: str
    revocable: bool
    data: bytes


@dataclass(frozen=True)
class AttestationRecord:
    """A decoded attestation about a subject DID.

    Attributes:
        uid: Attestation UID.
        attester: Issuer address.
        recipient: Index address the attestation was filed under.
        subject: Decoded subject DID (always equals the queried DID).
        data: Decoded schema fields.
        time: Issue time (unix seconds).
        expiration_time: 0 when the attestation never expires.
        revocation_time: 0 when not revoked.
        ref_uid: Referenced attestation UID (zero when none).
        revocable: Whether the attestation can be revoked.
        schema_id: Catalogue id (e.g. "user-review").
        schema_title: Human-readable schema title.
    """
    uid: str
    attester: str
    recipient: str
    subject: str
    data: Dict[str, Any] = field(default_factory=dict)
    time: int = 0
    expiration_time: int = 0
    revocation_time: int = 0
    ref_uid: str = "0x" + "00" * 32
    revocable: bool = True
    schema_id: str = ""
    schema_title: str = ""

    @property
    def is_revoked(self) -> bool:
        return self.revocation_time != 0

    @property
    def version(self) -> Optional[str]:
        v = self.data.get("version")
        return v if isinstance(v, str) and v else None


@dataclass
class AttestationQueryResult:
    """Result of get_attestations_for_subject.

    An empty attestations list with error None means the subject
    legitimately has no attestations in the scanned window; error is set
    when the attestation service could not be queried.

    Attributes:
        attestations: Records, newest first.
        error: Upstream failure description.
        error_code: ErrorCode for the failure.
        scanned_events: Attested events found for the index address.
        skipped: Events dropped (unknown schema, decode failure, subject
            or version mismatch).
    """
    attestations: List[AttestationRecord] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    scanned_events: int = 0
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RatingSummary:
    average: float = 0.0
    count: int = 0
