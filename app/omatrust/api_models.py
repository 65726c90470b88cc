"""
OMATrust trust-verification API models.

Error code registry plus the pydantic request/response models used by the
HTTP layer in app.main.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Error Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Structured error returned to API callers."""
    code: str
    message: str
    recoverable: bool


class ErrorCode:
    """Error code registry."""
    # Malformed input (always caught locally)
    MALFORMED_INPUT = "MALFORMED_INPUT"
    INVALID_DID_FORMAT = "INVALID_DID_FORMAT"
    INVALID_PKH_FORMAT = "INVALID_PKH_FORMAT"
    UNSUPPORTED_NAMESPACE = "UNSUPPORTED_NAMESPACE"

    # Network layer
    NETWORK_FAILURE = "NETWORK_FAILURE"
    FETCH_FAILED = "FETCH_FAILED"
    CONTENT_TYPE_INVALID = "CONTENT_TYPE_INVALID"
    RESPONSE_TOO_LARGE = "RESPONSE_TOO_LARGE"

    # Integrity / evidence layer
    INTEGRITY_MISMATCH = "INTEGRITY_MISMATCH"
    EVIDENCE_NOT_FOUND = "EVIDENCE_NOT_FOUND"
    UNSUPPORTED_EVIDENCE_METHOD = "UNSUPPORTED_EVIDENCE_METHOD"

    # Upstream collaborators
    UPSTREAM_DATA_SHAPE = "UPSTREAM_DATA_SHAPE"
    REGISTRY_LOOKUP_FAILED = "REGISTRY_LOOKUP_FAILED"
    ATTESTATION_SERVICE_UNAVAILABLE = "ATTESTATION_SERVICE_UNAVAILABLE"

    INTERNAL_ERROR = "INTERNAL_ERROR"


# Recoverability mapping: recoverable errors may succeed on retry
ERROR_RECOVERABILITY: Dict[str, bool] = {
    ErrorCode.MALFORMED_INPUT: False,
    ErrorCode.INVALID_DID_FORMAT: False,
    ErrorCode.INVALID_PKH_FORMAT: False,
    ErrorCode.UNSUPPORTED_NAMESPACE: False,
    ErrorCode.NETWORK_FAILURE: True,
    ErrorCode.FETCH_FAILED: True,
    ErrorCode.CONTENT_TYPE_INVALID: False,
    ErrorCode.RESPONSE_TOO_LARGE: False,
    ErrorCode.INTEGRITY_MISMATCH: False,
    ErrorCode.EVIDENCE_NOT_FOUND: True,
    ErrorCode.UNSUPPORTED_EVIDENCE_METHOD: False,
    ErrorCode.UPSTREAM_DATA_SHAPE: False,
    ErrorCode.REGISTRY_LOOKUP_FAILED: True,
    ErrorCode.ATTESTATION_SERVICE_UNAVAILABLE: True,
    ErrorCode.INTERNAL_ERROR: True,
}


def error_detail(code: str, message: str) -> ErrorDetail:
    """Build an ErrorDetail with recoverability looked up from the registry."""
    return ErrorDetail(
        code=code,
        message=message,
        recoverable=ERROR_RECOVERABILITY.get(code, False),
    )


# =============================================================================
# Request Models
# =============================================================================

class Caip10Request(BaseModel):
    """Request body for /caip10/normalize"""
    caip10: str


class DidRequest(BaseModel):
    """Request body for /did/canonicalize and /did/index-address"""
    did: str


class EvidenceRequest(BaseModel):
    """Request body for /evidence/verify"""
    subject: str
    controller: str
    method: Optional[str] = None  # None = DNS first, did.json fallback


class DataUrlVerifyRequest(BaseModel):
    """Request body for /data-url/verify"""
    url: str
    expected_hash: str
    algorithm: int = 0


# =============================================================================
# Response Models
# =============================================================================

class Caip10Response(BaseModel):
    valid: bool
    normalized: Optional[str] = None
    error: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


class DidResponse(BaseModel):
    did: str
    canonical: Optional[str] = None
    did_hash: Optional[str] = None
    index_address: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


class EvidenceResponse(BaseModel):
    found: bool
    method: Optional[str] = None
    matched_controller: Optional[str] = None
    details: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


class DataUrlVerifyResponse(BaseModel):
    ok: bool
    computed_hash: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


class AttestationView(BaseModel):
    uid: str
    attester: str
    subject: str
    schema_id: str
    time: int
    revocation_time: int
    data: Dict[str, Any] = Field(default_factory=dict)


class AttestationsResponse(BaseModel):
    did: str
    index_address: Optional[str] = None
    attestations: List[AttestationView] = Field(default_factory=list)
    average_rating: float = 0.0
    rating_count: int = 0
    errors: Optional[List[ErrorDetail]] = None
