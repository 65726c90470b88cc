"""
OMATrust core exceptions.
Maps parsing/network/upstream errors to structured error codes.

Public entry points convert these into result objects; they are raised
internally and only escape from DID canonicalization.
"""

from typing import Optional

from app.omatrust.api_models import ErrorCode


class OmaTrustError(Exception):
    """Base exception for the trust-verification core.

    Carries an error code that maps to ErrorCode constants.
    The caller is responsible for converting this to ErrorDetail.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class MalformedInputError(OmaTrustError):
    """Input has the wrong shape or charset."""

    def __init__(self, message: str, code: str = ErrorCode.MALFORMED_INPUT):
        super().__init__(code, message)


class InvalidDidFormatError(MalformedInputError):
    """String is not did:<method>:<method-specific-id>."""

    def __init__(self, did: str, reason: str = "Invalid DID format"):
        self.did = did
        super().__init__(f"{reason}: {did}", ErrorCode.INVALID_DID_FORMAT)


class InvalidPkhFormatError(MalformedInputError):
    """did:pkh without exactly namespace, reference and address segments."""

    def __init__(self, did: str):
        super().__init__(
            f"Invalid did:pkh format (expected did:pkh:<namespace>:<reference>:<address>): {did}",
            ErrorCode.INVALID_PKH_FORMAT,
        )


class NetworkFailureError(OmaTrustError):
    """DNS/HTTP source unreachable or timed out (recoverable)."""

    def __init__(self, message: str, code: str = ErrorCode.NETWORK_FAILURE):
        super().__init__(code, message)


class FetchError(NetworkFailureError):
    """HTTP fetch of untrusted content failed.

    status_code is set when the server answered with a non-2xx status.
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.FETCH_FAILED,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, code)

    @classmethod
    def http_status(cls, status_code: int, reason: str = "") -> "FetchError":
        """Factory for non-2xx responses."""
        suffix = f" {reason}" if reason else ""
        return cls(f"HTTP {status_code}{suffix}", status_code=status_code)

    @classmethod
    def too_large(cls, max_bytes: int) -> "FetchError":
        """Factory for responses exceeding the byte budget."""
        return cls(
            f"Response too large (> {max_bytes} bytes)",
            code=ErrorCode.RESPONSE_TOO_LARGE,
        )

    @classmethod
    def content_type(cls, content_type: str) -> "FetchError":
        """Factory for non-JSON responses."""
        return cls(
            f"Invalid content-type: {content_type or '<missing>'}",
            code=ErrorCode.CONTENT_TYPE_INVALID,
        )


class UpstreamDataShapeError(OmaTrustError):
    """A record from an upstream collaborator could not be decoded.

    The record is skipped; the surrounding query continues.
    """

    def __init__(self, message: str):
        super().__init__(ErrorCode.UPSTREAM_DATA_SHAPE, message)


class AttestationServiceError(NetworkFailureError):
    """Attestation read client failed (block number / event scan / RPC error)."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ATTESTATION_SERVICE_UNAVAILABLE)


class RegistryLookupError(OmaTrustError):
    """Registry read client could not return a record for a DID."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.REGISTRY_LOOKUP_FAILED, message)
