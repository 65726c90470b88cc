"""Attestation retrieval, filtering and aggregation."""

from .client import AttestationReadClient, EasRpcClient
from .decoder import decode_attestation_data
from .models import (
    AttestationQueryResult,
    AttestationRecord,
    AttestedEvent,
    RatingSummary,
    RawAttestation,
)
from .queries import (
    calculate_average_rating,
    deduplicate_reviews,
    get_attestations_for_subject,
    get_major_version,
)
from .schemas import (
    AttestationSchema,
    SchemaField,
    compute_schema_uid,
    get_all_schemas,
    get_deployed_schemas,
    get_schema,
    schema_string,
    schema_types,
)

__all__ = [
    "AttestationReadClient",
    "EasRpcClient",
    "decode_attestation_data",
    "AttestationQueryResult",
    "AttestationRecord",
    "AttestedEvent",
    "RatingSummary",
    "RawAttestation",
    "calculate_average_rating",
    "deduplicate_reviews",
    "get_attestations_for_subject",
    "get_major_version",
    "AttestationSchema",
    "SchemaField",
    "compute_schema_uid",
    "get_all_schemas",
    "get_deployed_schemas",
    "get_schema",
    "schema_string",
    "schema_types",
]
