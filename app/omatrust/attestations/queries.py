"""Attestation retrieval and aggregation for a subject DID.

Attestations are filed under the subject's index address (see
app.omatrust.did). An index match is necessary but not sufficient: the
decoded subject field must also equal the queried DID.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from app.core.config import (
    ATTESTATION_BLOCK_WINDOW,
    ATTESTATION_CHAIN_ID,
    DEFAULT_ATTESTATION_LIMIT,
    EAS_CONTRACT_ADDRESS,
    MIN_ATTESTATIONS_THRESHOLD,
)
from app.omatrust.api_models import ErrorCode
from app.omatrust.did import did_to_index_address
from app.omatrust.exceptions import (
    AttestationServiceError,
    MalformedInputError,
    UpstreamDataShapeError,
)

from .client import AttestationReadClient, EasRpcClient
from .decoder import decode_attestation_data
from .models import AttestationQueryResult, AttestationRecord, RatingSummary
from .schemas import get_deployed_schemas, schema_for_uid

logger = logging.getLogger("omatrust.attestations")

USER_REVIEW_SCHEMA = "user-review"
RATING_FIELDS = ("ratingValue", "rating")

_MAJOR_VERSION_RE = re.compile(r"^(\d+)")


def get_major_version(version: Optional[str]) -> Optional[str]:
    """Leading numeric component of a version string ("1.2.3" -> "1")."""
    if not version or not isinstance(version, str):
        return None
    m = _MAJOR_VERSION_RE.match(version)
    return m.group(1) if m else None


async def get_attestations_for_subject(
    did: str,
    limit: int = DEFAULT_ATTESTATION_LIMIT,
    major_version: Optional[str] = None,
    client: Optional[AttestationReadClient] = None,
    chain_id: int = ATTESTATION_CHAIN_ID,
    block_window: int = ATTESTATION_BLOCK_WINDOW,
    min_threshold: int = MIN_ATTESTATIONS_THRESHOLD,
) -> AttestationQueryResult:
    """Fetch recent attestations about did, newest first.

    With major_version set, records whose version has the same leading
    number are returned first (at most limit). While fewer than
    min_threshold records match, records without a version backfill the
    result up to limit. Records with a different major version are
    dropped.

    Upstream failures (block number, event scan) are reported in the
    result's error; individual undecodable records are skipped.
    """
    try:
        index_address = did_to_index_address(did)
    except MalformedInputError as e:
        return AttestationQueryResult(error=e.message, error_code=e.code)

    if client is None:
        if not EAS_CONTRACT_ADDRESS:
            return AttestationQueryResult(
                error=f"Attestation service not configured for chain {chain_id}",
                error_code=ErrorCode.ATTESTATION_SERVICE_UNAVAILABLE,
            )
        client = EasRpcClient()

    schemas = get_deployed_schemas(chain_id)
    if not schemas:
        logger.info(f"No attestation schemas deployed on chain {chain_id}")
        return AttestationQueryResult()

    try:
        current_block = await client.get_block_number()
        start_block = max(0, current_block - block_window)
        logger.debug(
            f"Scanning blocks {start_block}..{current_block} for {index_address}",
            extra={"did": did},
        )
        events = await client.get_attested_events(index_address, start_block, current_block)
    except AttestationServiceError as e:
        logger.warning(f"Attestation query failed for {did}: {e.message}", extra={"did": did})
        return AttestationQueryResult(error=e.message, error_code=e.code)

    events = sorted(events, key=lambda ev: (ev.block_number, ev.log_index), reverse=True)

    matched: List[AttestationRecord] = []
    unversioned: List[AttestationRecord] = []
    skipped = 0

    for event in events:
        schema = schema_for_uid(schemas, chain_id, event.schema_uid)
        if schema is None:
            skipped += 1
            continue

        try:
            raw = await client.get_attestation(event.uid)
            decoded = decode_attestation_data(schema, raw.data)
        except (AttestationServiceError, UpstreamDataShapeError) as e:
            logger.warning(f"Skipping attestation {event.uid}: {e.message}")
            skipped += 1
            continue

        subject = decoded.get("subject")
        if subject != did:
            logger.debug(f"Skipping {event.uid}: subject mismatch {subject!r} != {did!r}")
            skipped += 1
            continue

        record = AttestationRecord(
            uid=raw.uid,
            attester=raw.attester,
            recipient=raw.recipient,
            subject=subject,
            data=decoded,
            time=raw.time,
            expiration_time=raw.expiration_time,
            revocation_time=raw.revocation_time,
            ref_uid=raw.ref_uid,
            revocable=raw.revocable,
            schema_id=schema.id,
            schema_title=schema.title,
        )

        if major_version is None:
            matched.append(record)
        else:
            record_major = get_major_version(record.version)
            if record_major == major_version:
                matched.append(record)
            elif record_major is None:
                unversioned.append(record)
            else:
                logger.debug(
                    f"Skipping {event.uid}: major version {record_major} != {major_version}"
                )
                skipped += 1
                continue

        if len(matched) >= limit and len(unversioned) >= limit:
            break
        if major_version is None and len(matched) >= limit:
            break

    attestations = matched[:limit]
    if major_version is not None and len(attestations) < min_threshold:
        backfill = unversioned[: max(0, limit - len(attestations))]
        attestations.extend(backfill)
        if backfill:
            logger.debug(
                f"Added {len(backfill)} unversioned attestations "
                f"(below threshold of {min_threshold})"
            )

    logger.info(
        f"Returning {len(attestations)} attestations for {did} "
        f"({len(matched)} version-matched, {len(unversioned)} unversioned)",
        extra={"did": did},
    )
    return AttestationQueryResult(
        attestations=attestations,
        scanned_events=len(events),
        skipped=skipped,
    )


def deduplicate_reviews(records: List[AttestationRecord]) -> List[AttestationRecord]:
    """Keep the newest user review per (attester, subject, version).

    Input must be newest first. Records of other schemas are dropped.
    """
    seen: Dict[tuple, AttestationRecord] = {}
    for record in records:
        if record.schema_id != USER_REVIEW_SCHEMA:
            continue
        key = (
            record.attester.lower(),
            record.data.get("subject") or "",
            record.data.get("version") or "",
        )
        if key not in seen:
            seen[key] = record
    return list(seen.values())


def _rating(data: Dict[str, Any]) -> Optional[float]:
    for name in RATING_FIELDS:
        value = data.get(name)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and value:
            return float(value)
    return None


def calculate_average_rating(records: List[AttestationRecord]) -> RatingSummary:
    """Average rating over deduplicated, non-revoked user reviews.

    Returns average 0 with count 0 when no review carries a rating.
    """
    ratings = [
        r for r in (
            _rating(rec.data) for rec in deduplicate_reviews(records) if not rec.is_revoked
        )
        if r is not None
    ]
    if not ratings:
        return RatingSummary(average=0.0, count=0)
    return RatingSummary(average=sum(ratings) / len(ratings), count=len(ratings))
