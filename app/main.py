import logging
import os
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import DEFAULT_ATTESTATION_LIMIT
from app.logging_config import configure_logging
from app.omatrust.api_models import (
    AttestationsResponse,
    AttestationView,
    Caip10Request,
    Caip10Response,
    DataUrlVerifyRequest,
    DataUrlVerifyResponse,
    DidRequest,
    DidResponse,
    ErrorCode,
    EvidenceRequest,
    EvidenceResponse,
    error_detail,
)
from app.omatrust.attestations import calculate_average_rating, get_attestations_for_subject
from app.omatrust.caip10 import normalize_caip10
from app.omatrust.did import (
    canonicalize_did,
    compute_did_hash,
    compute_index_address,
    did_to_index_address,
)
from app.omatrust.evidence import verify_controller_evidence, verify_did_web_control
from app.omatrust.exceptions import MalformedInputError
from app.omatrust.hashing import to_hex
from app.omatrust.integrity import verify_hash

configure_logging()
log = logging.getLogger("omatrust")

app = FastAPI(title="OMATrust Verifier", version="0.1.0")


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.middleware("http")
async def req_log(request: Request, call_next):
    start = time.time()
    route = request.url.path
    remote = request.client.host if request.client else "-"
    resp = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)
    log.info(f"request_complete status={resp.status_code} duration_ms={duration_ms}",
             extra={"request_id": "-", "route": route, "remote_addr": remote})
    return resp


@app.get("/version")
def version():
    # GIT_SHA is injected at deploy time
    return {"git_sha": os.getenv("GIT_SHA", "unknown")}


@app.post("/caip10/normalize")
def caip10_normalize(req: Caip10Request):
    result = normalize_caip10(req.caip10)
    errors = None
    if not result.valid:
        errors = [error_detail(result.error_code or ErrorCode.MALFORMED_INPUT, result.error)]
    resp = Caip10Response(
        valid=result.valid, normalized=result.normalized, error=result.error, errors=errors,
    )
    return JSONResponse(resp.model_dump())


def _did_response(did: str, with_index: bool) -> DidResponse:
    try:
        canonical = canonicalize_did(did)
    except MalformedInputError as e:
        return DidResponse(did=did, errors=[error_detail(e.code, e.message)])

    if not with_index:
        return DidResponse(did=did, canonical=canonical)

    did_hash = compute_did_hash(canonical)
    return DidResponse(
        did=did,
        canonical=canonical,
        did_hash=to_hex(did_hash),
        index_address=to_hex(compute_index_address(did_hash)),
    )


@app.post("/did/canonicalize")
def did_canonicalize(req: DidRequest):
    resp = _did_response(req.did, with_index=False)
    return JSONResponse(resp.model_dump(), status_code=400 if resp.errors else 200)


@app.post("/did/index-address")
def did_index_address(req: DidRequest):
    resp = _did_response(req.did, with_index=True)
    return JSONResponse(resp.model_dump(), status_code=400 if resp.errors else 200)


@app.post("/evidence/verify")
async def evidence_verify(req: EvidenceRequest, request: Request):
    if req.method:
        result = await verify_controller_evidence(req.subject, req.controller, req.method)
    else:
        result = await verify_did_web_control(req.subject, req.controller)

    log.info(f"evidence_verify found={result.found}", extra={
        "route": "/evidence/verify",
        "did": req.subject,
        "remote_addr": request.client.host if request.client else "-",
    })
    resp = EvidenceResponse(
        found=result.found,
        method=result.method.value if result.method else None,
        matched_controller=result.matched_controller,
        details=result.details,
        errors=None if result.found else [
            error_detail(result.error_code or ErrorCode.EVIDENCE_NOT_FOUND, result.details or "No evidence found")
        ],
    )
    return JSONResponse(resp.model_dump())


@app.post("/data-url/verify")
async def data_url_verify(req: DataUrlVerifyRequest):
    result = await verify_hash(req.url, req.expected_hash, req.algorithm)
    errors = None
    if not result.ok:
        message = result.error or (
            f"Computed hash {result.computed_hash} does not match expected {req.expected_hash}"
        )
        errors = [error_detail(result.error_code or ErrorCode.INTERNAL_ERROR, message)]
    resp = DataUrlVerifyResponse(ok=result.ok, computed_hash=result.computed_hash, errors=errors)
    return JSONResponse(resp.model_dump())


@app.get("/attestations/{did:path}")
async def attestations(did: str, limit: int = DEFAULT_ATTESTATION_LIMIT, major_version: Optional[str] = None):
    limit = max(1, min(limit, 100))
    result = await get_attestations_for_subject(did, limit=limit, major_version=major_version)

    if not result.ok:
        resp = AttestationsResponse(
            did=did,
            errors=[error_detail(result.error_code or ErrorCode.INTERNAL_ERROR, result.error)],
        )
        status = 400 if result.error_code in (
            ErrorCode.INVALID_DID_FORMAT, ErrorCode.INVALID_PKH_FORMAT, ErrorCode.MALFORMED_INPUT,
        ) else 503
        return JSONResponse(resp.model_dump(), status_code=status)

    rating = calculate_average_rating(result.attestations)
    resp = AttestationsResponse(
        did=did,
        index_address=did_to_index_address(did),
        attestations=[
            AttestationView(
                uid=a.uid,
                attester=a.attester,
                subject=a.subject,
                schema_id=a.schema_id,
                time=a.time,
                revocation_time=a.revocation_time,
                data=a.data,
            )
            for a in result.attestations
        ],
        average_rating=rating.average,
        rating_count=rating.count,
    )
    return JSONResponse(resp.model_dump())
