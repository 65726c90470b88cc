"""
OMATrust trust-verification core configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the OMATrust identity/proof formats, cannot be changed
  without breaking interoperability with the on-chain indexer
- POLICY: Implementation choices (timeouts, size limits, thresholds)
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os

# =============================================================================
# NORMATIVE CONSTANTS
# =============================================================================

# Domain-separation prefix for DID index addresses.
# indexAddress = low20(keccak256(prefix || keccak256(canonicalDid)))
# The on-chain resolver recomputes this value; both sides MUST agree bit-for-bit.
DID_INDEX_PREFIX: str = "DID:Solidity:Address:v1:"

# DNS label under which controller evidence is published (_omatrust.<domain>)
EVIDENCE_DNS_PREFIX: str = "_omatrust"

# Evidence strings without this token are not evidence records
EVIDENCE_VERSION_TOKEN: str = "v=1"

# did:web document location
DID_DOCUMENT_PATH: str = "/.well-known/did.json"

# Accepted CAIP-2 references for non-EVM namespaces
SOLANA_REFERENCES: tuple[str, ...] = ("mainnet", "devnet", "testnet")
SUI_REFERENCES: tuple[str, ...] = ("mainnet", "testnet", "devnet")

# =============================================================================
# POLICY CONSTANTS
# =============================================================================

# Evidence source timeouts
DNS_TIMEOUT_SECONDS: float = float(os.getenv("OMA_DNS_TIMEOUT", "5.0"))
DID_DOCUMENT_TIMEOUT_SECONDS: float = float(
    os.getenv("OMA_DID_DOCUMENT_TIMEOUT", "10.0")
)

# Off-chain metadata (dataUrl) fetch constraints
DATA_URL_TIMEOUT_SECONDS: float = float(os.getenv("OMA_DATA_URL_TIMEOUT", "15.0"))
DATA_URL_MAX_BYTES: int = int(os.getenv("OMA_DATA_URL_MAX_BYTES", "2000000"))  # 2 MB
DATA_URL_MAX_REDIRECTS: int = int(os.getenv("OMA_DATA_URL_MAX_REDIRECTS", "3"))

# Content types accepted as JSON metadata
ACCEPTED_JSON_CONTENT_TYPES: frozenset[str] = frozenset({
    "application/json",
    "application/ld+json",
    "application/did+json",
    "application/did+ld+json",
})

# Attestation event scan window (~28 hours of OMAchain blocks).
# Only a recent sliding window is scanned, not the full history.
ATTESTATION_BLOCK_WINDOW: int = int(os.getenv("OMA_ATTESTATION_BLOCK_WINDOW", "50000"))

# Minimum number of version-matched attestations before unversioned
# attestations stop being mixed in. Product policy: new app versions without
# many version-tagged reviews should not appear to have zero reputation.
MIN_ATTESTATIONS_THRESHOLD: int = int(os.getenv("OMA_MIN_ATTESTATIONS_THRESHOLD", "10"))

# Default number of attestations returned per subject
DEFAULT_ATTESTATION_LIMIT: int = 5

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Chain hosting the attestation service (OMAchain testnet by default)
ATTESTATION_CHAIN_ID: int = int(os.getenv("OMA_ATTESTATION_CHAIN_ID", "66238"))

ATTESTATION_RPC_URL: str = os.getenv(
    "OMA_ATTESTATION_RPC_URL", "https://rpc.testnet.chain.oma3.org/"
)

# Attestation (EAS) contract on ATTESTATION_CHAIN_ID. Empty means not deployed;
# attestation queries then report a configuration error.
EAS_CONTRACT_ADDRESS: str = os.getenv("OMA_EAS_CONTRACT_ADDRESS", "")

RPC_TIMEOUT_SECONDS: float = float(os.getenv("OMA_RPC_TIMEOUT", "10.0"))


def _parse_schema_uid_overrides() -> dict[str, str]:
    """Parse schema UID overrides from environment.

    Environment variable format:
        OMA_SCHEMA_UIDS=user-review=0xabc...,endorsement=0xdef...

    Returns:
        Mapping of schema id to deployed schema UID on ATTESTATION_CHAIN_ID.
    """
    env_value = os.getenv("OMA_SCHEMA_UIDS", "")
    overrides: dict[str, str] = {}
    for item in env_value.split(","):
        if "=" not in item:
            continue
        schema_id, uid = item.split("=", 1)
        if schema_id.strip() and uid.strip():
            overrides[schema_id.strip()] = uid.strip()
    return overrides


# Deployed schema UIDs that differ from the computed defaults
SCHEMA_UID_OVERRIDES: dict[str, str] = _parse_schema_uid_overrides()
