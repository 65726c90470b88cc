"""Attestation schema catalogue.

Each schema's ABI layout is derived from its field list. The deployed
schema UID on a chain defaults to the value the schema registry assigns:

    uid = keccak256(abi.encodePacked(schemaString, resolver, revocable))

with no resolver. Deployments registered differently are configured via
OMA_SCHEMA_UIDS.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from app.core.config import ATTESTATION_CHAIN_ID, SCHEMA_UID_OVERRIDES
from app.omatrust.hashing import from_hex, keccak256, to_hex

ZERO_ADDRESS = "0x" + "00" * 20
ZERO_UID = "0x" + "00" * 32


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str = "string"
    max: Optional[int] = None


@dataclass(frozen=True)
class AttestationSchema:
    """A known attestation schema.

    Attributes:
        id: Catalogue id ("user-review").
        title: Display title.
        fields: Ordered field definitions (ABI order).
        revocable: Whether attestations under the schema can be revoked.
        deployed_uids: chain id -> schema UIDs accepted on that chain.
    """
    id: str
    title: str
    fields: Tuple[SchemaField, ...]
    revocable: bool = True
    deployed_uids: Dict[int, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


def _abi_type(f: SchemaField) -> str:
    if f.type == "integer":
        return "uint8" if f.max is not None and f.max <= 255 else "uint256"
    if f.type == "array":
        return "string[]"
    # string, datetime, uri, enum
    return "string"


def schema_types(schema: AttestationSchema) -> List[str]:
    """ABI types of the schema's fields, in order."""
    return [_abi_type(f) for f in schema.fields]


def schema_string(schema: AttestationSchema) -> str:
    """EAS schema definition, e.g. "string subject,uint8 ratingValue"."""
    return ",".join(f"{t} {f.name}" for t, f in zip(schema_types(schema), schema.fields))


def compute_schema_uid(
    definition: str,
    resolver: str = ZERO_ADDRESS,
    revocable: bool = True,
) -> str:
    """Schema UID assigned by the schema registry for a registration."""
    packed = definition.encode("utf-8") + from_hex(resolver) + (b"\x01" if revocable else b"\x00")
    return to_hex(keccak256(packed))


def _with_default_uid(schema: AttestationSchema, *known: str) -> AttestationSchema:
    override = SCHEMA_UID_OVERRIDES.get(schema.id)
    if override:
        uids: Tuple[str, ...] = (override.lower(),)
    else:
        uids = (compute_schema_uid(schema_string(schema), revocable=schema.revocable),)
    uids += tuple(u.lower() for u in known if u.lower() not in uids)
    return AttestationSchema(
        id=schema.id,
        title=schema.title,
        fields=schema.fields,
        revocable=schema.revocable,
        deployed_uids={ATTESTATION_CHAIN_ID: uids},
    )


_CATALOGUE: List[AttestationSchema] = [
    _with_default_uid(AttestationSchema(
        id="user-review",
        title="User Review",
        fields=(
            SchemaField("subject"),
            SchemaField("version"),
            SchemaField("ratingValue", "integer", max=5),
            SchemaField("summary"),
            SchemaField("reviewBody"),
        ),
    )),
    _with_default_uid(AttestationSchema(
        id="endorsement",
        title="Endorsement",
        fields=(
            SchemaField("subject"),
            SchemaField("version"),
            SchemaField("endorserCredential"),
            SchemaField("statement"),
        ),
    )),
    _with_default_uid(AttestationSchema(
        id="certification",
        title="Certification",
        fields=(
            SchemaField("subject"),
            SchemaField("version"),
            SchemaField("programId"),
            SchemaField("certificationLevel", "enum"),
            SchemaField("reportUrl", "uri"),
            SchemaField("validUntil", "datetime"),
        ),
    )),
    _with_default_uid(
        AttestationSchema(
            id="key-binding",
            title="Key Binding",
            fields=(SchemaField("subject"), SchemaField("keyId")),
        ),
        # Redeployed and original registrations on OMAchain testnet
        "0x807b38ce9aa23fdde4457de01db9c5e8d6ec7c8feebee242e52be70847b7b966",
        "0x290ce7f909a98f74d2356cf24102ac813555fa0bcd456f1bab17da2d92632e1d",
    ),
    _with_default_uid(AttestationSchema(
        id="controller-witness",
        title="Controller Witness",
        fields=(
            SchemaField("subject"),
            SchemaField("controller"),
            SchemaField("method", "enum"),
            SchemaField("observedAt", "integer"),
        ),
        revocable=False,
    )),
]

_BY_ID: Dict[str, AttestationSchema] = {s.id: s for s in _CATALOGUE}


def get_all_schemas() -> List[AttestationSchema]:
    return list(_CATALOGUE)


def get_schema(schema_id: str) -> Optional[AttestationSchema]:
    return _BY_ID.get(schema_id)


def get_deployed_schemas(chain_id: int) -> List[AttestationSchema]:
    """Schemas with at least one non-zero UID on chain_id."""
    return [
        s for s in _CATALOGUE
        if any(uid and uid != ZERO_UID for uid in s.deployed_uids.get(chain_id, ()))
    ]


def schema_for_uid(schemas: List[AttestationSchema], chain_id: int, schema_uid: str) -> Optional[AttestationSchema]:
    """Find the schema deployed on chain_id under schema_uid (case-insensitive)."""
    wanted = schema_uid.lower()
    for schema in schemas:
        if wanted in schema.deployed_uids.get(chain_id, ()):
            return schema
    return None
