"""ABI decoding of attestation payloads."""

from typing import Any, Dict

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from app.omatrust.exceptions import UpstreamDataShapeError

from .schemas import AttestationSchema, schema_types


def _plain(value: Any) -> Any:
    if isinstance(value, (tuple, list)):
        return [_plain(v) for v in value]
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return value


def decode_attestation_data(schema: AttestationSchema, data: bytes) -> Dict[str, Any]:
    """Decode an attestation payload into {field name: value}.

    Raises:
        UpstreamDataShapeError: If data does not match the schema layout.
    """
    types = schema_types(schema)
    try:
        values = decode(types, data)
    except (DecodingError, ValueError, TypeError, OverflowError) as e:
        raise UpstreamDataShapeError(
            f"Attestation data does not match schema {schema.id}: {e}"
        )
    return {f.name: _plain(v) for f, v in zip(schema.fields, values)}
