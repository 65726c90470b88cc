"""Read access to the attestation service (EAS contract over JSON-RPC).

Only two reads are needed: Attested events filtered by recipient within
a block range, and the full attestation for a UID.

    event Attested(address indexed recipient, address indexed attester,
                   bytes32 uid, bytes32 indexed schemaUID)
    function getAttestation(bytes32 uid) returns (Attestation)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from app.core.config import (
    ATTESTATION_RPC_URL,
    EAS_CONTRACT_ADDRESS,
    RPC_TIMEOUT_SECONDS,
)
from app.omatrust.exceptions import AttestationServiceError, UpstreamDataShapeError
from app.omatrust.hashing import from_hex, keccak256, to_hex

from .models import AttestedEvent, RawAttestation

logger = logging.getLogger("omatrust.attestations.client")

ATTESTED_EVENT_TOPIC = to_hex(keccak256(b"Attested(address,address,bytes32,bytes32)"))
GET_ATTESTATION_SELECTOR = keccak256(b"getAttestation(bytes32)")[:4]

# (uid, schema, time, expirationTime, revocationTime, refUID,
#  recipient, attester, revocable, data)
ATTESTATION_STRUCT = "(bytes32,bytes32,uint64,uint64,uint64,bytes32,address,address,bool,bytes)"


class AttestationReadClient(ABC):
    """Attestation service reads used by the aggregator.

    Implementations raise AttestationServiceError when the service is
    unreachable and UpstreamDataShapeError for an undecodable record.
    """

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def get_attested_events(
        self, recipient: str, from_block: int, to_block: int
    ) -> List[AttestedEvent]:
        ...

    @abstractmethod
    async def get_attestation(self, uid: str) -> RawAttestation:
        ...


def address_topic(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte log topic."""
    return "0x" + from_hex(address).rjust(32, b"\x00").hex()


def _hex_bytes(value: Any, name: str) -> bytes:
    """Decode a hex field of an RPC payload; null or non-string is a ValueError."""
    if not isinstance(value, str):
        raise ValueError(f"{name} is {value!r}, expected a hex string")
    return from_hex(value)


def _topic_address(topic: Any) -> str:
    return to_hex(_hex_bytes(topic, "address topic")[-20:])


def _hex_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


class EasRpcClient(AttestationReadClient):
    """AttestationReadClient backed by an EVM JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str = ATTESTATION_RPC_URL,
        contract_address: str = EAS_CONTRACT_ADDRESS,
        timeout: float = RPC_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.timeout = timeout
        self._client = client
        self._next_id = 0

    async def _rpc(self, method: str, params: list) -> Any:
        self._next_id += 1
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}

        try:
            if self._client is not None:
                response = await self._client.post(self.rpc_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException:
            raise AttestationServiceError(f"{method} timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            raise AttestationServiceError(
                f"{method} failed: HTTP {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            raise AttestationServiceError(f"{method} failed: {e}")
        except ValueError as e:
            raise AttestationServiceError(f"{method} returned invalid JSON: {e}")

        if not isinstance(body, dict):
            raise AttestationServiceError(f"{method} returned a non-object response")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise AttestationServiceError(f"{method} RPC error: {message}")
        if "result" not in body:
            raise AttestationServiceError(f"{method} response has no result")
        return body["result"]

    async def get_block_number(self) -> int:
        result = await self._rpc("eth_blockNumber", [])
        try:
            return _hex_int(result)
        except (TypeError, ValueError):
            raise AttestationServiceError(f"eth_blockNumber returned {result!r}")

    async def get_attested_events(
        self, recipient: str, from_block: int, to_block: int
    ) -> List[AttestedEvent]:
        logs = await self._rpc("eth_getLogs", [{
            "address": self.contract_address,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "topics": [ATTESTED_EVENT_TOPIC, address_topic(recipient)],
        }])
        if not isinstance(logs, list):
            raise AttestationServiceError("eth_getLogs returned a non-list result")

        events = []
        for entry in logs:
            try:
                topics = entry["topics"]
                data = _hex_bytes(entry["data"], "data")
                if len(data) < 32:
                    raise ValueError(f"data is {len(data)} bytes, expected a 32-byte uid")
                events.append(AttestedEvent(
                    uid=to_hex(data[:32]),
                    schema_uid=to_hex(_hex_bytes(topics[3], "schema topic")),
                    recipient=_topic_address(topics[1]),
                    attester=_topic_address(topics[2]),
                    block_number=_hex_int(entry["blockNumber"]),
                    log_index=_hex_int(entry.get("logIndex", "0x0")),
                ))
            except (KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed Attested log: {e}")
        return events

    async def get_attestation(self, uid: str) -> RawAttestation:
        call_data = to_hex(GET_ATTESTATION_SELECTOR + from_hex(uid))
        result = await self._rpc(
            "eth_call",
            [{"to": self.contract_address, "data": call_data}, "latest"],
        )
        try:
            (fields,) = decode([ATTESTATION_STRUCT], _hex_bytes(result, "eth_call result"))
        except (DecodingError, ValueError, TypeError) as e:
            raise UpstreamDataShapeError(f"getAttestation({uid}) returned undecodable data: {e}")

        (a_uid, schema, time, expiration, revocation, ref_uid,
         recipient, attester, revocable, data) = fields
        return RawAttestation(
            uid=to_hex(a_uid),
            schema_uid=to_hex(schema),
            time=time,
            expiration_time=expiration,
            revocation_time=revocation,
            ref_uid=to_hex(ref_uid),
            recipient=recipient.lower(),
            attester=attester.lower(),
            revocable=revocable,
            data=data,
        )
