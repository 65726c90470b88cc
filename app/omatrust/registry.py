"""Read interface to the app registry.

Only the data commitment for a DID is consumed here; the registry's
storage layout and write path live elsewhere.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RegistryDataRecord:
    """Off-chain metadata commitment recorded for a DID.

    Attributes:
        did: Registered DID.
        data_url: Where the metadata document is served.
        data_hash: 0x-prefixed digest of the canonical document.
        data_hash_algorithm: 0 = keccak256, 1 = sha256.
    """
    did: str
    data_url: str
    data_hash: str
    data_hash_algorithm: int = 0


class RegistryReadClient(ABC):
    """Registry lookups needed by integrity verification."""

    @abstractmethod
    async def get_data_record(self, did: str) -> Optional[RegistryDataRecord]:
        """Return the data commitment for did, or None if unregistered.

        Raises:
            RegistryLookupError: If the registry cannot be queried.
        """
        ...
