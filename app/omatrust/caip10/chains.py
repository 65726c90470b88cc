"""Known chains for CAIP-10 reference lookup.

Only mainnets are listed; testnet identifiers must be supplied as a full
CAIP-10 string.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    testnet: bool = False


_EVM_MAINNETS = [
    # L1
    ChainInfo(1, "Ethereum"),
    ChainInfo(56, "BNB Smart Chain"),
    ChainInfo(137, "Polygon"),
    ChainInfo(43114, "Avalanche C-Chain"),
    ChainInfo(250, "Fantom Opera"),
    ChainInfo(42161, "Arbitrum One"),
    ChainInfo(10, "OP Mainnet"),
    ChainInfo(42220, "Celo"),
    ChainInfo(100, "Gnosis"),
    ChainInfo(1284, "Moonbeam"),
    ChainInfo(25, "Cronos"),
    # L2
    ChainInfo(8453, "Base"),
    ChainInfo(7777777, "Zora"),
    ChainInfo(324, "zkSync"),
    ChainInfo(1101, "Polygon zkEVM"),
    ChainInfo(59144, "Linea"),
    ChainInfo(534352, "Scroll"),
    ChainInfo(81457, "Blast"),
    ChainInfo(34443, "Mode"),
]

ALL_CHAINS: List[ChainInfo] = sorted(_EVM_MAINNETS, key=lambda c: c.name.lower())

_BY_ID: Dict[int, ChainInfo] = {c.chain_id: c for c in ALL_CHAINS}

# Default (mainnet) reference for non-EVM namespaces
NON_EVM_REFERENCES: Dict[str, str] = {
    "solana": "mainnet",
    "sui": "mainnet",
}


def search_chains(query: str) -> List[ChainInfo]:
    """Match chains by case-insensitive name substring or chain id substring.

    An empty query returns every chain.
    """
    q = (query or "").strip().lower()
    if not q:
        return list(ALL_CHAINS)
    return [c for c in ALL_CHAINS if q in c.name.lower() or q in str(c.chain_id)]


def get_chain_by_id(chain_id: int) -> Optional[ChainInfo]:
    return _BY_ID.get(chain_id)
