"""
Network Table
Static mapping between network names and chain identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    display_name: str
    explorer_url: str
    currency_symbol: str = "ETH"
    testnet: bool = False


NETWORK_CONFIGS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig("mainnet", 1, "Ethereum Mainnet", "https://etherscan.io"),
    "sepolia": NetworkConfig(
        "sepolia", 11155111, "Ethereum Sepolia Testnet",
        "https://sepolia.etherscan.io", testnet=True,
    ),
    "polygon": NetworkConfig(
        "polygon", 137, "Polygon", "https://polygonscan.com", currency_symbol="MATIC",
    ),
    "arbitrum": NetworkConfig("arbitrum", 42161, "Arbitrum One", "https://arbiscan.io"),
    "optimism": NetworkConfig("optimism", 10, "Optimism", "https://optimistic.etherscan.io"),
    "base": NetworkConfig("base", 8453, "Base", "https://basescan.org"),
}

# Testnets the deploy CLI can build for. Not part of the policy allow-list.
EXTRA_DEPLOY_CHAIN_IDS: dict[str, int] = {
    "polygon-amoy": 80002,
    "arbitrum-sepolia": 421614,
    "optimism-sepolia": 11155420,
    "base-sepolia": 84532,
}

# Built-in allow-list consulted by the policy validator
BUILTIN_ALLOWED_CHAIN_IDS: frozenset[int] = frozenset(
    cfg.chain_id for cfg in NETWORK_CONFIGS.values()
)


def get_network_config(name: str) -> NetworkConfig:
    """Raises ValueError for an unknown network name."""
    try:
        return NETWORK_CONFIGS[name]
    except KeyError:
        raise ValueError(f"Unsupported network: {name}") from None


def get_network_by_chain_id(chain_id: int) -> Optional[NetworkConfig]:
    for cfg in NETWORK_CONFIGS.values():
        if cfg.chain_id == chain_id:
            return cfg
    return None


def chain_id_for(name: str, include_deploy_testnets: bool = False) -> Optional[int]:
    cfg = NETWORK_CONFIGS.get(name)
    if cfg is not None:
        return cfg.chain_id
    if include_deploy_testnets:
        return EXTRA_DEPLOY_CHAIN_IDS.get(name)
    return None


def deployable_networks() -> list[str]:
    return list(NETWORK_CONFIGS) + list(EXTRA_DEPLOY_CHAIN_IDS)
