"""
Single Source of Truth (SSOT) for supported chains.

Every component that needs an indexer endpoint, a factory address or an
RPC endpoint list resolves it here. Never hardcode chain ids elsewhere.

To add a chain:
1. Add an entry to CHAIN_CONFIG
2. Add its id to SYNC_ENABLED_CHAINS to poll it
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a single chain."""

    chain_id: int
    display_name: str
    indexer_url: str | None = None          # Default subgraph endpoint
    factory_address: str | None = None      # CoinLeague V3 factory
    rpc_env_var: str | None = None          # Overrides the primary RPC endpoint
    rpc_urls: tuple[str, ...] = field(default_factory=tuple)


CHAIN_CONFIG: dict[int, ChainConfig] = {
    137: ChainConfig(
        chain_id=137,
        display_name="Polygon",
        indexer_url="https://api.studio.thegraph.com/query/1827/coinleague-polygon/version/latest",
        factory_address="0x43fB5D9d4Dcd6D71d668dc6f12fFf97F35C0Bd7E",
        rpc_env_var="POLYGON_RPC_URL",
        rpc_urls=(
            "https://polygon-rpc.com",
            "https://polygon.llamarpc.com",
            "https://rpc.ankr.com/polygon",
            "https://polygon-rpc.publicnode.com",
            "https://1rpc.io/matic",
            "https://polygon.blockpi.network/v1/rpc/public",
            "https://polygon.drpc.org",
        ),
    ),
    8453: ChainConfig(
        chain_id=8453,
        display_name="Base",
        indexer_url="https://api.studio.thegraph.com/query/1827/coinleague-base/version/latest",
        factory_address="0x34C21825ef6Bfbf69cb8748B4587f88342da7aFb",
        rpc_env_var="BASE_RPC_URL",
        rpc_urls=(
            "https://mainnet.base.org",
            "https://base.llamarpc.com",
            "https://base-rpc.publicnode.com",
        ),
    ),
    56: ChainConfig(
        chain_id=56,
        display_name="BNB Smart Chain",
        indexer_url="https://api.thegraph.com/subgraphs/name/joaocampos89/coinleaguebsc",
        factory_address=None,  # No V3 factory deployed
        rpc_env_var="BSC_RPC_URL",
        rpc_urls=(
            "https://bsc-dataseed.binance.org",
            "https://bsc-dataseed1.defibit.io",
            "https://bsc-dataseed1.ninicoin.io",
        ),
    ),
    97: ChainConfig(
        chain_id=97,
        display_name="BNB Smart Chain Testnet",
        rpc_env_var="BSC_TESTNET_RPC_URL",
        rpc_urls=(
            "https://data-seed-prebsc-1-s1.binance.org:8545",
            "https://data-seed-prebsc-2-s1.binance.org:8545",
            "https://bsc-testnet.publicnode.com",
        ),
    ),
    80001: ChainConfig(
        chain_id=80001,
        display_name="Polygon Mumbai",
        indexer_url="https://api.thegraph.com/subgraphs/name/joaocampos89/coinleaguemumbaiv3",
        factory_address="0xb33f24f9ddc38725F2b791e63Fb26E6CEc5e842A",
        rpc_env_var="MUMBAI_RPC_URL",
        rpc_urls=(
            "https://rpc-mumbai.maticvigil.com",
            "https://matic-mumbai.chainstacklabs.com",
        ),
    ),
}


def get_chain_config(chain_id: int) -> ChainConfig | None:
    return CHAIN_CONFIG.get(chain_id)


def get_indexer_endpoint(chain_id: int) -> str | None:
    """Resolve the subgraph endpoint: GRAPHQL_ENDPOINT_<chainId>, then the default.

    Anything that is not an http(s) URL counts as missing.
    """
    override = os.getenv(f"GRAPHQL_ENDPOINT_{chain_id}", "").strip()
    if override:
        endpoint: str | None = override
    else:
        config = CHAIN_CONFIG.get(chain_id)
        endpoint = config.indexer_url if config else None
    if not endpoint or not endpoint.startswith("http"):
        return None
    return endpoint


def get_factory_address(chain_id: int) -> str | None:
    config = CHAIN_CONFIG.get(chain_id)
    if config is None or not config.factory_address:
        return None
    return config.factory_address


def get_rpc_urls(chain_id: int) -> list[str]:
    """Ordered RPC endpoint candidates; the env override replaces the primary."""
    config = CHAIN_CONFIG.get(chain_id)
    if config is None:
        return []
    urls = list(config.rpc_urls)
    override = os.getenv(config.rpc_env_var, "").strip() if config.rpc_env_var else ""
    if override:
        if urls:
            urls[0] = override
        else:
            urls.append(override)
    # Keep order, drop duplicates introduced by the override
    return list(dict.fromkeys(urls))


def all_rpc_urls() -> dict[int, list[str]]:
    return {chain_id: get_rpc_urls(chain_id) for chain_id in CHAIN_CONFIG}
