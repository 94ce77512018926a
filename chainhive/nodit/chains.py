"""Chains served through Nodit and their JSON-RPC endpoints."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ChainConfig:
    """Static description of a supported chain."""

    id: str
    name: str
    symbol: str
    chain_id: Optional[int] = None  # EVM chain id; None for non-EVM chains
    rpc_urls: tuple[str, ...] = field(default_factory=tuple)  # primary first

    @property
    def is_evm(self) -> bool:
        return self.chain_id is not None


SUPPORTED_CHAINS: dict[str, ChainConfig] = {
    chain.id: chain
    for chain in (
        ChainConfig(
            id="ethereum",
            name="Ethereum",
            symbol="ETH",
            chain_id=1,
            rpc_urls=("https://ethereum-mainnet.nodit.io", "https://cloudflare-eth.com"),
        ),
        ChainConfig(
            id="polygon",
            name="Polygon",
            symbol="MATIC",
            chain_id=137,
            rpc_urls=("https://polygon-mainnet.nodit.io", "https://polygon-rpc.com"),
        ),
        ChainConfig(
            id="bsc",
            name="BNB Smart Chain",
            symbol="BNB",
            chain_id=56,
            rpc_urls=("https://bsc-dataseed.binance.org",),
        ),
        ChainConfig(
            id="arbitrum",
            name="Arbitrum",
            symbol="ETH",
            chain_id=42161,
            rpc_urls=("https://arbitrum-mainnet.nodit.io", "https://arb1.arbitrum.io/rpc"),
        ),
        ChainConfig(
            id="optimism",
            name="Optimism",
            symbol="ETH",
            chain_id=10,
            rpc_urls=("https://optimism-mainnet.nodit.io", "https://mainnet.optimism.io"),
        ),
        ChainConfig(
            id="kairos",
            name="Kairos",
            symbol="KAIA",
            chain_id=1001,
            rpc_urls=("https://kaia-kairos.nodit.io", "https://public-en-kairos.node.kaia.io"),
        ),
        ChainConfig(id="aptos", name="Aptos", symbol="APT"),
        ChainConfig(id="sui", name="Sui", symbol="SUI"),
        ChainConfig(id="xrpl", name="XRP Ledger", symbol="XRP"),
        ChainConfig(id="solana", name="Solana", symbol="SOL"),
    )
}


def get_chain(chain: str) -> ChainConfig:
    """Look up a supported chain.

    Raises:
        ValueError: If the chain is not supported
    """
    try:
        return SUPPORTED_CHAINS[chain]
    except KeyError:
        raise ValueError(f"Unsupported chain: {chain}") from None
