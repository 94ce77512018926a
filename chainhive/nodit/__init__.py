"""Nodit Web3 data API and JSON-RPC client."""

from .chains import SUPPORTED_CHAINS, ChainConfig, get_chain
from .client import NoditClient

__all__ = ["NoditClient", "ChainConfig", "SUPPORTED_CHAINS", "get_chain"]
