"""
Project Configuration — RPC endpoints, program id, price API, version
=====================================================================

Contains Solana RPC and DEXScreener price-feed configuration plus
project metadata.
Sources:
  Solana JSON-RPC : https://solana.com/docs/rpc
  DEXScreener API : https://docs.dexscreener.com/api/reference
"""

import os
import re
from dataclasses import dataclass
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path
from types import MappingProxyType

# Version — single source of truth is pyproject.toml
try:
    PROJECT_VERSION = version("facemelt-cli")
except PackageNotFoundError:
    # Dev / CI: package not installed — read pyproject.toml directly
    _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
    _m = (
        re.search(r'version\s*=\s*"([^"]+)"', _toml.read_text())
        if _toml.exists()
        else None
    )
    PROJECT_VERSION = _m.group(1) if _m else "0.0.0-dev"
PROJECT_NAME = "Facemelt CLI"


@dataclass(frozen=True)
class SolanaRPC:
    """Solana cluster and Facemelt program configuration."""

    # Public endpoints — no API key required
    CLUSTER_URLS = MappingProxyType(
        {
            "mainnet": "https://api.mainnet-beta.solana.com",
            "devnet": "https://api.devnet.solana.com",
            "localnet": "http://127.0.0.1:8899",
        }
    )

    DEFAULT_CLUSTER: str = "devnet"

    # Facemelt on-chain program (Anchor)
    PROGRAM_ID: str = os.getenv(
        "FACEMELT_PROGRAM_ID", "5cZM87xG3opyuDjBedCpxJ6mhDyztVXLEB18tcULCmmW"
    )

    COMMITMENT: str = "confirmed"
    TIMEOUT_SECONDS: int = 20

    @classmethod
    def resolve_url(cls, rpc: str | None = None) -> str:
        """Explicit URL or cluster name → URL; falls back to $SOLANA_RPC_URL."""
        if rpc:
            return cls.CLUSTER_URLS.get(rpc, rpc)
        env_url = os.getenv("SOLANA_RPC_URL")
        if env_url:
            return env_url
        return cls.CLUSTER_URLS[cls.DEFAULT_CLUSTER]


@dataclass(frozen=True)
class PriceFeedAPI:
    """DEXScreener token endpoint used as the SOL/USD oracle."""

    BASE_URL: str = "https://api.dexscreener.com"
    TOKENS_ENDPOINT: str = "/tokens/v1"
    CHAIN_ID: str = "solana"

    # Wrapped SOL mint
    WSOL_MINT: str = "So11111111111111111111111111111111111111112"

    TIMEOUT_SECONDS: int = 15

    # DEXScreener allows 300 req/min; keep a safety margin
    MAX_REQUESTS_PER_MINUTE: int = 250

    @classmethod
    def get_sol_price_url(cls) -> str:
        """URL listing pairs for the wrapped SOL mint."""
        return f"{cls.BASE_URL}{cls.TOKENS_ENDPOINT}/{cls.CHAIN_ID}/{cls.WSOL_MINT}"


# Unified configuration
class FacemeltConfig:
    """Unified configuration for RPC and price feed."""

    rpc = SolanaRPC()
    price = PriceFeedAPI()


# Global instance
config = FacemeltConfig()
