#!/usr/bin/env python3
"""
On-Chain Pool Reader for Facemelt
==================================

Reads REAL pool state directly from Solana via public JSON-RPC.
No API key required. No anchorpy/solana-py dependency — uses httpx for raw
getAccountInfo and decodes the Anchor account by hand.

Pool account layout (Anchor, Borsh little-endian):
──────────────────────────────────────────────────
  discriminator                    [u8; 8]  sha256("account:Pool")[:8]
  authority                        Pubkey
  token_mint                       Pubkey
  token_vault                      Pubkey
  token_reserve                    u64      vault TOKEN balance
  sol_reserve                      u64      vault SOL balance
  effective_sol_reserve            u64      virtual SOL used for pricing
  effective_token_reserve          u64      virtual TOKEN used for pricing
  total_delta_k_longs              u128
  total_delta_k_shorts             u128
  cumulative_funding_accumulator   u128
  last_update_timestamp            i64      unix seconds
  ema_price                        u64
  ema_initialized                  bool
  funding_constant_c               u64
  liquidation_divergence_threshold u64
  bump                             u8
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from facemelt_cli.central_config import config
from facemelt_cli.rpc_helpers import (
    DISCRIMINATOR_BYTES,
    PUBKEY_BYTES,
    U8_BYTES,
    U64_BYTES,
    U128_BYTES,
    decode_bool,
    decode_i64,
    decode_pubkey,
    decode_u8,
    decode_u64,
    decode_u128,
    get_account_info as _get_account_info,
    get_slot as _get_slot,
    is_valid_pubkey,
)
from pool_math import PoolReserves

POOL_DISCRIMINATOR = hashlib.sha256(b"account:Pool").digest()[:DISCRIMINATOR_BYTES]

# (field, decoder, size) in serialization order
_FIELD_TYPES = {
    "pubkey": (decode_pubkey, PUBKEY_BYTES),
    "u8": (decode_u8, U8_BYTES),
    "bool": (decode_bool, U8_BYTES),
    "u64": (decode_u64, U64_BYTES),
    "i64": (decode_i64, U64_BYTES),
    "u128": (decode_u128, U128_BYTES),
}

POOL_ACCOUNT_LAYOUT = (
    ("authority", "pubkey"),
    ("token_mint", "pubkey"),
    ("token_vault", "pubkey"),
    ("token_reserve", "u64"),
    ("sol_reserve", "u64"),
    ("effective_sol_reserve", "u64"),
    ("effective_token_reserve", "u64"),
    ("total_delta_k_longs", "u128"),
    ("total_delta_k_shorts", "u128"),
    ("cumulative_funding_accumulator", "u128"),
    ("last_update_timestamp", "i64"),
    ("ema_price", "u64"),
    ("ema_initialized", "bool"),
    ("funding_constant_c", "u64"),
    ("liquidation_divergence_threshold", "u64"),
    ("bump", "u8"),
)

POOL_ACCOUNT_SIZE = DISCRIMINATOR_BYTES + sum(
    _FIELD_TYPES[kind][1] for _, kind in POOL_ACCOUNT_LAYOUT
)


@dataclass(frozen=True)
class PoolAccount:
    """Decoded Facemelt pool account."""

    authority: str
    token_mint: str
    token_vault: str
    token_reserve: int
    sol_reserve: int
    effective_sol_reserve: int
    effective_token_reserve: int
    total_delta_k_longs: int
    total_delta_k_shorts: int
    cumulative_funding_accumulator: int
    last_update_timestamp: int
    ema_price: int
    ema_initialized: bool
    funding_constant_c: int
    liquidation_divergence_threshold: int
    bump: int
    address: str = ""
    slot: Optional[int] = None

    @property
    def reserves(self) -> PoolReserves:
        """Pricing snapshot for the math engine."""
        return PoolReserves(
            sol_reserve=self.sol_reserve,
            token_reserve=self.token_reserve,
            effective_sol_reserve=self.effective_sol_reserve,
            effective_token_reserve=self.effective_token_reserve,
            total_delta_k_longs=self.total_delta_k_longs,
            total_delta_k_shorts=self.total_delta_k_shorts,
            funding_constant_c=self.funding_constant_c,
        )


def decode_pool_account(raw: bytes, address: str = "", slot: Optional[int] = None) -> PoolAccount:
    """
    Decode raw Pool account bytes.

    Trailing bytes past the known layout (account padding) are ignored.

    Raises:
        ValueError: If the data is too short or is not a Pool account.
    """
    if len(raw) < POOL_ACCOUNT_SIZE:
        raise ValueError(
            f"Pool account data too short: {len(raw)} bytes (need {POOL_ACCOUNT_SIZE})"
        )
    if raw[:DISCRIMINATOR_BYTES] != POOL_DISCRIMINATOR:
        raise ValueError("Account is not a Facemelt pool (discriminator mismatch)")

    fields = {}
    offset = DISCRIMINATOR_BYTES
    for name, kind in POOL_ACCOUNT_LAYOUT:
        decoder, size = _FIELD_TYPES[kind]
        fields[name] = decoder(raw, offset)
        offset += size

    return PoolAccount(**fields, address=address, slot=slot)


# ── Pool Reader ─────────────────────────────────────────────────────────


class PoolReader:
    """
    Reads Facemelt pool accounts from a Solana RPC node.

    Usage:
        reader = PoolReader()                       # $SOLANA_RPC_URL or devnet
        reader = PoolReader("mainnet")              # cluster name
        reserves = await reader.fetch_pool_reserves("<pool pubkey>")
    """

    def __init__(self, rpc: str | None = None):
        self.rpc_url = config.rpc.resolve_url(rpc)
        self.commitment = config.rpc.COMMITMENT
        self.timeout = config.rpc.TIMEOUT_SECONDS

    async def _get_slot(self) -> Optional[int]:
        """Current slot for the audit trail; None if the node refuses."""
        try:
            return await _get_slot(self.rpc_url, self.commitment)
        except (RuntimeError, KeyError, ValueError, httpx.HTTPError) as e:
            logger.debug(f"[POOL] getSlot failed: {e}")
            return None

    async def read_pool(self, address: str) -> PoolAccount:
        """
        Read and decode a complete pool account.

        Raises:
            ValueError: Invalid address or non-pool account data.
            RuntimeError: RPC failure or missing account.
        """
        if not is_valid_pubkey(address):
            raise ValueError(f"Invalid pool address: {address}")

        slot = await self._get_slot()
        raw = await _get_account_info(
            self.rpc_url, address, commitment=self.commitment, timeout=self.timeout
        )
        pool = decode_pool_account(raw, address=address, slot=slot)
        logger.debug(
            f"[POOL] {address[:12]}... slot={slot} "
            f"eff_sol={pool.effective_sol_reserve} eff_token={pool.effective_token_reserve}"
        )
        return pool

    async def fetch_pool_reserves(self, address: str) -> PoolReserves:
        """Pricing snapshot of the pool at `address`."""
        pool = await self.read_pool(address)
        return pool.reserves
