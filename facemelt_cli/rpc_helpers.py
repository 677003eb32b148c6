#!/usr/bin/env python3
"""
RPC Helpers — Solana JSON-RPC Client and Account Decoding
==========================================================

Low-level Solana interaction primitives used by pool_reader.py:

  • Little-endian field decoding (u8, bool, u64, i64, u128, pubkey)
  • JSON-RPC client (getAccountInfo, getSlot)
  • Base58 public key validation

Account data follows Borsh / Anchor serialization:
  https://borsh.io
  https://www.anchor-lang.com/docs/references/account-types

Terminology:
  • Discriminator: first 8 bytes of an Anchor account = sha256("account:<Name>")[:8]
  • Pubkey:        32 raw bytes, displayed as base58
  • Lamport:       10^-9 SOL
"""

import base64
import struct

import base58
import httpx
from loguru import logger

# ── Field Sizes ─────────────────────────────────────────────────────────

PUBKEY_BYTES = 32
U8_BYTES = 1
U64_BYTES = 8
U128_BYTES = 16
DISCRIMINATOR_BYTES = 8

_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


# ── Public Keys ─────────────────────────────────────────────────────────


def is_valid_pubkey(address: str) -> bool:
    """True if `address` is base58 that decodes to exactly 32 bytes.

    >>> is_valid_pubkey("11111111111111111111111111111111")
    True
    """
    if not address or not isinstance(address, str):
        return False
    try:
        return len(base58.b58decode(address)) == PUBKEY_BYTES
    except ValueError:
        return False


# ── Decoding ────────────────────────────────────────────────────────────


def decode_u8(data: bytes, offset: int = 0) -> int:
    return data[offset]


def decode_bool(data: bytes, offset: int = 0) -> bool:
    return data[offset] != 0


def decode_u64(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 64-bit little-endian integer at `offset`."""
    return _U64.unpack_from(data, offset)[0]


def decode_i64(data: bytes, offset: int = 0) -> int:
    """Decode a signed 64-bit little-endian integer at `offset`."""
    return _I64.unpack_from(data, offset)[0]


def decode_u128(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 128-bit little-endian integer at `offset`.

    >>> decode_u128((1).to_bytes(16, "little"))
    1
    """
    return int.from_bytes(data[offset:offset + U128_BYTES], "little")


def decode_pubkey(data: bytes, offset: int = 0) -> str:
    """Decode a 32-byte public key at `offset` to base58."""
    return base58.b58encode(data[offset:offset + PUBKEY_BYTES]).decode("ascii")


# ── JSON-RPC Client ─────────────────────────────────────────────────────


def _rpc_result(resp: httpx.Response) -> dict:
    """Validate an HTTP JSON-RPC response and return its decoded body.

    Raises:
        RuntimeError: Non-200 status, non-JSON body, or a JSON-RPC error.
    """
    if resp.status_code == 429:
        raise RuntimeError("RPC rate limit reached. Please wait and try again.")
    if resp.status_code != 200:
        raise RuntimeError(f"RPC HTTP error {resp.status_code}")
    try:
        result = resp.json()
    except ValueError as e:
        raise RuntimeError("RPC returned a non-JSON response") from e
    if not isinstance(result, dict):
        raise RuntimeError("RPC returned an unexpected response")
    if "error" in result:
        err = result["error"]
        message = err.get("message", err) if isinstance(err, dict) else err
        raise RuntimeError(f"RPC error: {message}")
    return result


async def get_account_info(
    rpc_url: str, address: str, commitment: str = "confirmed", timeout: int = 20
) -> bytes:
    """
    Fetch raw account data via getAccountInfo.

    Args:
        rpc_url: JSON-RPC endpoint URL
        address: Account public key (base58)
        commitment: processed | confirmed | finalized
        timeout: HTTP timeout in seconds

    Returns:
        Decoded account data bytes.

    Raises:
        RuntimeError: If the RPC call fails or the account does not exist.
    """
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "getAccountInfo",
        "params": [address, {"encoding": "base64", "commitment": commitment}],
    }
    logger.debug(f"[RPC] getAccountInfo {address[:12]}... via {rpc_url}")
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(rpc_url, json=payload)
        result = _rpc_result(resp)
        value = (result.get("result") or {}).get("value")
        if not value:
            raise RuntimeError("Account not found — check the pool address and cluster")
        data = value.get("data") or []
        if not data:
            raise RuntimeError("Account has no data")
        return base64.b64decode(data[0])


async def get_slot(rpc_url: str, commitment: str = "confirmed", timeout: int = 10) -> int:
    """
    Get the current slot, recorded alongside snapshots for reproducibility.

    Raises:
        RuntimeError: If the RPC call fails.
    """
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "getSlot",
        "params": [{"commitment": commitment}],
    }
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(rpc_url, json=payload)
        result = _rpc_result(resp)
        if result.get("result") is None:
            raise RuntimeError("RPC returned no slot")
        return int(result["result"])
