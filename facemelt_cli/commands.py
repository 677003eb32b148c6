"""
Facemelt CLI — Command Implementations
======================================

All CLI command handlers live here, keeping run.py as a thin
argparse dispatcher.  Each public function corresponds to a
subcommand (info, pool, quote, funding, entry, pnl).

Pool-based commands read reserves either live from the chain
(pool_reader.PoolReader) or from a JSON snapshot file, and take the
SOL/USD price from --sol-price or the DEXScreener feed.
"""

from __future__ import annotations

import json
import math
from pathlib import Path

import httpx
from loguru import logger

from facemelt_cli.central_config import PROJECT_NAME, PROJECT_VERSION, config
from pool_math import (
    LAMPORTS_PER_SOL,
    TOKEN_UNITS,
    PoolReserves,
    Position,
    calculate_expected_output,
    calculate_funding_rate,
    calculate_liquidity,
    calculate_market_cap,
    calculate_min_amount_out,
    calculate_pool_price,
    calculate_position_entry_price,
    calculate_position_pnl,
    calculate_real_reserves_price,
    format_token_amount,
    to_raw_amount,
)

# Failures reported to the user without internal details (CWE-209)
_HANDLED_ERRORS = (ValueError, RuntimeError, OSError, httpx.HTTPError)


# ── Input Helpers ────────────────────────────────────────────────────────


def load_snapshot(path: str | Path) -> PoolReserves:
    """Read a PoolReserves snapshot from a JSON file (snake_case or camelCase keys)."""
    try:
        data = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Snapshot is not valid JSON (line {e.lineno})") from e
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a JSON object of pool reserve fields")
    return PoolReserves.from_dict(data)


async def _load_reserves(
    address: str | None, snapshot: str | None, rpc: str | None
) -> PoolReserves:
    if snapshot:
        print(f"📂 Loading snapshot {Path(snapshot).name}...")
        return load_snapshot(snapshot)
    if not address:
        raise ValueError("Pass a pool address or --snapshot FILE")

    from pool_reader import PoolReader

    reader = PoolReader(rpc)
    print(f"🔍 Reading pool {address[:12]}... from {_mask_rpc_url(reader.rpc_url)}")
    return await reader.fetch_pool_reserves(address)


async def _resolve_sol_price(sol_price: float | None) -> float:
    if sol_price is not None:
        if sol_price < 0:
            raise ValueError(f"SOL price must be non-negative, got {sol_price}")
        return sol_price

    from facemelt_cli.sol_price import SolPriceClient

    price = await SolPriceClient().current_sol_usd_price()
    print(f"💲 SOL/USD: ${price:,.2f} (DEXScreener)")
    return price


def _mask_rpc_url(url: str) -> str:
    """Mask RPC URL so private API keys do not end up in terminal logs."""
    if not url:
        return "N/A"
    if url in config.rpc.CLUSTER_URLS.values():
        return url
    # Query-string keys (?api-key=...) and path keys (/v2/<key>)
    base = url.split("?", 1)[0]
    if base != url:
        return f"{base}?***"
    parts = url.rsplit("/", 1)
    if len(parts) == 2 and len(parts[1]) > 12:
        return f"{parts[0]}/***"
    return url


def _fmt_price(value: float) -> str:
    if not math.isfinite(value):
        return "undefined (empty effective token reserve)"
    return f"{value:.10f} SOL"


def _sanitize_error(e: Exception) -> str:
    """User-facing message: our own ValueError/RuntimeError text, generic otherwise."""
    if isinstance(e, httpx.HTTPError):
        return "Network request failed. Please try again."
    if isinstance(e, OSError):
        return f"Cannot read file: {Path(e.filename).name if e.filename else 'unknown'}"
    return str(e)


def _report_failure(e: Exception) -> bool:
    logger.debug(f"Command failed: {e!r}")
    print(f"❌ {_sanitize_error(e)}")
    return False


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_info() -> None:
    """Display engine and formula overview."""
    print(f"\n📊 {PROJECT_NAME} v{PROJECT_VERSION}")
    print("=" * 55)
    print("🔗 Protocol   : Facemelt leveraged constant-product AMM")
    print("🌐 Chain      : Solana")
    print(f"🧾 Program    : {config.rpc.PROGRAM_ID}")
    print(f"📡 RPC        : {_mask_rpc_url(config.rpc.resolve_url())}")
    print("💲 SOL/USD    : DEXScreener API (real-time, free, no key)")
    print()
    print("📁 Files:")
    print("   run.py               — CLI entry point")
    print("   pool_math.py         — AMM pricing & funding math engine")
    print("   pool_reader.py       — On-chain pool account reader")
    print("   facemelt_cli/        — RPC client, price feed, config, commands")
    print()
    print("📐 Formulas:")
    print("   Price     P  = (eff_SOL / 1e9) / (eff_TOKEN / 1e6)")
    print("   Swap      Δy = y·Δx / (x + Δx)")
    print("   Funding   r  = C · ((ΔK_long + ΔK_short) / k_e)²   per second")
    print("   P&L       (swap(size) − collateral·(lev − 1)) vs collateral")
    print()
    print("🔗 Quick Start:")
    print("   python run.py pool    <POOL_PUBKEY>")
    print("   python run.py quote   <POOL_PUBKEY> --amount 1.5")
    print("   python run.py pnl     <POOL_PUBKEY> --size 1000000000 --collateral 500000000 --leverage 2")
    print("   python run.py pool    --snapshot pool.json --sol-price 150")


async def cmd_pool(
    address: str | None = None,
    snapshot: str | None = None,
    rpc: str | None = None,
    sol_price: float | None = None,
) -> bool:
    """Price, market cap, liquidity and funding for one pool."""
    try:
        reserves = await _load_reserves(address, snapshot, rpc)
        sol_usd = await _resolve_sol_price(sol_price)
    except _HANDLED_ERRORS as e:
        return _report_failure(e)

    funding = calculate_funding_rate(reserves)
    real_token = reserves.token_reserve / TOKEN_UNITS

    print(f"\n📊 Pool Analysis{' — ' + address[:12] + '...' if address else ''}")
    print("=" * 55)
    print(f"💰 Price (effective) : {_fmt_price(calculate_pool_price(reserves))}")
    print(f"💰 Price (reserves)  : {_fmt_price(calculate_real_reserves_price(reserves))}")
    print(f"🏦 Market Cap        : {calculate_market_cap(reserves, sol_usd)}")
    print(f"💧 Liquidity         : {calculate_liquidity(reserves, sol_usd)}")
    print(f"🪙 Token Reserve     : {format_token_amount(real_token)}")
    print(f"◎  SOL Reserve       : {reserves.sol_reserve / LAMPORTS_PER_SOL:,.4f}")
    print(
        f"⏱️  Funding           : {funding.per_second:.8f}%/s · "
        f"{funding.per_day:.4f}%/day · {funding.per_annum:.2f}%/yr"
    )
    print("=" * 55)
    return True


async def cmd_quote(
    address: str | None = None,
    amount: float = 0.0,
    sell: bool = False,
    slippage: float = 1.0,
    snapshot: str | None = None,
    rpc: str | None = None,
) -> bool:
    """Quote a swap: SOL → TOKEN by default, TOKEN → SOL with sell=True."""
    try:
        if amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount}")
        reserves = await _load_reserves(address, snapshot, rpc)
        expected = calculate_expected_output(reserves, amount, not sell)
        min_out = calculate_min_amount_out(expected, slippage)
    except _HANDLED_ERRORS as e:
        return _report_failure(e)

    unit_in, unit_out = ("TOKEN", "SOL") if sell else ("SOL", "TOKEN")
    print(f"\n🔄 Swap Quote — {unit_in} → {unit_out}")
    print("=" * 55)
    print(f"   Amount in      : {amount:,.6f} {unit_in}")
    print(f"   Raw amount in  : {to_raw_amount(amount, not sell)}")
    print(f"   Expected out   : {expected:,.6f} {unit_out}")
    print(f"   Min out ({slippage:g}%) : {min_out:,.6f} {unit_out}")
    print(f"   Raw min out    : {to_raw_amount(min_out, sell)}")
    print("=" * 55)
    return True


async def cmd_funding(
    address: str | None = None,
    snapshot: str | None = None,
    rpc: str | None = None,
) -> bool:
    """Funding rate for one pool."""
    try:
        reserves = await _load_reserves(address, snapshot, rpc)
    except _HANDLED_ERRORS as e:
        return _report_failure(e)

    funding = calculate_funding_rate(reserves)
    print("\n⏱️  Funding Rate")
    print("=" * 55)
    print(f"   Per second : {funding.per_second:.10f}%")
    print(f"   Per day    : {funding.per_day:.6f}%")
    print(f"   Per annum  : {funding.per_annum:.4f}%")
    if funding.per_second == 0:
        print("   ℹ️  No open leverage — LPs earn no funding")
    print("=" * 55)
    return True


async def cmd_entry(
    size: int,
    collateral: int,
    leverage: float,
    short: bool = False,
    sol_price: float | None = None,
) -> bool:
    """USD entry price of a position from its raw size and collateral."""
    try:
        sol_usd = await _resolve_sol_price(sol_price)
    except _HANDLED_ERRORS as e:
        return _report_failure(e)

    entry = calculate_position_entry_price(size, collateral, leverage, not short, sol_usd)
    side = "SHORT" if short else "LONG"
    print(f"\n🎯 Entry Price — {side} {leverage:g}×")
    print("=" * 55)
    if math.isfinite(entry):
        print(f"   Entry price : ${entry:,.10f}")
    else:
        print("   Entry price : undefined (zero size or collateral)")
    print("=" * 55)
    return True


async def cmd_pnl(
    address: str | None = None,
    size: int = 0,
    collateral: int = 0,
    leverage: float = 1.0,
    short: bool = False,
    snapshot: str | None = None,
    rpc: str | None = None,
    sol_price: float | None = None,
) -> bool:
    """Unrealized P&L of a position against the pool's current curve."""
    try:
        if leverage < 1:
            raise ValueError(f"Leverage must be at least 1, got {leverage}")
        reserves = await _load_reserves(address, snapshot, rpc)
        sol_usd = await _resolve_sol_price(sol_price)
    except _HANDLED_ERRORS as e:
        return _report_failure(e)

    position = Position(is_long=not short, size=size, collateral=collateral, leverage=leverage)
    pnl = calculate_position_pnl(position, reserves, sol_usd)
    entry = calculate_position_entry_price(size, collateral, leverage, not short, sol_usd)

    side = "SHORT" if short else "LONG"
    icon = "📈" if pnl >= 0 else "📉"
    print(f"\n{icon} Position P&L — {side} {leverage:g}×")
    print("=" * 55)
    if math.isfinite(entry):
        print(f"   Entry price : ${entry:,.10f}")
    print(f"   P&L         : {pnl:+.2f}%")
    print("=" * 55)
    return True
