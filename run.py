#!/usr/bin/env python3
"""
Facemelt CLI -- Leveraged AMM Pool Analyzer
============================================

Pricing, swap quotes, funding rates and position P&L for Facemelt pools
on Solana.

Usage:
  python run.py pool    <pool>                                   Price, market cap, liquidity, funding
  python run.py quote   <pool> --amount 1.5                      Quote SOL → TOKEN
  python run.py quote   <pool> --amount 250000 --sell            Quote TOKEN → SOL
  python run.py funding <pool>                                   Funding rate only
  python run.py entry   --size <raw> --collateral <raw> --leverage 2 --sol-price 150
  python run.py pnl     <pool> --size <raw> --collateral <raw> --leverage 2 [--short]
  python run.py info                                             System overview

Every pool command also accepts --snapshot FILE (JSON reserves) instead of
a pool address.

Sources:
  Solana JSON-RPC : https://solana.com/docs/rpc
  DEXScreener API : https://docs.dexscreener.com/api/reference
"""

import sys
import asyncio
import argparse
from pathlib import Path

# ── Imports ───────────────────────────────────────────────────────────────

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from facemelt_cli.central_config import PROJECT_VERSION
from facemelt_cli.commands import (
    cmd_info,
    cmd_pool,
    cmd_quote,
    cmd_funding,
    cmd_entry,
    cmd_pnl,
)
from facemelt_cli.logger import setup_logger


# ── CLI Parser ────────────────────────────────────────────────────────────


def _add_pool_source(p: argparse.ArgumentParser) -> None:
    p.add_argument("pool", nargs="?", default=None, help="Pool account address (base58)")
    p.add_argument(
        "--snapshot",
        type=str,
        default=None,
        help="JSON file with pool reserves (used instead of an on-chain read)",
    )


def _add_position_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--size",
        type=int,
        required=True,
        help="Raw position size (long: TOKEN base units, short: lamports)",
    )
    p.add_argument(
        "--collateral",
        type=int,
        required=True,
        help="Raw collateral (long: lamports, short: TOKEN base units)",
    )
    p.add_argument(
        "--leverage", type=float, default=1.0, help="Leverage multiplier, e.g. 2.0"
    )
    p.add_argument(
        "--short", action="store_true", help="Short position (default: long)"
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="facemelt-cli",
        description=f"Facemelt CLI v{PROJECT_VERSION} — Leveraged AMM Pool Analyzer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py pool    <POOL>                              Live pool metrics
  python run.py pool    --snapshot pool.json --sol-price 150
  python run.py quote   <POOL> --amount 1.5 --slippage 0.5  Buy with 1.5 SOL
  python run.py quote   <POOL> --amount 250000 --sell       Sell 250k tokens
  python run.py funding <POOL>                              LP funding rate
  python run.py pnl     <POOL> --size 2000000000 --collateral 1000000000 --leverage 2
  python run.py info                                        System overview

Clusters for --rpc: mainnet, devnet, localnet, or any RPC URL.
Default: $SOLANA_RPC_URL, else devnet.
""",
    )
    parser.add_argument(
        "--version", action="version", version=f"Facemelt CLI v{PROJECT_VERSION}"
    )

    # Options shared by every data command, accepted after the subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--rpc",
        type=str,
        default=None,
        help="Cluster name (mainnet, devnet, localnet) or RPC URL",
    )
    common.add_argument(
        "--sol-price",
        type=float,
        default=None,
        help="SOL/USD price (skips the DEXScreener lookup)",
    )
    common.add_argument(
        "--verbose", "-v", action="store_true", help="Debug logging to stderr"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    pool_p = sub.add_parser(
        "pool", parents=[common], help="Price, market cap, liquidity and funding"
    )
    _add_pool_source(pool_p)

    quote_p = sub.add_parser(
        "quote", parents=[common], help="Constant-product swap quote"
    )
    _add_pool_source(quote_p)
    quote_p.add_argument(
        "--amount", type=float, required=True, help="Amount in (human units)"
    )
    quote_p.add_argument(
        "--sell", action="store_true", help="TOKEN → SOL (default: SOL → TOKEN)"
    )
    quote_p.add_argument(
        "--slippage",
        type=float,
        default=1.0,
        help="Slippage tolerance in percent for the minimum output (default: 1.0)",
    )

    funding_p = sub.add_parser("funding", parents=[common], help="LP funding rate")
    _add_pool_source(funding_p)

    entry_p = sub.add_parser(
        "entry", parents=[common], help="Position entry price in USD"
    )
    _add_position_args(entry_p)

    pnl_p = sub.add_parser("pnl", parents=[common], help="Position profit / loss")
    _add_pool_source(pnl_p)
    _add_position_args(pnl_p)

    sub.add_parser("info", help="System & formula overview")

    return parser


# ── Main ──────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logger(level="DEBUG" if getattr(args, "verbose", False) else "WARNING")

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "info":
        cmd_info()
        return 0

    if args.command == "pool":
        ok = asyncio.run(
            cmd_pool(
                address=args.pool,
                snapshot=args.snapshot,
                rpc=args.rpc,
                sol_price=args.sol_price,
            )
        )
    elif args.command == "quote":
        ok = asyncio.run(
            cmd_quote(
                address=args.pool,
                amount=args.amount,
                sell=args.sell,
                slippage=args.slippage,
                snapshot=args.snapshot,
                rpc=args.rpc,
            )
        )
    elif args.command == "funding":
        ok = asyncio.run(
            cmd_funding(address=args.pool, snapshot=args.snapshot, rpc=args.rpc)
        )
    elif args.command == "entry":
        ok = asyncio.run(
            cmd_entry(
                size=args.size,
                collateral=args.collateral,
                leverage=args.leverage,
                short=args.short,
                sol_price=args.sol_price,
            )
        )
    elif args.command == "pnl":
        ok = asyncio.run(
            cmd_pnl(
                address=args.pool,
                size=args.size,
                collateral=args.collateral,
                leverage=args.leverage,
                short=args.short,
                snapshot=args.snapshot,
                rpc=args.rpc,
                sol_price=args.sol_price,
            )
        )
    else:
        parser.print_help()
        return 0

    return 0 if ok else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n❌ Cancelled.")
        sys.exit(130)
