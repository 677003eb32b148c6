#!/usr/bin/env python3
"""
Facemelt Pool Math Engine
=========================

Pure pricing and funding math for the Facemelt leveraged AMM on Solana.
Every function is stateless: it takes a PoolReserves snapshot (fetched by
pool_reader.py) plus explicit scalars and returns a number or a string.

FORMULAS:
──────────
1. Pool price (effective reserves)
   P = (effective_sol / 10^9) / (effective_token / 10^6)

2. Constant product swap (no fee term)
   (x + Δx)(y − Δy) = x·y   →   Δy = y·Δx / (x + Δx)

3. Funding rate
   k_e = effective_sol · effective_token
   rate/s = C · (ΔK_longs + ΔK_shorts)² / k_e²

4. Position P&L
   long : swap(size token → SOL) − collateral·(leverage − 1)
   short: swap(size SOL → token) − collateral·(leverage − 1)
   P&L% = (output_usd − collateral_usd) / collateral_usd × 100

Units:
  SOL   — 9 decimals (lamports)
  TOKEN — 6 decimals
  Raw on-chain balances are Python ints; human-readable ratios are floats.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Union

# ── Named Constants ──────────────────────────────────────────────────────

SOL_DECIMALS = 9
TOKEN_DECIMALS = 6
LAMPORTS_PER_SOL = 10**SOL_DECIMALS
TOKEN_UNITS = 10**TOKEN_DECIMALS
DECIMAL_OFFSET = 10 ** (SOL_DECIMALS - TOKEN_DECIMALS)  # 9 − 6 = 3 → 1000

TOKEN_SUPPLY = 1_000_000_000  # whole tokens, fixed at launch

SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365

Number = Union[int, float]


# ── Data Types ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PoolReserves:
    """
    Snapshot of a pool account's pricing state.

    Raw fields (smallest units, as stored on-chain):
      - sol_reserve / token_reserve                → vault balances
      - effective_sol_reserve / effective_token_reserve → virtual reserves used
        for constant-product pricing
      - total_delta_k_longs / total_delta_k_shorts → aggregate k contributed
        by open leveraged positions
      - funding_constant_c                         → funding sensitivity C
    """

    sol_reserve: int = 0
    token_reserve: int = 0
    effective_sol_reserve: int = 0
    effective_token_reserve: int = 0
    total_delta_k_longs: int = 0
    total_delta_k_shorts: int = 0
    funding_constant_c: Number = 0

    _CAMEL_KEYS = {
        "solReserve": "sol_reserve",
        "tokenReserve": "token_reserve",
        "effectiveSolReserve": "effective_sol_reserve",
        "effectiveTokenReserve": "effective_token_reserve",
        "totalDeltaKLongs": "total_delta_k_longs",
        "totalDeltaKShorts": "total_delta_k_shorts",
        "fundingConstantC": "funding_constant_c",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolReserves":
        """
        Build a snapshot from a dict with snake_case or camelCase keys.

        Integer-valued fields are kept as ints so large raw balances stay
        exact; unknown keys are ignored.
        """
        fields = {}
        for key, value in data.items():
            name = cls._CAMEL_KEYS.get(key, key)
            if name not in cls.__dataclass_fields__ or name.startswith("_"):
                continue
            if isinstance(value, str):
                value = float(value) if "." in value or "e" in value.lower() else int(value)
            elif isinstance(value, float) and value.is_integer() and name != "funding_constant_c":
                value = int(value)
            fields[name] = value
        return cls(**fields)


@dataclass(frozen=True)
class FundingRate:
    """Funding rate as percentages over three horizons."""

    per_second: float = 0.0
    per_day: float = 0.0
    per_annum: float = 0.0


@dataclass(frozen=True)
class Position:
    """
    Leveraged position descriptor.

    Long : size in raw TOKEN units, collateral in lamports.
    Short: size in lamports, collateral in raw TOKEN units.
    leverage is the human multiplier (2.0 = 2×), not the on-chain integer.
    """

    is_long: bool
    size: int
    collateral: int
    leverage: float


# ── Helpers ──────────────────────────────────────────────────────────────


def _ieee_div(numerator: float, denominator: float) -> float:
    """Divide like IEEE-754 hardware: x/0 → ±inf, 0/0 → nan, never raise."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _fixed2(value: float) -> str:
    """Two-decimal string, rounding half away from zero."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    # Exponent notation from 1e21 up, beyond the default 28-digit Decimal context
    if abs(value) >= 1e21:
        return repr(float(value))
    return str(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _compact(value: float) -> str:
    if value >= 1e9:
        return f"{_fixed2(value / 1e9)}B"
    elif value >= 1e6:
        return f"{_fixed2(value / 1e6)}M"
    elif value >= 1e3:
        return f"{_fixed2(value / 1e3)}K"
    return _fixed2(value)


# ── Prices ───────────────────────────────────────────────────────────────


def calculate_pool_price(reserves: PoolReserves) -> float:
    """
    SOL per token implied by the effective (virtual) reserves.

    Not guarded: an empty effective token reserve yields inf (or nan when
    both sides are empty). Callers that need a finite number must check
    the reserve first.
    """
    effective_sol = reserves.effective_sol_reserve / LAMPORTS_PER_SOL
    effective_token = reserves.effective_token_reserve / TOKEN_UNITS
    return _ieee_div(effective_sol, effective_token)


def calculate_real_reserves_price(reserves: PoolReserves) -> float:
    """SOL per token from the vault balances. Returns 0 on an empty token vault."""
    real_sol = reserves.sol_reserve / LAMPORTS_PER_SOL
    real_token = reserves.token_reserve / TOKEN_UNITS
    if real_token == 0:
        return 0
    return real_sol / real_token


def calculate_raw_market_cap(reserves: PoolReserves, sol_price: float) -> float:
    """Fully diluted market cap in USD: TOKEN_SUPPLY × pool price × SOL/USD."""
    return TOKEN_SUPPLY * calculate_pool_price(reserves) * sol_price


def calculate_raw_liquidity(reserves: PoolReserves, sol_price: float) -> float:
    """Two-sided liquidity in USD, approximated as 2 × effective SOL side."""
    effective_sol = reserves.effective_sol_reserve / LAMPORTS_PER_SOL
    return effective_sol * 2 * sol_price


# ── Formatting ───────────────────────────────────────────────────────────


def format_number(value: float) -> str:
    """
    Compact USD string: $1.50M, $2.00B, $999.00.

    >>> format_number(1_500_000)
    '$1.50M'
    """
    return f"${_compact(value)}"


def format_token_amount(value: float) -> str:
    """
    Compact token amount without currency symbol.

    >>> format_token_amount(2_500_000_000)
    '2.50B'
    """
    return _compact(value)


def calculate_market_cap(reserves: PoolReserves, sol_price: float) -> str:
    return format_number(calculate_raw_market_cap(reserves, sol_price))


def calculate_liquidity(reserves: PoolReserves, sol_price: float) -> str:
    return format_number(calculate_raw_liquidity(reserves, sol_price))


# ── Swaps ────────────────────────────────────────────────────────────────


def calculate_raw_output(x: Number, y: Number, dx: Number) -> float:
    """
    Constant-product output in raw units: Δy = y·Δx / (x + Δx).

    x, y are the input/output side reserves and dx the raw input. When
    x + Δx is zero (empty input reserve and zero input) the output is 0.
    """
    denominator = x + dx
    if denominator == 0:
        return 0.0
    return (y * dx) / denominator


def calculate_expected_output(
    reserves: PoolReserves, input_amount: float, is_sol_to_token: bool
) -> float:
    """
    Expected swap output in human units, priced on the effective reserves.

    Args:
        reserves: Pool snapshot.
        input_amount: Amount in, human units (SOL or TOKEN).
        is_sol_to_token: True for SOL → TOKEN, False for TOKEN → SOL.
    """
    if is_sol_to_token:
        raw_input = input_amount * LAMPORTS_PER_SOL
        x, y = reserves.effective_sol_reserve, reserves.effective_token_reserve
    else:
        raw_input = input_amount * TOKEN_UNITS
        x, y = reserves.effective_token_reserve, reserves.effective_sol_reserve

    raw_output = calculate_raw_output(x, y, raw_input)

    return raw_output / (TOKEN_UNITS if is_sol_to_token else LAMPORTS_PER_SOL)


def to_raw_amount(amount: float, is_sol: bool) -> int:
    """Human amount → raw base units, floored as the program expects."""
    return math.floor(amount * (LAMPORTS_PER_SOL if is_sol else TOKEN_UNITS))


def calculate_min_amount_out(expected_output: float, slippage_pct: float) -> float:
    """
    Minimum acceptable output for a given slippage tolerance.

    min_out = expected × (1 − slippage / 100)
    """
    if not 0 <= slippage_pct <= 100:
        raise ValueError(f"Slippage must be between 0 and 100%, got {slippage_pct}")
    return expected_output * (1 - slippage_pct / 100)


# ── Positions ────────────────────────────────────────────────────────────


def calculate_position_entry_price(
    size: Number,
    collateral: Number,
    leverage: float,
    is_long: bool,
    sol_price: float,
) -> float:
    """
    USD entry price of a leveraged position.

    Long : rate = (collateral × leverage) / (size × 10³)
    Short: rate = (size × 10³) / (collateral × leverage)

    The 10³ factor bridges lamports (9 decimals) and TOKEN units (6).
    A zero denominator gives a non-finite result, same as the pool price.
    """
    if is_long:
        entry_rate = _ieee_div(collateral * leverage, size * DECIMAL_OFFSET)
    else:
        entry_rate = _ieee_div(size * DECIMAL_OFFSET, collateral * leverage)

    return entry_rate * sol_price


def calculate_funding_rate(reserves: PoolReserves) -> FundingRate:
    """
    LP funding rate driven by aggregate leverage against pool depth.

    rate/s = C × (ΔK / k_e)², quoted in percent. Per day and per annum are
    linear extrapolations (no compounding). Zero open leverage or an empty
    pool gives a zero rate.
    """
    k_e = reserves.effective_sol_reserve * reserves.effective_token_reserve
    total_delta_k = reserves.total_delta_k_longs + reserves.total_delta_k_shorts

    if total_delta_k == 0 or k_e == 0:
        return FundingRate(0, 0, 0)

    leverage_ratio = total_delta_k / k_e
    rate_per_second = reserves.funding_constant_c * leverage_ratio**2

    per_second = rate_per_second * 100
    per_day = per_second * SECONDS_PER_DAY
    per_annum = per_day * DAYS_PER_YEAR

    return FundingRate(per_second, per_day, per_annum)


def calculate_position_pnl(
    position: Position, reserves: PoolReserves, sol_price: float
) -> float:
    """
    Unrealized P&L of a leveraged position, in percent of collateral.

    Only the size leg is realized through the curve; the borrowed leg,
    collateral × (leverage − 1), is subtracted at face value.
    """
    if position.is_long:
        size_token = position.size / TOKEN_UNITS
        expected_sol = calculate_expected_output(reserves, size_token, False)
        collateral_sol = position.collateral / LAMPORTS_PER_SOL
        borrowed_sol = collateral_sol * (position.leverage - 1)
        output_usd = (expected_sol - borrowed_sol) * sol_price
        collateral_usd = collateral_sol * sol_price
    else:
        size_sol = position.size / LAMPORTS_PER_SOL
        expected_token = calculate_expected_output(reserves, size_sol, True)
        collateral_token = position.collateral / TOKEN_UNITS
        borrowed_token = collateral_token * (position.leverage - 1)
        # Short legs are token-denominated; value them at the effective price.
        token_usd = calculate_pool_price(reserves) * sol_price
        output_usd = (expected_token - borrowed_token) * token_usd
        collateral_usd = collateral_token * token_usd

    if collateral_usd == 0:
        return 0

    return ((output_usd - collateral_usd) / collateral_usd) * 100
