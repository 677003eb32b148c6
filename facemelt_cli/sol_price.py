#!/usr/bin/env python3
"""
Facemelt CLI — SOL/USD Price Feed
==================================
Based on the official documentation: https://docs.dexscreener.com/api/reference

Looks up every pair listed for the wrapped SOL mint and takes the USD
price from the deepest one (highest USD liquidity).
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from facemelt_cli.central_config import config


# ── Rate Limiter (CWE-770 mitigation) ────────────────────────────────────


class _RateLimiter:
    """Token-bucket rate limiter to respect API limits.

    Prevents exceeding DEXScreener's 300 req/min limit.
    """

    def __init__(self, max_requests: int, period_seconds: float):
        self._max = max_requests
        self._period = period_seconds
        self._timestamps: list[float] = []

    async def acquire(self) -> None:
        """Wait until a request slot is available."""
        now = time.monotonic()
        # Purge timestamps outside the current window
        self._timestamps = [t for t in self._timestamps if now - t < self._period]
        if len(self._timestamps) >= self._max:
            # Wait until the oldest request expires
            sleep_time = self._period - (now - self._timestamps[0]) + 0.1
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
        self._timestamps.append(time.monotonic())


_price_limiter = _RateLimiter(
    max_requests=config.price.MAX_REQUESTS_PER_MINUTE, period_seconds=60
)


def pick_sol_price(pairs: List[Dict[str, Any]]) -> Optional[float]:
    """
    USD price of SOL from the deepest pair where wrapped SOL is the base token.

    Returns None when no pair carries a positive price.
    """
    wsol = config.price.WSOL_MINT
    candidates = [
        p
        for p in pairs
        if p.get("baseToken", {}).get("address") == wsol
        and float(p.get("priceUsd") or 0) > 0
    ]
    if not candidates:
        return None
    best = max(
        candidates,
        key=lambda p: float((p.get("liquidity") or {}).get("usd", 0) or 0),
    )
    return float(best["priceUsd"])


class SolPriceClient:
    """SOL/USD oracle backed by the DEXScreener token endpoint."""

    def __init__(self):
        self.url = config.price.get_sol_price_url()
        self.timeout = config.price.TIMEOUT_SECONDS

    async def current_sol_usd_price(self) -> float:
        """
        Fetch the current SOL/USD price.

        Raises:
            RuntimeError: If the API is unreachable or returns no usable price.
        """
        await _price_limiter.acquire()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, verify=True) as client:
                response = await client.get(self.url)
        except httpx.TimeoutException as e:
            raise RuntimeError("Timeout fetching SOL/USD price") from e
        except httpx.HTTPError as e:
            logger.debug(f"[SOL_PRICE] Request failed: {e}")
            raise RuntimeError("SOL/USD price request failed") from e

        if response.status_code == 429:
            raise RuntimeError("Price API rate limit reached. Please wait and try again.")
        if response.status_code != 200:
            raise RuntimeError(f"Price API HTTP error {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RuntimeError("Price API returned a non-JSON response") from e
        pairs = data if isinstance(data, list) else data.get("pairs") or []
        price = pick_sol_price(pairs)
        if price is None:
            raise RuntimeError("No SOL/USD price available from DEXScreener")

        logger.debug(f"[SOL_PRICE] ${price:.2f} from {len(pairs)} pairs")
        return price
