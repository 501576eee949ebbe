"""
health.py - Collateral valuation and health-factor math

PURE FUNCTION MODULE:
=====================
Every function takes all inputs explicitly (feeds, balances, registry) and
returns an int. Nothing here mutates state; the only side effect is reading
the latest answer from a price feed.

Key Formulas (18-decimal fixed point, floor division throughout):
    usd_value          = (price * ADDITIONAL_FEED_PRECISION * amount) // PRECISION
    token_from_usd     = (usd_amount * PRECISION) // (price * ADDITIONAL_FEED_PRECISION)
    adjusted_value     = collateral_value * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION
    health_factor      = adjusted_value * PRECISION // debt      (MAX_UINT256 when debt == 0)

Intermediate products are unbounded Python ints; only the final results are
checked against MAX_UINT256. The multiply-before-divide order above governs
rounding and must not be rearranged.
"""

from __future__ import annotations
from typing import Mapping

from .core import (
    PriceFeed, AmountOverflow, ConfigurationMismatch, InvalidPrice,
    ADDITIONAL_FEED_PRECISION, FEED_DECIMALS, LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD, MAX_UINT256, MIN_HEALTH_FACTOR, PRECISION,
    checked_add,
)
from .registry import CollateralAssetRegistry


def feed_price(feed: PriceFeed) -> int:
    """
    Latest price of a feed rescaled to PRECISION.

    Raises:
        ConfigurationMismatch: if the feed does not quote FEED_DECIMALS decimals
        InvalidPrice: if the price is zero or negative
    """
    quote = feed.latest_price()
    if quote.decimals != FEED_DECIMALS:
        raise ConfigurationMismatch(
            f"Price feed reports {quote.decimals} decimals, expected {FEED_DECIMALS}"
        )
    if quote.price <= 0:
        raise InvalidPrice(f"Price feed answered {quote.price}")
    return quote.price * ADDITIONAL_FEED_PRECISION


def usd_value(feed: PriceFeed, amount: int) -> int:
    """
    USD value (18 decimals) of `amount` units of the feed's asset.

    Example:
        usd_value(eth_usd_at_2000, 15 * 10**18) == 30_000 * 10**18
    """
    value = (feed_price(feed) * amount) // PRECISION
    if value > MAX_UINT256:
        raise AmountOverflow(f"USD value of {amount} exceeds MAX_UINT256")
    return value


def token_amount_from_usd(feed: PriceFeed, usd_amount: int) -> int:
    """
    Asset quantity worth `usd_amount` (18 decimals), truncated toward zero.

    The truncation decides how much collateral a liquidator receives.

    Example:
        token_amount_from_usd(eth_usd_at_2000, 100 * 10**18) == 5 * 10**16
    """
    return (usd_amount * PRECISION) // feed_price(feed)


def account_collateral_value(
    registry: CollateralAssetRegistry,
    collateral: Mapping[str, int],
) -> int:
    """
    Total USD value of an account's collateral.

    Sums over registry.all_assets() in registration order so the accumulation
    is deterministic; assets with no balance are skipped without a price read.
    """
    total = 0
    for asset in registry.all_assets():
        amount = collateral.get(asset, 0)
        if amount == 0:
            continue
        total = checked_add(total, usd_value(registry.feed_of(asset), amount))
    return total


def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
    """
    Health factor of an account, 18-decimal fixed point.

    An account without debt is maximally healthy and never liquidatable.
    """
    if total_debt == 0:
        return MAX_UINT256
    collateral_adjusted_for_threshold = (
        collateral_value_usd * LIQUIDATION_THRESHOLD
    ) // LIQUIDATION_PRECISION
    # Saturates: no finite-debt account is healthier than a debt-free one.
    return min((collateral_adjusted_for_threshold * PRECISION) // total_debt, MAX_UINT256)


def is_solvent(health_factor: int) -> bool:
    """A factor of exactly MIN_HEALTH_FACTOR is solvent."""
    return health_factor >= MIN_HEALTH_FACTOR
