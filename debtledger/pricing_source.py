"""
pricing_source.py - Price feeds for collateral valuation

Provides the price feeds the registry hands to the health-factor math.

Classes:
- StaticPriceFeed: a single settable answer (deterministic, for tests and local runs)
- TimeSeriesPriceFeed: time-varying answers with historical data, read at a clock
- StaleCheckedFeed: wraps any feed and rejects rounds older than a timeout

All answers are PriceQuote(price, decimals, updated_at) with the price as a
fixed-point int in the unit of account.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from bisect import bisect_right

from .core import (
    PriceFeed, PriceQuote,
    FEED_DECIMALS, ORACLE_TIMEOUT,
    InvalidPrice, StalePrice,
)


class StaticPriceFeed:
    """
    Price feed with one answer that only changes when updated.

    Mirrors a mock aggregator: the answer is returned until update_answer()
    replaces it.
    """

    def __init__(self, answer: int, decimals: int = FEED_DECIMALS,
                 updated_at: Optional[datetime] = None):
        """
        Args:
            answer: Fixed-point price with `decimals` decimals (e.g. 2000e8)
            decimals: Decimals of the answer
            updated_at: Timestamp reported for the round
        """
        self.answer = answer
        self.decimals = decimals
        self.updated_at = updated_at

    def latest_price(self) -> PriceQuote:
        return PriceQuote(self.answer, self.decimals, self.updated_at)

    def update_answer(self, answer: int, updated_at: Optional[datetime] = None):
        """Replace the current answer (and its round timestamp)."""
        self.answer = answer
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self):
        return f"StaticPriceFeed({self.answer}, decimals={self.decimals})"


class TimeSeriesPriceFeed:
    """
    Price feed backed by a history of (timestamp, answer) observations.

    latest_price() returns the most recent observation at or before clock().
    The clock is usually the asset ledger's logical time, so advancing the
    ledger advances the feed.
    """

    def __init__(
        self,
        clock: Callable[[], datetime],
        history: Optional[List[Tuple[datetime, int]]] = None,
        decimals: int = FEED_DECIMALS,
    ):
        """
        Args:
            clock: Callable returning the current time
            history: Optional list of (timestamp, answer) tuples
            decimals: Decimals of every answer

        Examples:
            feed = TimeSeriesPriceFeed(lambda: ledger.current_time)
            feed.add_answer(datetime(2025, 1, 15), 2000 * 10**8)
        """
        self.clock = clock
        self.decimals = decimals
        # Sort by timestamp to ensure chronological order
        self.history: List[Tuple[datetime, int]] = sorted(history or [], key=lambda x: x[0])

    def add_answer(self, timestamp: datetime, answer: int):
        """Add a price observation at a specific time."""
        self.history.append((timestamp, answer))
        self.history.sort(key=lambda x: x[0])

    def latest_price(self) -> PriceQuote:
        """
        Answer at or before the current clock time.

        Uses binary search for efficient O(log n) lookup.

        Raises:
            InvalidPrice: If there is no observation at or before the clock time
        """
        now = self.clock()
        timestamps = [ts for ts, _ in self.history]
        idx = bisect_right(timestamps, now)
        if idx == 0:
            raise InvalidPrice(f"No price available at or before {now}")
        ts, answer = self.history[idx - 1]
        return PriceQuote(answer, self.decimals, ts)

    def __repr__(self):
        return f"TimeSeriesPriceFeed({len(self.history)} observations, decimals={self.decimals})"


class StaleCheckedFeed:
    """
    Wraps a feed and refuses rounds that are too old.

    A round with updated_at older than `timeout` relative to clock() raises
    StalePrice, which aborts whatever engine operation was valuing collateral.
    A round without a timestamp is treated as stale.
    """

    def __init__(self, feed: PriceFeed, clock: Callable[[], datetime],
                 timeout: timedelta = ORACLE_TIMEOUT):
        self.feed = feed
        self.clock = clock
        self.timeout = timeout

    def latest_price(self) -> PriceQuote:
        quote = self.feed.latest_price()
        if quote.updated_at is None:
            raise StalePrice("Price round has no timestamp")
        age = self.clock() - quote.updated_at
        if age > self.timeout:
            raise StalePrice(f"Price round is {age} old (timeout {self.timeout})")
        return quote

    def __repr__(self):
        return f"StaleCheckedFeed({self.feed!r}, timeout={self.timeout})"
