"""
simulation.py - Price paths and liquidation sweeps

Stress-tests a DebtSystem by replaying a collateral price path and liquidating
every account that falls below MIN_HEALTH_FACTOR along the way.

Usage:
    path = generate_price_path(2000 * 10**8, datetime(2025, 1, 1), 90,
                               volatility=0.8, seed=7)
    report = run_liquidation_sweep(system, "WETH", path, liquidator="keeper")
    report.final_solvency['valid']
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from .bootstrap import DebtSystem
from .core import (
    LIQUIDATION_BONUS, LIQUIDATION_PRECISION, MIN_HEALTH_FACTOR,
    LedgerError,
)


def generate_price_path(
    initial_answer: int,
    start_time: datetime,
    steps: int,
    volatility: float,
    drift: float = 0.0,
    step: timedelta = timedelta(days=1),
    seed: int = 42,
) -> List[Tuple[datetime, int]]:
    """
    Generate a Geometric Brownian Motion path of feed answers.

    Uses the discrete GBM formula:
        S(t+dt) = S(t) * exp((mu - 0.5*sigma^2)*dt + sigma*sqrt(dt)*Z)

    where Z ~ N(0,1) and dt is `step` expressed in years.

    Args:
        initial_answer: Feed answer at start_time (e.g. 2000e8)
        start_time: Timestamp of the first observation
        steps: Number of observations, including the first
        volatility: Annualized volatility (e.g., 0.8 for 80%)
        drift: Annualized drift
        step: Time between observations
        seed: Random seed for reproducibility

    Returns:
        List of (timestamp, answer) tuples; answers are ints of at least 1
    """
    if steps < 1:
        raise ValueError(f"steps must be at least 1, got {steps}")
    if initial_answer <= 0:
        raise ValueError(f"initial_answer must be positive, got {initial_answer}")

    rng = np.random.default_rng(seed)
    dt = step / timedelta(days=365)
    z = rng.standard_normal(steps - 1)
    log_returns = (drift - 0.5 * volatility ** 2) * dt + volatility * np.sqrt(dt) * z
    prices = initial_answer * np.exp(np.concatenate(([0.0], np.cumsum(log_returns))))

    return [
        (start_time + i * step, max(int(price), 1))
        for i, price in enumerate(prices)
    ]


@dataclass(frozen=True, slots=True)
class LiquidationRecord:
    time: datetime
    user: str
    debt_covered: int
    collateral_seized: int


@dataclass(frozen=True, slots=True)
class FailedLiquidation:
    time: datetime
    user: str
    debt_to_cover: int
    error: str


@dataclass
class SweepReport:
    """Outcome of run_liquidation_sweep()."""
    steps: int
    lowest_answer: int
    liquidations: List[LiquidationRecord] = field(default_factory=list)
    failures: List[FailedLiquidation] = field(default_factory=list)
    final_solvency: Dict[str, Any] = field(default_factory=dict)
    final_backing: Dict[str, Any] = field(default_factory=dict)

    @property
    def debt_covered(self) -> int:
        return sum(r.debt_covered for r in self.liquidations)

    @property
    def collateral_seized(self) -> int:
        return sum(r.collateral_seized for r in self.liquidations)


def max_coverable_debt(system: DebtSystem, asset: str, user: str) -> int:
    """
    Largest debt amount whose collateral, bonus included, the user still holds.
    """
    held = system.engine.get_collateral_balance_of_user(user, asset)
    if held == 0:
        return 0
    value = system.engine.get_usd_value(asset, held)
    return (value * LIQUIDATION_PRECISION) // (LIQUIDATION_PRECISION + LIQUIDATION_BONUS)


def run_liquidation_sweep(
    system: DebtSystem,
    asset: str,
    path: Sequence[Tuple[datetime, int]],
    liquidator: str,
) -> SweepReport:
    """
    Replay a price path for `asset` and liquidate unhealthy accounts.

    At every observation the ledger clock and the feed move to the new answer;
    then each account below MIN_HEALTH_FACTOR (other than the liquidator) is
    liquidated for as much debt as the liquidator can pay and the account's
    `asset` collateral can cover. A liquidation the engine refuses is recorded
    in the report's failures and leaves the system unchanged.

    Args:
        system: System to stress; the liquidator must already hold debt tokens
        asset: Collateral asset whose price moves
        path: (timestamp, answer) observations in chronological order
        liquidator: Account paying debt and receiving collateral

    Returns:
        SweepReport with every attempted liquidation and the final audits
    """
    engine = system.engine
    report = SweepReport(steps=len(path), lowest_answer=min(a for _, a in path) if path else 0)

    for timestamp, answer in path:
        if timestamp > system.ledger.current_time:
            system.ledger.advance_time(timestamp)
        system.set_price(asset, answer, timestamp)

        for user in engine.accounts.accounts():
            if user == liquidator:
                continue
            if engine.get_health_factor(user) >= MIN_HEALTH_FACTOR:
                continue

            debt_to_cover = min(
                engine.accounts.debt_of(user),
                system.debt_token.balance_of(liquidator),
                max_coverable_debt(system, asset, user),
            )
            if debt_to_cover <= 0:
                continue

            seized_before = system.balance_of(liquidator, asset)
            try:
                engine.liquidate(liquidator, asset, user, debt_to_cover)
            except LedgerError as exc:
                report.failures.append(
                    FailedLiquidation(timestamp, user, debt_to_cover, type(exc).__name__)
                )
                continue
            report.liquidations.append(LiquidationRecord(
                time=timestamp,
                user=user,
                debt_covered=debt_to_cover,
                collateral_seized=system.balance_of(liquidator, asset) - seized_before,
            ))

    report.final_solvency = engine.verify_solvency()
    report.final_backing = engine.verify_protocol_backing()
    return report
