"""
bootstrap.py - Network configuration and system wiring

build_system() assembles a complete, ready-to-use system from a NetworkConfig:
an asset ledger holding the collateral tokens and the debt token, one price
feed per collateral asset, the collateral registry, the custody adapters and
the engine.

Usage:
    system = build_system(LOCAL_CONFIG, verbose=False)
    system.fund("alice", "WETH", 10 * 10**18)
    system.engine.deposit_collateral_and_mint("alice", "WETH", 10 * 10**18, 100 * 10**18)
    system.set_price("WETH", 1800 * 10**8)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from .accounts import AccountLedger
from .core import (
    FEED_DECIMALS, PriceFeed, UnsupportedAsset,
    collateral_token, debt_token, require_amount,
)
from .custody import ENGINE_CUSTODY_WALLET, LedgerDebtToken, LedgerTransferGateway
from .engine import DebtEngine
from .ledger import AssetLedger
from .pricing_source import StaleCheckedFeed, StaticPriceFeed
from .registry import CollateralAssetRegistry


@dataclass(frozen=True, slots=True)
class CollateralConfig:
    """One collateral asset: token symbol, display name and initial feed answer."""
    symbol: str
    name: str
    initial_answer: int


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """
    Deployment parameters for one network.

    Attributes:
        name: Network name, also used as the asset ledger name
        collateral: Collateral assets in registration order
        feed_decimals: Decimals of every feed answer
        debt_symbol: Symbol of the debt token
        debt_name: Display name of the debt token
        start_time: Initial logical time of the asset ledger
        stale_check: Wrap every feed in a StaleCheckedFeed
    """
    name: str
    collateral: Tuple[CollateralConfig, ...]
    feed_decimals: int = FEED_DECIMALS
    debt_symbol: str = "DSC"
    debt_name: str = "Decentralized Stable Coin"
    start_time: datetime = datetime(2025, 1, 1)
    stale_check: bool = False


LOCAL_CONFIG = NetworkConfig(
    name="local",
    collateral=(
        CollateralConfig("WETH", "Wrapped Ether", 2000 * 10**8),
        CollateralConfig("WBTC", "Wrapped Bitcoin", 1000 * 10**8),
    ),
)


@dataclass
class DebtSystem:
    """Everything build_system() wires together."""
    config: NetworkConfig
    ledger: AssetLedger
    feeds: Dict[str, StaticPriceFeed]
    registry: CollateralAssetRegistry
    gateway: LedgerTransferGateway
    debt_token: LedgerDebtToken
    engine: DebtEngine

    def fund(self, wallet: str, asset: str, amount: int) -> None:
        """Issue collateral tokens into a wallet (the local faucet)."""
        if asset not in self.feeds:
            raise UnsupportedAsset(f"Asset {asset} is not configured on {self.config.name}")
        require_amount(amount)
        self.ledger.ensure_wallet(wallet)
        self.ledger.issue(wallet, asset, amount, "faucet")

    def set_price(self, asset: str, answer: int, updated_at: Optional[datetime] = None) -> None:
        """Move a feed to a new answer, stamped with the ledger's time by default."""
        self.feeds[asset].update_answer(answer, updated_at or self.ledger.current_time)

    def balance_of(self, wallet: str, asset: str) -> int:
        if not self.ledger.is_registered(wallet):
            return 0
        return self.ledger.get_balance(wallet, asset)


def build_system(config: NetworkConfig = LOCAL_CONFIG, verbose: bool = True) -> DebtSystem:
    """
    Wire a complete system for a network configuration.

    Args:
        config: Network to deploy (default: LOCAL_CONFIG)
        verbose: Passed to the asset ledger and the engine

    Returns:
        DebtSystem with every component, sharing one asset ledger
    """
    ledger = AssetLedger(config.name, config.start_time, verbose=verbose)
    ledger.register_unit(debt_token(config.debt_symbol, config.debt_name))

    feeds: Dict[str, StaticPriceFeed] = {}
    registry_feeds = []
    for asset in config.collateral:
        ledger.register_unit(collateral_token(asset.symbol, asset.name))
        feed = StaticPriceFeed(asset.initial_answer, config.feed_decimals, config.start_time)
        feeds[asset.symbol] = feed
        registered: PriceFeed = feed
        if config.stale_check:
            registered = StaleCheckedFeed(feed, lambda: ledger.current_time)
        registry_feeds.append(registered)

    registry = CollateralAssetRegistry([a.symbol for a in config.collateral], registry_feeds)
    gateway = LedgerTransferGateway(ledger, ENGINE_CUSTODY_WALLET)
    token = LedgerDebtToken(ledger, config.debt_symbol, ENGINE_CUSTODY_WALLET)
    engine = DebtEngine(registry, gateway, token, AccountLedger(), verbose=verbose)

    return DebtSystem(
        config=config,
        ledger=ledger,
        feeds=feeds,
        registry=registry,
        gateway=gateway,
        debt_token=token,
        engine=engine,
    )
