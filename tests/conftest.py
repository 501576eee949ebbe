"""
conftest.py - Shared pytest fixtures for debtledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Wired systems from the local network config (fresh, with a funded user)
- Engines over in-memory fakes
- State snapshots for all-or-nothing comparisons
"""

import pytest
from typing import Any, Dict

from debtledger import (
    LOCAL_CONFIG,
    DebtEngine,
    DebtSystem,
    CollateralAssetRegistry,
    StaticPriceFeed,
    build_system,
)

from tests.fakes import InMemoryGateway, InMemoryDebtToken


# =============================================================================
# AMOUNTS
# =============================================================================

ETH = 10 ** 18
USD = 10 ** 18
AMOUNT_COLLATERAL = 10 * ETH
AMOUNT_TO_MINT = 100 * USD
STARTING_BALANCE = 10 * ETH

ETH_USD_PRICE = 2000 * 10 ** 8
BTC_USD_PRICE = 1000 * 10 ** 8


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def snapshot(system: DebtSystem) -> Dict[str, Any]:
    """Capture every piece of observable state of a wired system."""
    engine = system.engine
    # Wallets registered by a rolled-back operation survive with zero balances.
    balances = {}
    for wallet in sorted(system.ledger.list_wallets()):
        held = {unit: qty for unit, qty in system.ledger.get_wallet_balances(wallet).items() if qty}
        if held:
            balances[wallet] = held
    return {
        "accounts": {
            account: (
                engine.accounts.collateral_map(account),
                engine.accounts.debt_of(account),
            )
            for account in engine.accounts.accounts()
        },
        "balances": balances,
        "events": list(engine.events),
        "log_length": len(system.ledger.transaction_log),
    }


def deposit_and_mint(system: DebtSystem, user: str, collateral: int, debt: int,
                     asset: str = "WETH") -> None:
    """Fund a user from the faucet and open a position."""
    system.fund(user, asset, collateral)
    system.engine.deposit_collateral_and_mint(user, asset, collateral, debt)


# =============================================================================
# SYSTEM FIXTURES
# =============================================================================

@pytest.fixture
def system():
    """Fresh local system (WETH $2000, WBTC $1000) with no positions."""
    return build_system(LOCAL_CONFIG, verbose=False)


@pytest.fixture
def engine(system):
    return system.engine


@pytest.fixture
def funded_system(system):
    """Local system where alice holds STARTING_BALANCE WETH and WBTC."""
    system.fund("alice", "WETH", STARTING_BALANCE)
    system.fund("alice", "WBTC", STARTING_BALANCE)
    return system


@pytest.fixture
def deposited_system(funded_system):
    """alice has deposited AMOUNT_COLLATERAL WETH, no debt yet."""
    funded_system.engine.deposit_collateral("alice", "WETH", AMOUNT_COLLATERAL)
    return funded_system


@pytest.fixture
def minted_system(funded_system):
    """alice has deposited AMOUNT_COLLATERAL WETH and minted AMOUNT_TO_MINT."""
    funded_system.engine.deposit_collateral_and_mint(
        "alice", "WETH", AMOUNT_COLLATERAL, AMOUNT_TO_MINT
    )
    return funded_system


# =============================================================================
# FAKE FIXTURES
# =============================================================================

@pytest.fixture
def feeds():
    return {
        "WETH": StaticPriceFeed(ETH_USD_PRICE),
        "WBTC": StaticPriceFeed(BTC_USD_PRICE),
    }


@pytest.fixture
def registry(feeds):
    return CollateralAssetRegistry(list(feeds), list(feeds.values()))


@pytest.fixture
def fake_gateway():
    gateway = InMemoryGateway()
    gateway.fund("alice", "WETH", STARTING_BALANCE)
    gateway.fund("alice", "WBTC", STARTING_BALANCE)
    return gateway


@pytest.fixture
def fake_token():
    return InMemoryDebtToken()


@pytest.fixture
def fake_engine(registry, fake_gateway, fake_token):
    """Engine over in-memory (non-checkpointable) collaborators."""
    return DebtEngine(registry, fake_gateway, fake_token, verbose=False)
