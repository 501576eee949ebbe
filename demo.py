#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial for the Debt Ledger

Walks through a collateralized stablecoin from an empty system to a
liquidation. Each step explains one idea and shows the engine doing it.

Run interactively (press Enter between steps):
    python demo.py

Run without pauses:
    python demo.py --quick
"""

import sys
from dataclasses import dataclass

from debtledger import (
    LOCAL_CONFIG,
    build_system,
    LedgerError,
    MAX_UINT256,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

ETH = 10 ** 18
USD = 10 ** 18


@dataclass(frozen=True)
class DemoConfig:
    """Amounts used by the tutorial."""
    alice_collateral: int = 10 * ETH
    alice_debt: int = 8_000 * USD
    keeper_collateral: int = 100 * ETH
    keeper_debt: int = 20_000 * USD
    crash_answer: int = 1_500 * 10 ** 8
    debt_to_cover: int = 4_000 * USD


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Render an 18-decimal amount for humans."""
    if amount == MAX_UINT256:
        return "MAX"
    return f"{amount / 10 ** 18:,.4f}"


def show_account(system, user: str):
    engine = system.engine
    info = engine.get_account_information(user)
    print(f"  {user:<8} debt={fmt(info.total_debt):>12}  "
          f"collateral=${fmt(info.collateral_value_usd):>14}  "
          f"health={fmt(engine.get_health_factor(user))}")


# ============================================================================
# STEPS
# ============================================================================

def step_01_build_system():
    step_header(1, "Wiring the System",
        "See the pieces: asset ledger, price feeds, custody, debt token, engine.")

    print(">>> system = build_system(LOCAL_CONFIG)")
    system = build_system(LOCAL_CONFIG, verbose=False)

    section_header("Collateral")
    for asset in system.engine.get_collateral_tokens():
        price = system.engine.get_usd_value(asset, ETH)
        print(f"  {asset}: ${fmt(price)} per token")
    print(f"\n  Debt token: {system.debt_token.symbol}")
    return system


def step_02_open_position(system):
    step_header(2, "Opening a Position",
        "Deposit collateral and mint debt against half of its value.")

    system.fund("alice", "WETH", CONFIG.alice_collateral)
    print(">>> engine.deposit_collateral_and_mint('alice', 'WETH', 10 ETH, 8,000 DSC)")
    system.engine.deposit_collateral_and_mint(
        "alice", "WETH", CONFIG.alice_collateral, CONFIG.alice_debt)
    show_account(system, "alice")

    section_header("Key Insight")
    print("""
    Only 50% of collateral value counts toward backing. $20,000 of WETH
    supports up to $10,000 of debt, so $8,000 gives a health factor of 1.25.
    """)
    return system


def step_03_rejection(system):
    step_header(3, "Rejected Operations Change Nothing",
        "Try to mint past the limit and watch the engine roll back.")

    before = system.engine.accounts.debt_of("alice")
    print(">>> engine.mint_debt('alice', 5,000 DSC)")
    try:
        system.engine.mint_debt("alice", 5_000 * USD)
    except LedgerError as e:
        print(f"  Rejected: {type(e).__name__}: {e}")
    assert system.engine.accounts.debt_of("alice") == before
    show_account(system, "alice")
    return system


def step_04_crash(system):
    step_header(4, "A Price Crash",
        "Move the WETH feed and see the health factor fall below 1.0.")

    system.fund("keeper", "WBTC", CONFIG.keeper_collateral)
    system.engine.deposit_collateral_and_mint(
        "keeper", "WBTC", CONFIG.keeper_collateral, CONFIG.keeper_debt)

    print(">>> system.set_price('WETH', 1,500)")
    system.set_price("WETH", CONFIG.crash_answer)
    show_account(system, "alice")
    show_account(system, "keeper")
    print(f"\n  Solvency audit: {system.engine.verify_solvency()}")
    return system


def step_05_liquidate(system):
    step_header(5, "Liquidation",
        "Repay part of alice's debt and collect her collateral plus a 10% bonus.")

    print(">>> engine.liquidate('keeper', 'WETH', 'alice', 4,000 DSC)")
    system.engine.liquidate("keeper", "WETH", "alice", CONFIG.debt_to_cover)
    show_account(system, "alice")
    show_account(system, "keeper")
    print(f"\n  keeper WETH: {fmt(system.balance_of('keeper', 'WETH'))}")

    section_header("Audits")
    print(f"  Solvency: {system.engine.verify_solvency()['valid']}")
    print(f"  Backing:  {system.engine.verify_protocol_backing()['valid']}")
    print(f"  Double entry: {system.ledger.verify_double_entry()['valid']}")
    return system


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       DEBT LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    system = step_01_build_system()
    wait_for_enter()

    system = step_02_open_position(system)
    wait_for_enter()

    system = step_03_rejection(system)
    wait_for_enter()

    system = step_04_crash(system)
    wait_for_enter()

    step_05_liquidate(system)

    print(f"\n{'='*70}")
    print("TUTORIAL COMPLETE")
    print(f"{'='*70}")


if __name__ == "__main__":
    main()
