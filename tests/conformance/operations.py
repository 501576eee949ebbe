"""
operations.py - Random engine operations for property-based tests

Provides hypothesis strategies producing engine operations as plain tuples,
and apply_operation() to run one against a wired system. Amounts include
zero and values far beyond what accounts hold so that every failure path is
exercised.
"""

from typing import Optional, Tuple

from hypothesis import strategies as st

from debtledger import DebtSystem, LedgerError, build_system, LOCAL_CONFIG

ETH = 10 ** 18
USD = 10 ** 18

USERS = ("alice", "bob", "carol")
ASSETS = ("WETH", "WBTC", "DOGE")
STARTING_BALANCE = 100 * ETH

Operation = Tuple


def funded_system() -> DebtSystem:
    """Local system where every user holds STARTING_BALANCE of each collateral."""
    system = build_system(LOCAL_CONFIG, verbose=False)
    for user in USERS:
        system.fund(user, "WETH", STARTING_BALANCE)
        system.fund(user, "WBTC", STARTING_BALANCE)
    return system


users = st.sampled_from(USERS)
assets = st.sampled_from(ASSETS)
collateral_amounts = st.one_of(
    st.just(0),
    st.integers(min_value=1, max_value=150 * ETH),
)
debt_amounts = st.one_of(
    st.just(0),
    st.integers(min_value=1, max_value=150_000 * USD),
)


@st.composite
def engine_operations(draw):
    """One engine operation (no price moves)."""
    kind = draw(st.sampled_from([
        "deposit", "mint", "deposit_and_mint", "redeem", "burn",
        "redeem_for_debt", "liquidate",
    ]))
    if kind == "deposit":
        return (kind, draw(users), draw(assets), draw(collateral_amounts))
    if kind == "mint":
        return (kind, draw(users), draw(debt_amounts))
    if kind == "deposit_and_mint":
        return (kind, draw(users), draw(assets), draw(collateral_amounts), draw(debt_amounts))
    if kind == "redeem":
        return (kind, draw(users), draw(assets), draw(collateral_amounts))
    if kind == "burn":
        return (kind, draw(users), draw(debt_amounts))
    if kind == "redeem_for_debt":
        return (kind, draw(users), draw(assets), draw(collateral_amounts), draw(debt_amounts))
    return (kind, draw(users), draw(assets), draw(users), draw(debt_amounts))


@st.composite
def price_moves(draw):
    """A new feed answer for one collateral asset, between $1 and $4000."""
    asset = draw(st.sampled_from(("WETH", "WBTC")))
    return ("price", asset, draw(st.integers(min_value=1, max_value=4000)) * 10 ** 8)


def apply_operation(system: DebtSystem, op: Operation) -> Optional[LedgerError]:
    """Run one operation; return the LedgerError it raised, if any."""
    engine = system.engine
    kind = op[0]
    try:
        if kind == "deposit":
            engine.deposit_collateral(op[1], op[2], op[3])
        elif kind == "mint":
            engine.mint_debt(op[1], op[2])
        elif kind == "deposit_and_mint":
            engine.deposit_collateral_and_mint(op[1], op[2], op[3], op[4])
        elif kind == "redeem":
            engine.redeem_collateral(op[1], op[2], op[3])
        elif kind == "burn":
            engine.burn_debt(op[1], op[2])
        elif kind == "redeem_for_debt":
            engine.redeem_collateral_for_debt(op[1], op[2], op[3], op[4])
        elif kind == "liquidate":
            engine.liquidate(op[1], op[2], op[3], op[4])
        elif kind == "price":
            system.set_price(op[1], op[2])
        else:
            raise ValueError(f"Unknown operation {kind}")
    except LedgerError as exc:
        return exc
    return None
