"""
Core types, constants and protocols for the collateralized-debt ledger.

This module provides the foundational pieces shared by every other module:
1. Constants: protocol parameters fixed at build time (thresholds, precisions)
2. Exceptions: LedgerError and the typed failures of every operation
3. Protocols: PriceFeed, AssetTransferGateway, DebtTokenAuthority, Checkpointable
4. Immutable data structures: PriceQuote, Move, AccountInformation, engine events
5. Checked integer helpers used by the fixed-point math

All amounts are Python ints in 18-decimal fixed point. Results are bounded by
MAX_UINT256; anything outside [0, MAX_UINT256] raises instead of wrapping.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import (
    Dict, Optional, Any, Protocol, Tuple, FrozenSet, Union, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption in the asset ledger.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Unit type constants (strings, not enum per design decision).
UNIT_TYPE_COLLATERAL = "COLLATERAL"
UNIT_TYPE_DEBT_TOKEN = "DEBT_TOKEN"

# Largest value an amount may take. Results above it are overflows.
MAX_UINT256 = 2 ** 256 - 1

# Internal fixed-point precision (18 decimals).
PRECISION = 10 ** 18

# Price feeds quote with FEED_DECIMALS; this rescales them to PRECISION.
FEED_DECIMALS = 8
ADDITIONAL_FEED_PRECISION = 10 ** 10

# 50% haircut on collateral value: positions must be 200% overcollateralized.
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# 10% of the seized collateral is paid on top to the liquidator.
LIQUIDATION_BONUS = 10

# A health factor of exactly 1.0 is still solvent (>= comparison).
MIN_HEALTH_FACTOR = 10 ** 18

# Price rounds older than this are rejected by StaleCheckedFeed.
ORACLE_TIMEOUT = timedelta(hours=3)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]

# Mapping from collateral asset to deposited quantity for one account.
CollateralMap = Dict[str, int]


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """Whether AssetLedger.execute() applied a batch (APPLIED) or refused it whole (REJECTED)."""
    APPLIED = "applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Root of every error raised by the asset ledger and the debt engine."""
    pass


class UnitNotRegistered(LedgerError):
    """The asset ledger has no unit with this symbol."""
    pass


class WalletNotRegistered(LedgerError):
    """The asset ledger has no wallet with this id."""
    pass


class InvalidAmount(LedgerError):
    """Raised when a zero, negative or non-integer amount is supplied."""
    pass


class UnsupportedAsset(LedgerError):
    """Raised when an operation references an asset absent from the registry."""
    pass


class ConfigurationMismatch(LedgerError):
    """Raised when assets and price feeds do not line up at construction."""
    pass


class TransferFailed(LedgerError):
    """Raised when a collateral or debt-token movement reports failure."""
    pass


class MintFailed(LedgerError):
    """Raised when the debt-token mint capability reports failure."""
    pass


class HealthFactorBroken(LedgerError):
    """Raised when an operation would leave the acting account below MIN_HEALTH_FACTOR."""

    def __init__(self, factor: int):
        super().__init__(f"Health factor broken: {factor}")
        self.factor = factor


class HealthFactorOk(LedgerError):
    """Raised when liquidating an account that is still solvent."""
    pass


class HealthFactorNotImproved(LedgerError):
    """Raised when a liquidation does not strictly raise the target's health factor."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when redeeming, seizing or burning more than an account holds."""
    pass


class ReentrantCall(LedgerError):
    """Raised when a mutating engine operation is entered while another is running."""
    pass


class AmountOverflow(LedgerError):
    """Raised when a fixed-point result exceeds MAX_UINT256."""
    pass


class InvalidPrice(LedgerError):
    """Raised when a price feed answers with a non-positive price."""
    pass


class StalePrice(LedgerError):
    """Raised when a price round is older than the allowed timeout."""
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def require_amount(amount: Any) -> int:
    """
    Validate an externally supplied amount.

    Returns the amount unchanged when it is an int in (0, MAX_UINT256].

    Raises:
        InvalidAmount: for zero, negative, bool or non-integer values
        AmountOverflow: for values above MAX_UINT256
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be more than zero, got {amount}")
    if amount > MAX_UINT256:
        raise AmountOverflow(f"Amount {amount} exceeds MAX_UINT256")
    return amount


def checked_add(a: int, b: int) -> int:
    """Add two amounts, raising AmountOverflow past MAX_UINT256."""
    result = a + b
    if result > MAX_UINT256:
        raise AmountOverflow(f"{a} + {b} exceeds MAX_UINT256")
    return result


def checked_sub(a: int, b: int, what: str = "balance") -> int:
    """Subtract b from a, raising InsufficientBalance instead of going negative."""
    if b > a:
        raise InsufficientBalance(f"Insufficient {what}: {a} < {b}")
    return a - b


# ============================================================================
# PROTOCOLS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PriceQuote:
    """
    One answer from a price feed.

    Attributes:
        price: Fixed-point price in the unit of account, `decimals` decimals.
        decimals: Number of decimals of `price` (FEED_DECIMALS in practice).
        updated_at: When the round was produced (None if the feed has no clock).
    """
    price: int
    decimals: int
    updated_at: Optional[datetime] = None


@runtime_checkable
class PriceFeed(Protocol):
    """Latest USD-equivalent price for a single collateral asset."""

    def latest_price(self) -> PriceQuote:
        ...


@runtime_checkable
class AssetTransferGateway(Protocol):
    """
    Moves collateral assets into and out of the engine's custody.

    Both methods report success as a bool; they must never fail silently.
    """

    def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        ...

    def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        ...


@runtime_checkable
class DebtTokenAuthority(Protocol):
    """
    Mint/burn authority over the debt token.

    mint() and transfer_in() report success as a bool. burn() destroys tokens
    already held in custody and raises on an invalid amount or balance.
    """

    def mint(self, to: str, amount: int) -> bool:
        ...

    def burn(self, amount: int) -> None:
        ...

    def transfer_in(self, sender: str, amount: int) -> bool:
        ...


@runtime_checkable
class Checkpointable(Protocol):
    """
    A collaborator whose state can be restored after a failed operation.

    The engine takes a checkpoint of each such collaborator before an
    operation and rolls every one of them back if the operation fails.
    """

    def checkpoint(self) -> Any:
        ...

    def rollback(self, token: Any) -> None:
        ...


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    Transfer of `quantity` of one token from `source` to `dest`.

    `memo` tags why the token moved ("faucet", "collateral_in", "debt_mint",
    ...) and ends up in the transaction log.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    memo: str

    def __post_init__(self):
        for label in ("unit_symbol", "source", "dest", "memo"):
            value = getattr(self, label)
            if not value or not value.strip():
                raise ValueError(f"Move {label} cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError(f"Move from {self.source} to itself")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    Log entry for one applied AssetLedger batch.

    `exec_id` is unique within a ledger until a rollback releases its
    sequence number. `memos` collects the memo of every move in the batch.
    """
    moves: Tuple[Move, ...]
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    memos: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if not self.memos:
            object.__setattr__(self, 'memos', frozenset(m.memo for m in self.moves))

    def __repr__(self) -> str:
        return f"Transaction({self.exec_id}: {', '.join(map(repr, self.moves))})"


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a token held in the asset ledger.

    Attributes:
        symbol: Short identifier for the unit (e.g., "WETH", "DSC").
        name: Human-readable name for the unit.
        unit_type: UNIT_TYPE_COLLATERAL or UNIT_TYPE_DEBT_TOKEN.
        min_balance: Minimum allowed balance in any non-system wallet.
        max_balance: Maximum allowed balance in any wallet.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: int = 0
    max_balance: int = MAX_UINT256


def collateral_token(symbol: str, name: str) -> Unit:
    """Create a fungible collateral token unit (no overdrafts)."""
    return Unit(symbol=symbol, name=name, unit_type=UNIT_TYPE_COLLATERAL)


def debt_token(symbol: str = "DSC", name: str = "Decentralized Stable Coin") -> Unit:
    """Create the synthetic debt token unit."""
    return Unit(symbol=symbol, name=name, unit_type=UNIT_TYPE_DEBT_TOKEN)


@dataclass(frozen=True, slots=True)
class AccountInformation:
    """Debt and collateral value of one account, as returned by the engine."""
    total_debt: int
    collateral_value_usd: int


# ============================================================================
# ENGINE EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralDeposited:
    user: str
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class CollateralRedeemed:
    redeemed_from: str
    redeemed_to: str
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class DebtMinted:
    user: str
    amount: int


@dataclass(frozen=True, slots=True)
class DebtBurned:
    on_behalf_of: str
    debt_from: str
    amount: int


EngineEvent = Union[
    CollateralDeposited, CollateralRedeemed, DebtMinted, DebtBurned
]
