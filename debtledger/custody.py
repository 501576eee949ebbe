"""
custody.py - Asset ledger adapters for the engine's external capabilities

The debt engine never moves tokens itself. It asks an AssetTransferGateway to
move collateral and a DebtTokenAuthority to mint, collect and burn the debt
token. These adapters implement both capabilities on top of an AssetLedger,
with the engine's holdings kept in a dedicated custody wallet.

Rejected ledger executions are reported as False, never raised, so the engine
decides which typed failure to raise (TransferFailed / MintFailed). Both
adapters are Checkpointable by delegating to the ledger.
"""

from __future__ import annotations
from typing import Any

from .core import (
    Move, ExecuteResult, InsufficientBalance,
    require_amount,
)
from .ledger import AssetLedger

# Default wallet holding everything deposited with the engine.
ENGINE_CUSTODY_WALLET = "engine"


class LedgerTransferGateway:
    """Moves collateral tokens between user wallets and the custody wallet."""

    def __init__(self, ledger: AssetLedger, custody_wallet: str = ENGINE_CUSTODY_WALLET):
        self.ledger = ledger
        self.custody_wallet = ledger.ensure_wallet(custody_wallet)

    def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        result = self.ledger.execute([
            Move(amount, asset, sender, self.custody_wallet, "collateral_in")
        ])
        return result == ExecuteResult.APPLIED

    def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        self.ledger.ensure_wallet(recipient)
        result = self.ledger.execute([
            Move(amount, asset, self.custody_wallet, recipient, "collateral_out")
        ])
        return result == ExecuteResult.APPLIED

    def custody_balance(self, asset: str) -> int:
        return self.ledger.get_balance(self.custody_wallet, asset)

    def checkpoint(self) -> Any:
        return self.ledger.checkpoint()

    def rollback(self, token: Any) -> None:
        self.ledger.rollback(token)


class LedgerDebtToken:
    """
    The debt token, issued and destroyed through the asset ledger.

    mint() issues new tokens from SYSTEM_WALLET, transfer_in() collects tokens
    from a holder into custody, and burn() returns custody tokens to
    SYSTEM_WALLET so they leave the supply.
    """

    def __init__(self, ledger: AssetLedger, symbol: str = "DSC",
                 custody_wallet: str = ENGINE_CUSTODY_WALLET):
        self.ledger = ledger
        self.symbol = ledger.get_unit(symbol).symbol
        self.custody_wallet = ledger.ensure_wallet(custody_wallet)

    def mint(self, to: str, amount: int) -> bool:
        self.ledger.ensure_wallet(to)
        return self.ledger.issue(to, self.symbol, amount, "debt_mint") == ExecuteResult.APPLIED

    def transfer_in(self, sender: str, amount: int) -> bool:
        result = self.ledger.execute([
            Move(amount, self.symbol, sender, self.custody_wallet, "debt_in")
        ])
        return result == ExecuteResult.APPLIED

    def burn(self, amount: int) -> None:
        """
        Destroy tokens held in custody.

        Raises:
            InvalidAmount: If amount is not a positive int
            InsufficientBalance: If custody holds less than amount
        """
        require_amount(amount)
        held = self.ledger.get_balance(self.custody_wallet, self.symbol)
        if held < amount:
            raise InsufficientBalance(f"Burn amount {amount} exceeds custody balance {held}")
        self.ledger.redeem(self.custody_wallet, self.symbol, amount, "debt_burn")

    def balance_of(self, account: str) -> int:
        if not self.ledger.is_registered(account):
            return 0
        return self.ledger.get_balance(account, self.symbol)

    def total_supply(self) -> int:
        return self.ledger.total_supply(self.symbol)

    def checkpoint(self) -> Any:
        return self.ledger.checkpoint()

    def rollback(self, token: Any) -> None:
        self.ledger.rollback(token)
