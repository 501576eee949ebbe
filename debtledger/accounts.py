"""
accounts.py - Per-account collateral and debt balances

The AccountLedger is the state the debt engine protects: how much of each
collateral asset every account has deposited and how much debt it has minted.
Only the engine mutates it.

Every mutation is recorded in a journal of BalanceChange records (old and new
value), so an engine operation that fails half-way can restore every balance
it touched with rollback(). commit() forgets the journal once an operation
has completed.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .core import CollateralMap, checked_add, checked_sub


@dataclass(frozen=True, slots=True)
class BalanceChange:
    """
    Record of one balance mutation, for rollback and audit.

    Attributes:
        account: Account whose balance changed
        asset: Collateral asset, or None for the debt balance
        old: Balance before the change
        new: Balance after the change
    """
    account: str
    asset: Optional[str]
    old: int
    new: int


class AccountLedger:
    """
    Sparse store of account balances.

    Absent entries are zero, and balances that return to zero are removed, so
    an account that has been emptied is indistinguishable from one that was
    never seen.
    """

    def __init__(self):
        self._collateral: Dict[str, Dict[str, int]] = {}
        self._debt: Dict[str, int] = {}
        self._journal: List[BalanceChange] = []

    # ========================================================================
    # READS
    # ========================================================================

    def collateral_of(self, account: str, asset: str) -> int:
        return self._collateral.get(account, {}).get(asset, 0)

    def collateral_map(self, account: str) -> CollateralMap:
        """Copy of every non-zero collateral balance of an account."""
        return dict(self._collateral.get(account, {}))

    def debt_of(self, account: str) -> int:
        return self._debt.get(account, 0)

    def accounts(self) -> List[str]:
        """Every account holding collateral or debt, sorted."""
        return sorted(set(self._collateral) | set(self._debt))

    def total_debt(self) -> int:
        return sum(self._debt[a] for a in sorted(self._debt))

    def total_collateral(self, asset: str) -> int:
        return sum(
            self._collateral[a].get(asset, 0) for a in sorted(self._collateral)
        )

    def is_empty(self, account: str) -> bool:
        return account not in self._collateral and account not in self._debt

    @property
    def journal(self) -> List[BalanceChange]:
        """Uncommitted changes, oldest first."""
        return list(self._journal)

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def add_collateral(self, account: str, asset: str, amount: int) -> int:
        old = self.collateral_of(account, asset)
        return self._set_collateral(account, asset, old, checked_add(old, amount))

    def remove_collateral(self, account: str, asset: str, amount: int) -> int:
        """Raises InsufficientBalance if the account holds less than amount."""
        old = self.collateral_of(account, asset)
        new = checked_sub(old, amount, f"{asset} collateral of {account}")
        return self._set_collateral(account, asset, old, new)

    def add_debt(self, account: str, amount: int) -> int:
        old = self.debt_of(account)
        return self._set_debt(account, old, checked_add(old, amount))

    def remove_debt(self, account: str, amount: int) -> int:
        """Raises InsufficientBalance if the account owes less than amount."""
        old = self.debt_of(account)
        return self._set_debt(account, old, checked_sub(old, amount, f"debt of {account}"))

    def _set_collateral(self, account: str, asset: str, old: int, new: int) -> int:
        self._journal.append(BalanceChange(account, asset, old, new))
        self._write_collateral(account, asset, new)
        return new

    def _set_debt(self, account: str, old: int, new: int) -> int:
        self._journal.append(BalanceChange(account, None, old, new))
        self._write_debt(account, new)
        return new

    def _write_collateral(self, account: str, asset: str, value: int) -> None:
        if value:
            self._collateral.setdefault(account, {})[asset] = value
            return
        balances = self._collateral.get(account)
        if balances is not None:
            balances.pop(asset, None)
            if not balances:
                del self._collateral[account]

    def _write_debt(self, account: str, value: int) -> None:
        if value:
            self._debt[account] = value
        else:
            self._debt.pop(account, None)

    # ========================================================================
    # JOURNAL
    # ========================================================================

    def checkpoint(self) -> int:
        """Position in the journal to roll back to."""
        return len(self._journal)

    def rollback(self, token: int) -> None:
        """Undo every change recorded after the checkpoint, newest first."""
        while len(self._journal) > token:
            change = self._journal.pop()
            if change.asset is None:
                self._write_debt(change.account, change.old)
            else:
                self._write_collateral(change.account, change.asset, change.old)

    def commit(self) -> None:
        """Forget the journal; committed changes can no longer be rolled back."""
        self._journal.clear()

    def __repr__(self) -> str:
        return f"AccountLedger({len(self.accounts())} accounts, debt={self.total_debt()})"
