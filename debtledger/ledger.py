"""
ledger.py - Token Balances Outside the Engine

AssetLedger is the token side of the system. It knows the collateral tokens
and the debt token, who holds how much of each, and the engine's custody
wallet. The engine never touches it directly; custody.py adapts it to the
gateway and debt-token protocols.

Tokens enter circulation by moving out of SYSTEM_WALLET (issue) and leave it
by moving back (redeem), so SYSTEM_WALLET carries the negated supply of each
unit and every unit sums to zero across all wallets.

A batch of moves is checked as a whole against the resulting balances and
then applied in full, or refused with nothing applied. checkpoint() and
rollback() let a caller undo every batch applied since a given point.
"""

from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .core import (
    Move, Transaction, Unit, ExecuteResult,
    Positions, BalanceMap,
    SYSTEM_WALLET,
    UnitNotRegistered, WalletNotRegistered,
)

# (next sequence number, transaction log length, copy of every balance)
LedgerCheckpoint = Tuple[int, int, Dict[str, Dict[str, int]]]


class AssetLedger:
    """
    Integer token ledger with issuance through SYSTEM_WALLET.

    Example:
        ledger = AssetLedger("local")
        ledger.register_unit(collateral_token("WETH", "Wrapped Ether"))
        ledger.register_wallet("alice")
        ledger.issue("alice", "WETH", 10 * 10**18)
        ledger.execute([Move(10**18, "WETH", "alice", "bob", "otc")])
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
    ):
        """
        Args:
            name: Used in execution ids and verbose output
            initial_time: Logical clock start (default: 1970-01-01)
            verbose: Print one line per registration, batch and rollback
        """
        self.name = name
        self.verbose = verbose
        self.units: Dict[str, Unit] = {}
        # wallet -> unit -> quantity; a wallet is registered iff it has an entry
        self.balances: Dict[str, Dict[str, int]] = {SYSTEM_WALLET: defaultdict(int)}
        self.transaction_log: List[Transaction] = []
        self._clock: datetime = initial_time or datetime(1970, 1, 1)
        self._sequence: int = 0
        # unit -> wallet -> non-zero quantity
        self._holders: Dict[str, Dict[str, int]] = defaultdict(dict)

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        return self._clock

    def _require_wallet(self, wallet_id: str) -> None:
        if wallet_id not in self.balances:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")

    def _require_unit(self, unit_symbol: str) -> None:
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.balances

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Quantity of `unit_symbol` held by `wallet_id`.

        Raises:
            WalletNotRegistered, UnitNotRegistered
        """
        self._require_wallet(wallet_id)
        self._require_unit(unit_symbol)
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        self._require_wallet(wallet_id)
        return dict(self.balances[wallet_id])

    def get_positions(self, unit_symbol: str) -> Positions:
        """Every wallet holding a non-zero quantity of the unit, SYSTEM_WALLET included."""
        return dict(self._holders.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        return set(self.balances)

    def list_units(self) -> List[str]:
        return sorted(self.units)

    def get_unit(self, symbol: str) -> Unit:
        self._require_unit(symbol)
        return self.units[symbol]

    def total_supply(self, unit_symbol: str) -> int:
        """
        Quantity of a unit in circulation, i.e. held by wallets other than
        SYSTEM_WALLET. Summed in sorted wallet order.

        Raises:
            UnitNotRegistered
        """
        self._require_unit(unit_symbol)
        return sum(
            self.balances[wallet].get(unit_symbol, 0)
            for wallet in sorted(self.balances)
            if wallet != SYSTEM_WALLET
        )

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Audit that no unit was created or destroyed outside issue/redeem.

        For each unit the circulating supply plus the SYSTEM_WALLET balance
        must be zero.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every unit nets to zero
            - 'supplies': Dict[str, int] - circulating supply per unit
            - 'discrepancies': List[Dict] - {'unit', 'net'} for each unit that does not
        """
        supplies: Dict[str, int] = {}
        discrepancies = []
        system_balances = self.balances[SYSTEM_WALLET]
        for unit_symbol in self.list_units():
            supplies[unit_symbol] = self.total_supply(unit_symbol)
            net = supplies[unit_symbol] + system_balances.get(unit_symbol, 0)
            if net:
                discrepancies.append({'unit': unit_symbol, 'net': net})
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # CLOCK AND REGISTRATION
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the logical clock. Price feeds and execution ids read it.

        Raises:
            ValueError: If new_time is earlier than the current time
        """
        if new_time < self._clock:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._clock}")
        self._clock = new_time

    def register_wallet(self, wallet_id: str) -> str:
        """
        Raises:
            ValueError: If the wallet already exists
        """
        if wallet_id in self.balances:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def ensure_wallet(self, wallet_id: str) -> str:
        if wallet_id not in self.balances:
            self.register_wallet(wallet_id)
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        """
        Raises:
            ValueError: If a unit with the same symbol exists
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    # ========================================================================
    # MOVES
    # ========================================================================

    def execute(self, moves: Sequence[Move]) -> ExecuteResult:
        """
        Apply a batch of moves, all or none.

        The batch is refused if it names an unknown unit or wallet, or if the
        net effect would take any wallet other than SYSTEM_WALLET outside its
        unit's [min_balance, max_balance].

        Returns:
            ExecuteResult.APPLIED, or ExecuteResult.REJECTED with nothing applied
        """
        moves = tuple(moves)
        if not moves:
            return ExecuteResult.APPLIED

        reason = self._rejection_reason(moves)
        if reason is not None:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        tx = Transaction(
            moves=moves,
            exec_id=f"{self.name}:{self._sequence}:{self._clock.isoformat()}",
            ledger_name=self.name,
            execution_time=self._clock,
            sequence_number=self._sequence,
        )
        self._sequence += 1
        for move in moves:
            self._credit(move.source, move.unit_symbol, -move.quantity)
            self._credit(move.dest, move.unit_symbol, move.quantity)
        self.transaction_log.append(tx)

        if self.verbose:
            print(f"✓ APPLIED: {tx!r}")
        return ExecuteResult.APPLIED

    def issue(self, wallet_id: str, unit_symbol: str, quantity: int,
              memo: str = "issuance") -> ExecuteResult:
        """Put new units into circulation in `wallet_id`."""
        return self.execute([Move(quantity, unit_symbol, SYSTEM_WALLET, wallet_id, memo)])

    def redeem(self, wallet_id: str, unit_symbol: str, quantity: int,
               memo: str = "redemption") -> ExecuteResult:
        """Take units held by `wallet_id` out of circulation."""
        return self.execute([Move(quantity, unit_symbol, wallet_id, SYSTEM_WALLET, memo)])

    def _rejection_reason(self, moves: Tuple[Move, ...]) -> Optional[str]:
        deltas: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in moves:
            if move.unit_symbol not in self.units:
                return f"unit not registered: {move.unit_symbol}"
            for wallet in (move.source, move.dest):
                if wallet not in self.balances:
                    return f"wallet not registered: {wallet}"
            deltas[move.source, move.unit_symbol] -= move.quantity
            deltas[move.dest, move.unit_symbol] += move.quantity

        for (wallet, unit_symbol), delta in deltas.items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[unit_symbol]
            proposed = self.balances[wallet][unit_symbol] + delta
            if proposed < unit.min_balance:
                return f"{wallet} {unit_symbol}: {proposed} < min {unit.min_balance}"
            if proposed > unit.max_balance:
                return f"{wallet} {unit_symbol}: {proposed} > max {unit.max_balance}"
        return None

    def _credit(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        balance = self.balances[wallet_id][unit_symbol] + quantity
        self.balances[wallet_id][unit_symbol] = balance
        self._index(wallet_id, unit_symbol, balance)

    def _index(self, wallet_id: str, unit_symbol: str, balance: int) -> None:
        if balance:
            self._holders[unit_symbol][wallet_id] = balance
        else:
            self._holders[unit_symbol].pop(wallet_id, None)

    # ========================================================================
    # CHECKPOINTS
    # ========================================================================

    def checkpoint(self) -> LedgerCheckpoint:
        """
        Snapshot balances, the log length and the sequence counter.

        Wallets registered after the snapshot are kept by rollback(), with
        zero balances.
        """
        snapshot = {wallet: dict(held) for wallet, held in self.balances.items()}
        return (self._sequence, len(self.transaction_log), snapshot)

    def rollback(self, token: LedgerCheckpoint) -> None:
        """
        Undo every batch applied since `token` was taken.

        Raises:
            ValueError: If the log is already shorter than at the checkpoint
        """
        sequence, log_length, snapshot = token
        if log_length > len(self.transaction_log):
            raise ValueError("Checkpoint is newer than the current transaction log")

        self._holders = defaultdict(dict)
        for wallet in self.balances:
            self.balances[wallet] = defaultdict(int, snapshot.get(wallet, {}))
            for unit_symbol, balance in self.balances[wallet].items():
                self._index(wallet, unit_symbol, balance)

        del self.transaction_log[log_length:]
        self._sequence = sequence
        if self.verbose:
            print(f"↺ ROLLED BACK: {self.name} to sequence {sequence}")
