"""
test_asset_ledger.py - Unit tests for AssetLedger

Tests:
- Unit and wallet registration
- Atomic execution of move batches (validation, min/max balances)
- Issuance and redemption through SYSTEM_WALLET
- Supply accounting and double-entry verification
- Checkpoint / rollback of balances and the transaction log
"""

import pytest
from datetime import datetime

from debtledger import (
    AssetLedger,
    Move,
    ExecuteResult,
    Unit,
    collateral_token,
    debt_token,
    SYSTEM_WALLET,
    UNIT_TYPE_COLLATERAL,
    UnitNotRegistered,
    WalletNotRegistered,
)


@pytest.fixture
def ledger():
    ledger = AssetLedger("test", datetime(2025, 1, 1), verbose=False)
    ledger.register_unit(collateral_token("WETH", "Wrapped Ether"))
    ledger.register_unit(debt_token())
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


class TestRegistration:
    """Tests for unit and wallet registration."""

    def test_duplicate_unit(self, ledger):
        with pytest.raises(ValueError):
            ledger.register_unit(collateral_token("WETH", "Again"))

    def test_duplicate_wallet(self, ledger):
        with pytest.raises(ValueError):
            ledger.register_wallet("alice")

    def test_ensure_wallet_is_idempotent(self, ledger):
        assert ledger.ensure_wallet("alice") == "alice"
        assert ledger.ensure_wallet("carol") == "carol"
        assert ledger.is_registered("carol")

    def test_system_wallet_preregistered(self, ledger):
        assert ledger.is_registered(SYSTEM_WALLET)

    def test_list_units(self, ledger):
        assert ledger.list_units() == ["DSC", "WETH"]
        assert ledger.get_unit("WETH").unit_type == UNIT_TYPE_COLLATERAL

    def test_unknown_lookups(self, ledger):
        with pytest.raises(UnitNotRegistered):
            ledger.get_unit("DOGE")
        with pytest.raises(WalletNotRegistered):
            ledger.get_balance("nobody", "WETH")
        with pytest.raises(UnitNotRegistered):
            ledger.get_balance("alice", "DOGE")


class TestExecution:
    """Tests for execute(), issue() and redeem()."""

    def test_issue_and_transfer(self, ledger):
        assert ledger.issue("alice", "WETH", 10) == ExecuteResult.APPLIED
        assert ledger.execute([Move(4, "WETH", "alice", "bob", "pay")]) == ExecuteResult.APPLIED
        assert ledger.get_balance("alice", "WETH") == 6
        assert ledger.get_balance("bob", "WETH") == 4
        assert ledger.get_positions("WETH") == {SYSTEM_WALLET: -10, "alice": 6, "bob": 4}

    def test_overdraft_rejected(self, ledger):
        ledger.issue("alice", "WETH", 10)
        result = ledger.execute([Move(11, "WETH", "alice", "bob", "pay")])
        assert result == ExecuteResult.REJECTED
        assert ledger.get_balance("alice", "WETH") == 10
        assert len(ledger.transaction_log) == 1

    def test_batch_is_all_or_nothing(self, ledger):
        ledger.issue("alice", "WETH", 10)
        result = ledger.execute([
            Move(5, "WETH", "alice", "bob", "first"),
            Move(6, "WETH", "alice", "bob", "second"),
        ])
        assert result == ExecuteResult.REJECTED
        assert ledger.get_balance("bob", "WETH") == 0

    def test_unregistered_wallet_rejected(self, ledger):
        ledger.issue("alice", "WETH", 10)
        assert ledger.execute([Move(1, "WETH", "alice", "nobody", "pay")]) == ExecuteResult.REJECTED

    def test_unregistered_unit_rejected(self, ledger):
        assert ledger.execute([Move(1, "DOGE", SYSTEM_WALLET, "alice", "pay")]) == ExecuteResult.REJECTED

    def test_max_balance_enforced(self, ledger):
        ledger.register_unit(Unit("CAP", "Capped", UNIT_TYPE_COLLATERAL, max_balance=100))
        assert ledger.issue("alice", "CAP", 100) == ExecuteResult.APPLIED
        assert ledger.issue("alice", "CAP", 1) == ExecuteResult.REJECTED

    def test_empty_batch_is_a_no_op(self, ledger):
        assert ledger.execute([]) == ExecuteResult.APPLIED
        assert ledger.transaction_log == []

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_invalid_move_quantity(self, quantity):
        with pytest.raises(ValueError):
            Move(quantity, "WETH", "alice", "bob", "pay")

    def test_move_to_self(self):
        with pytest.raises(ValueError):
            Move(1, "WETH", "alice", "alice", "pay")

    def test_transactions_are_sequenced(self, ledger):
        ledger.issue("alice", "WETH", 10)
        ledger.issue("bob", "WETH", 10)
        log = ledger.transaction_log
        assert [tx.sequence_number for tx in log] == [0, 1]
        assert log[0].exec_id != log[1].exec_id
        assert log[0].memos == frozenset({"issuance"})


class TestSupply:
    """Tests for total_supply() and verify_double_entry()."""

    def test_supply_tracks_issue_and_redeem(self, ledger):
        ledger.issue("alice", "DSC", 100)
        ledger.issue("bob", "DSC", 50)
        ledger.redeem("alice", "DSC", 30)
        assert ledger.total_supply("DSC") == 120
        assert ledger.get_balance(SYSTEM_WALLET, "DSC") == -120

    def test_double_entry_holds(self, ledger):
        ledger.issue("alice", "WETH", 10)
        ledger.execute([Move(3, "WETH", "alice", "bob", "pay")])
        result = ledger.verify_double_entry()
        assert result['valid']
        assert result['supplies'] == {"DSC": 0, "WETH": 10}
        assert result['discrepancies'] == []

    def test_double_entry_detects_tampering(self, ledger):
        ledger.issue("alice", "WETH", 10)
        ledger.balances["bob"]["WETH"] = 5
        result = ledger.verify_double_entry()
        assert not result['valid']
        assert result['discrepancies'] == [{'unit': "WETH", 'net': 5}]


class TestCheckpoints:
    """Tests for checkpoint() / rollback()."""

    def test_rollback_restores_balances_and_log(self, ledger):
        ledger.issue("alice", "WETH", 10)
        token = ledger.checkpoint()

        ledger.execute([Move(4, "WETH", "alice", "bob", "pay")])
        ledger.issue("bob", "DSC", 7)
        ledger.rollback(token)

        assert ledger.get_balance("alice", "WETH") == 10
        assert ledger.get_balance("bob", "WETH") == 0
        assert ledger.total_supply("DSC") == 0
        assert len(ledger.transaction_log) == 1
        assert ledger.get_positions("WETH") == {SYSTEM_WALLET: -10, "alice": 10}

    def test_sequence_reused_after_rollback(self, ledger):
        token = ledger.checkpoint()
        ledger.issue("alice", "WETH", 10)
        ledger.rollback(token)
        ledger.issue("bob", "WETH", 10)
        assert ledger.transaction_log[-1].sequence_number == 0

    def test_wallets_registered_after_checkpoint_survive(self, ledger):
        token = ledger.checkpoint()
        ledger.ensure_wallet("carol")
        ledger.issue("carol", "WETH", 10)
        ledger.rollback(token)
        assert ledger.is_registered("carol")
        assert ledger.get_balance("carol", "WETH") == 0

    def test_stale_token_rejected(self, ledger):
        ledger.issue("alice", "WETH", 10)
        token = ledger.checkpoint()
        ledger.rollback((0, 0, {}))
        with pytest.raises(ValueError):
            ledger.rollback(token)

    def test_time_only_moves_forward(self, ledger):
        ledger.advance_time(datetime(2025, 2, 1))
        assert ledger.current_time == datetime(2025, 2, 1)
        with pytest.raises(ValueError):
            ledger.advance_time(datetime(2025, 1, 1))
