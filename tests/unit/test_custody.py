"""
test_custody.py - Unit tests for the asset ledger custody adapters

Tests:
- LedgerTransferGateway moves collateral in and out of custody
- LedgerDebtToken mints, collects and burns the debt token
- Refusals are reported as False, not raised
"""

import pytest
from datetime import datetime

from debtledger import (
    AssetLedger,
    LedgerTransferGateway,
    LedgerDebtToken,
    AssetTransferGateway,
    DebtTokenAuthority,
    Checkpointable,
    collateral_token,
    debt_token,
    ENGINE_CUSTODY_WALLET,
    InsufficientBalance,
    InvalidAmount,
)


@pytest.fixture
def ledger():
    ledger = AssetLedger("custody", datetime(2025, 1, 1), verbose=False)
    ledger.register_unit(collateral_token("WETH", "Wrapped Ether"))
    ledger.register_unit(debt_token())
    ledger.register_wallet("alice")
    ledger.issue("alice", "WETH", 10)
    return ledger


@pytest.fixture
def gateway(ledger):
    return LedgerTransferGateway(ledger)


@pytest.fixture
def token(ledger):
    return LedgerDebtToken(ledger)


class TestLedgerTransferGateway:
    """Tests for collateral custody."""

    def test_satisfies_protocols(self, gateway):
        assert isinstance(gateway, AssetTransferGateway)
        assert isinstance(gateway, Checkpointable)

    def test_transfer_in_and_out(self, ledger, gateway):
        assert gateway.transfer_in("WETH", "alice", 6)
        assert gateway.custody_balance("WETH") == 6
        assert gateway.transfer_out("WETH", "bob", 2)
        assert ledger.get_balance("bob", "WETH") == 2
        assert ledger.get_balance(ENGINE_CUSTODY_WALLET, "WETH") == 4

    def test_transfer_in_beyond_balance_refused(self, ledger, gateway):
        assert gateway.transfer_in("WETH", "alice", 11) is False
        assert ledger.get_balance("alice", "WETH") == 10

    def test_transfer_from_unknown_wallet_refused(self, gateway):
        assert gateway.transfer_in("WETH", "nobody", 1) is False

    def test_transfer_out_beyond_custody_refused(self, gateway):
        gateway.transfer_in("WETH", "alice", 1)
        assert gateway.transfer_out("WETH", "alice", 2) is False

    def test_rollback(self, ledger, gateway):
        token = gateway.checkpoint()
        gateway.transfer_in("WETH", "alice", 5)
        gateway.rollback(token)
        assert ledger.get_balance("alice", "WETH") == 10
        assert gateway.custody_balance("WETH") == 0


class TestLedgerDebtToken:
    """Tests for debt token issuance and destruction."""

    def test_satisfies_protocols(self, token):
        assert isinstance(token, DebtTokenAuthority)
        assert isinstance(token, Checkpointable)

    def test_mint_registers_recipient(self, token):
        assert token.mint("carol", 100)
        assert token.balance_of("carol") == 100
        assert token.total_supply() == 100

    def test_balance_of_unknown_holder(self, token):
        assert token.balance_of("nobody") == 0

    def test_collect_and_burn(self, token):
        token.mint("alice", 100)
        assert token.transfer_in("alice", 40)
        token.burn(40)
        assert token.balance_of("alice") == 60
        assert token.total_supply() == 60

    def test_collect_beyond_balance_refused(self, token):
        token.mint("alice", 10)
        assert token.transfer_in("alice", 11) is False

    def test_burn_beyond_custody(self, token):
        token.mint("alice", 10)
        token.transfer_in("alice", 5)
        with pytest.raises(InsufficientBalance):
            token.burn(6)

    def test_burn_zero(self, token):
        with pytest.raises(InvalidAmount):
            token.burn(0)
