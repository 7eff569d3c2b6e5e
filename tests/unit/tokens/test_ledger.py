"""Tests for the in-memory token ledger and the native wrapper."""

import pytest

from dex.constants import NATIVE_TOKEN
from dex.errors import InsufficientBalance
from dex.tokens.ledger import TokenLedger
from dex.tokens.wrapped import WrappedNative
from tests.helpers import ALICE, BOB, DAI, WRAPPED


@pytest.fixture
def funded() -> TokenLedger:
    ledger = TokenLedger()
    ledger.credit(DAI, ALICE, 1_000)
    return ledger


class TestBalances:
    """Tests for credit, debit and transfer."""

    def test_unknown_balance_is_zero(self):
        assert TokenLedger().balance_of(DAI, ALICE) == 0

    def test_credit_raises_supply(self, funded: TokenLedger):
        assert funded.balance_of(DAI, ALICE) == 1_000
        assert funded.total_supply(DAI) == 1_000

    def test_transfer(self, funded: TokenLedger):
        funded.transfer(DAI, ALICE, BOB, 400)
        assert funded.balance_of(DAI, ALICE) == 600
        assert funded.balance_of(DAI, BOB) == 400
        assert funded.total_supply(DAI) == 1_000

    def test_addresses_are_case_insensitive(self, funded: TokenLedger):
        assert funded.balance_of(DAI.upper().replace("0X", "0x"), ALICE) == 1_000

    def test_transfer_more_than_balance(self, funded: TokenLedger):
        with pytest.raises(InsufficientBalance):
            funded.transfer(DAI, ALICE, BOB, 1_001)
        assert funded.balance_of(DAI, ALICE) == 1_000

    def test_zero_transfer_is_noop(self, funded: TokenLedger):
        funded.transfer(DAI, BOB, ALICE, 0)
        assert funded.balance_of(DAI, BOB) == 0

    def test_negative_amounts_rejected(self, funded: TokenLedger):
        with pytest.raises(ValueError):
            funded.transfer(DAI, ALICE, BOB, -1)
        with pytest.raises(ValueError):
            funded.credit(DAI, ALICE, -1)

    def test_debit(self, funded: TokenLedger):
        funded.debit(DAI, ALICE, 300)
        assert funded.balance_of(DAI, ALICE) == 700
        assert funded.total_supply(DAI) == 700
        with pytest.raises(InsufficientBalance):
            funded.debit(DAI, ALICE, 701)


class TestAtomic:
    """Tests for journaled rollback."""

    def test_rollback_on_error(self, funded: TokenLedger):
        """Every movement in a failed block is undone."""
        with pytest.raises(RuntimeError):
            with funded.atomic():
                funded.transfer(DAI, ALICE, BOB, 400)
                funded.credit(DAI, BOB, 50)
                raise RuntimeError("abort")
        assert funded.balance_of(DAI, ALICE) == 1_000
        assert funded.balance_of(DAI, BOB) == 0
        assert funded.total_supply(DAI) == 1_000

    def test_commit_on_success(self, funded: TokenLedger):
        with funded.atomic():
            funded.transfer(DAI, ALICE, BOB, 400)
        assert funded.balance_of(DAI, BOB) == 400

    def test_outer_failure_undoes_committed_inner_block(self, funded: TokenLedger):
        """A nested block that succeeded is still undone by its parent."""
        with pytest.raises(RuntimeError):
            with funded.atomic():
                with funded.atomic():
                    funded.transfer(DAI, ALICE, BOB, 400)
                raise RuntimeError("abort")
        assert funded.balance_of(DAI, BOB) == 0

    def test_inner_failure_keeps_outer_movements(self, funded: TokenLedger):
        with funded.atomic():
            funded.transfer(DAI, ALICE, BOB, 100)
            with pytest.raises(InsufficientBalance):
                with funded.atomic():
                    funded.transfer(DAI, ALICE, BOB, 200)
                    funded.transfer(DAI, ALICE, BOB, 10_000)
        assert funded.balance_of(DAI, BOB) == 100


class TestWrappedNative:
    """Tests for wrapping and unwrapping the native asset."""

    def test_deposit_and_withdraw(self):
        ledger = TokenLedger()
        wrapped = WrappedNative(ledger, WRAPPED)
        ledger.credit(NATIVE_TOKEN, ALICE, 500)

        wrapped.deposit(ALICE, 200)
        assert ledger.balance_of(WRAPPED, ALICE) == 200
        assert ledger.balance_of(NATIVE_TOKEN, ALICE) == 300
        assert ledger.balance_of(NATIVE_TOKEN, WRAPPED) == ledger.total_supply(WRAPPED)

        wrapped.withdraw(ALICE, 150)
        assert ledger.balance_of(WRAPPED, ALICE) == 50
        assert ledger.balance_of(NATIVE_TOKEN, ALICE) == 450
        assert ledger.balance_of(NATIVE_TOKEN, WRAPPED) == ledger.total_supply(WRAPPED) == 50

    def test_deposit_without_native(self):
        wrapped = WrappedNative(TokenLedger(), WRAPPED)
        with pytest.raises(InsufficientBalance):
            wrapped.deposit(ALICE, 1)
