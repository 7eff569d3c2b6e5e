"""Tests for the per-pair reserve ledger."""

import pytest
from structlog.testing import capture_logs

from dex.constants import MINIMUM_LIQUIDITY, ZERO_ADDRESS
from dex.errors import (
    InsufficientInitialLiquidity,
    InsufficientInputAmount,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InsufficientOutputLiquidity,
    InsufficientShareBalance,
    InvalidRecipient,
    InvalidToken,
    KInvariantViolation,
    Locked,
)
from dex.exchange import Exchange
from dex.pairs.pair import Pair, burn_amounts, initial_shares, proportional_shares
from dex.routing.library import get_amount_out
from dex.tokens.ledger import TokenLedger
from tests.helpers import (
    ALICE,
    BOB,
    DAI,
    FEE_RECIPIENT,
    FEE_SETTER,
    LP,
    USDC,
    seed_pair,
    share_sum,
)


def push(ledger: TokenLedger, pair: Pair, amount0: int, amount1: int) -> None:
    """Send tokens into the pair's custody without settling."""
    ledger.credit(pair.token0, pair.address, amount0)
    ledger.credit(pair.token1, pair.address, amount1)


class TestShareMath:
    """Tests for the pure share formulas."""

    def test_initial_shares(self):
        assert initial_shares(10_000, 10_000) == 9_000

    def test_initial_shares_at_lock(self):
        with pytest.raises(InsufficientInitialLiquidity):
            initial_shares(1_000, 1_000)

    def test_proportional_shares(self):
        """min(500*1000/1000, 500*1000/1000) = 500."""
        assert proportional_shares(500, 500, 1_000, 1_000, 1_000) == 500

    def test_proportional_takes_worse_ratio(self):
        assert proportional_shares(500, 100, 1_000, 1_000, 1_000) == 100

    def test_burn_amounts(self):
        assert burn_amounts(250, 1_000, 4_000, 1_000) == (250, 1_000)
        with pytest.raises(InsufficientLiquidityBurned):
            burn_amounts(1, 1_000, 999, 1_000)


class TestConstruction:
    def test_tokens_must_be_ordered(self, ledger: TokenLedger):
        with pytest.raises(InvalidToken):
            Pair("0x" + "99" * 20, USDC, DAI, ledger)


class TestMint:
    """Tests for Pair.mint."""

    def test_first_mint_locks_minimum(self, ledger: TokenLedger, pair: Pair):
        push(ledger, pair, 10_000, 10_000)
        assert pair.mint(ALICE) == 9_000
        assert pair.share_balance(ALICE) == 9_000
        assert pair.share_balance(ZERO_ADDRESS) == MINIMUM_LIQUIDITY
        assert pair.total_supply == 10_000
        assert pair.get_reserves() == (10_000, 10_000)

    def test_first_mint_at_lock_fails_cleanly(self, ledger: TokenLedger, pair: Pair):
        push(ledger, pair, 1_000, 1_000)
        with pytest.raises(InsufficientInitialLiquidity):
            pair.mint(ALICE)
        assert pair.total_supply == 0
        assert pair.holders() == {}
        assert pair.get_reserves() == (0, 0)

    def test_proportional_mint(self, ledger: TokenLedger, seeded_pair: Pair):
        push(ledger, seeded_pair, 500_000, 250_000)
        assert seeded_pair.mint(ALICE) == 250_000
        assert seeded_pair.get_reserves() == (1_500_000, 1_250_000)
        assert share_sum(seeded_pair) == seeded_pair.total_supply == 1_250_000

    def test_mint_without_deposit(self, seeded_pair: Pair):
        with pytest.raises(InsufficientLiquidityMinted):
            seeded_pair.mint(ALICE)

    def test_mint_to_zero(self, ledger: TokenLedger, pair: Pair):
        push(ledger, pair, 10_000, 10_000)
        with pytest.raises(InvalidRecipient):
            pair.mint(ZERO_ADDRESS)

    def test_logs_mint(self, ledger: TokenLedger, pair: Pair):
        push(ledger, pair, 10_000, 10_000)
        with capture_logs() as logs:
            pair.mint(ALICE)
        minted = [entry for entry in logs if entry["event"] == "pair_mint"]
        assert len(minted) == 1
        assert minted[0]["shares"] == 9_000


class TestBurn:
    """Tests for Pair.burn."""

    def test_burn_pro_rata(self, ledger: TokenLedger, seeded_pair: Pair):
        amounts = seeded_pair.burn(LP, 999_000, BOB)
        assert amounts == (999_000, 999_000)
        assert ledger.balance_of(DAI, BOB) == ledger.balance_of(USDC, BOB) == 999_000
        assert seeded_pair.get_reserves() == (1_000, 1_000)
        assert seeded_pair.total_supply == MINIMUM_LIQUIDITY
        assert seeded_pair.share_balance(LP) == 0

    def test_burn_defaults_to_holder(self, ledger: TokenLedger, seeded_pair: Pair):
        seeded_pair.burn(LP, 1_000)
        assert ledger.balance_of(DAI, LP) == 1_000

    def test_burn_more_than_owned(self, seeded_pair: Pair):
        before = seeded_pair.snapshot()
        with pytest.raises(InsufficientShareBalance):
            seeded_pair.burn(LP, 999_001)
        assert seeded_pair.snapshot() == before

    def test_burn_locked_shares(self, seeded_pair: Pair):
        with pytest.raises(InsufficientShareBalance):
            seeded_pair.burn(ZERO_ADDRESS, 1)

    def test_burn_zero_shares(self, seeded_pair: Pair):
        with pytest.raises(InsufficientLiquidityBurned):
            seeded_pair.burn(LP, 0)


class TestSwap:
    """Tests for Pair.swap."""

    def test_exact_input_swap(self, ledger: TokenLedger, seeded_pair: Pair):
        amount_out = get_amount_out(1_000, 1_000_000, 1_000_000)
        assert amount_out == 996
        ledger.credit(DAI, seeded_pair.address, 1_000)
        seeded_pair.swap(0, amount_out, ALICE)
        assert ledger.balance_of(USDC, ALICE) == 996
        assert seeded_pair.get_reserves() == (1_001_000, 999_004)

    def test_one_too_many_violates_k(self, ledger: TokenLedger, seeded_pair: Pair):
        ledger.credit(DAI, seeded_pair.address, 1_000)
        with capture_logs() as logs:
            with pytest.raises(KInvariantViolation):
                seeded_pair.swap(0, 997, ALICE)
        assert ledger.balance_of(USDC, ALICE) == 0
        assert ledger.balance_of(USDC, seeded_pair.address) == 1_000_000
        assert seeded_pair.get_reserves() == (1_000_000, 1_000_000)
        assert any(
            entry["event"] == "k_invariant_violation" and entry["log_level"] == "error"
            for entry in logs
        )

    def test_no_input(self, seeded_pair: Pair):
        with pytest.raises(InsufficientInputAmount):
            seeded_pair.swap(0, 10, ALICE)

    def test_drain_reserve(self, ledger: TokenLedger, seeded_pair: Pair):
        ledger.credit(DAI, seeded_pair.address, 10**12)
        with pytest.raises(InsufficientOutputLiquidity):
            seeded_pair.swap(0, 1_000_000, ALICE)

    def test_no_output(self, seeded_pair: Pair):
        with pytest.raises(InsufficientOutputAmount):
            seeded_pair.swap(0, 0, ALICE)

    def test_recipient_checks(self, seeded_pair: Pair):
        with pytest.raises(InvalidRecipient):
            seeded_pair.swap(0, 10, DAI)
        with pytest.raises(InvalidRecipient):
            seeded_pair.swap(0, 10, ZERO_ADDRESS)

    def test_dual_output(self, ledger: TokenLedger, seeded_pair: Pair):
        """Both outputs in one call are allowed when the inputs cover them."""
        push(ledger, seeded_pair, 2_000, 2_000)
        seeded_pair.swap(990, 990, ALICE)
        assert ledger.balance_of(DAI, ALICE) == ledger.balance_of(USDC, ALICE) == 990

    def test_k_never_decreases(self, ledger: TokenLedger, seeded_pair: Pair):
        for amount_in in (10, 1_000, 55_555, 400_000):
            reserve0, reserve1 = seeded_pair.get_reserves()
            k_before = reserve0 * reserve1
            ledger.credit(DAI, seeded_pair.address, amount_in)
            seeded_pair.swap(0, get_amount_out(amount_in, reserve0, reserve1), ALICE)
            reserve0, reserve1 = seeded_pair.get_reserves()
            assert reserve0 * reserve1 >= k_before


class TestFlashSwap:
    """Tests for optimistic transfers repaid by a callee."""

    def test_repaid_in_same_token(self, ledger: TokenLedger, seeded_pair: Pair):
        fund_amount = 1_004
        ledger.credit(USDC, BOB, fund_amount)
        calls = []

        def callee(pair: Pair, amount0_out: int, amount1_out: int, data: bytes) -> None:
            calls.append((amount0_out, amount1_out, data))
            ledger.transfer(USDC, BOB, pair.address, fund_amount)

        seeded_pair.swap(0, 1_000, BOB, b"loan", callee)
        assert calls == [(0, 1_000, b"loan")]
        assert ledger.balance_of(USDC, BOB) == 1_000
        assert seeded_pair.get_reserves() == (1_000_000, 1_000_004)

    def test_underpaid_loan_rolls_back(self, ledger: TokenLedger, seeded_pair: Pair):
        ledger.credit(USDC, BOB, 1_003)

        def callee(pair: Pair, amount0_out: int, amount1_out: int, data: bytes) -> None:
            ledger.transfer(USDC, BOB, pair.address, 1_003)

        with pytest.raises(KInvariantViolation):
            seeded_pair.swap(0, 1_000, BOB, b"", callee)
        assert ledger.balance_of(USDC, BOB) == 1_003
        assert seeded_pair.get_reserves() == (1_000_000, 1_000_000)

    def test_reentry_is_locked(self, seeded_pair: Pair):
        def callee(pair: Pair, amount0_out: int, amount1_out: int, data: bytes) -> None:
            pair.sync()

        with pytest.raises(Locked):
            seeded_pair.swap(0, 1_000, BOB, b"", callee)
        assert seeded_pair.get_reserves() == (1_000_000, 1_000_000)


class TestSkimSync:
    def test_skim_sends_excess(self, ledger: TokenLedger, seeded_pair: Pair):
        ledger.credit(DAI, seeded_pair.address, 500)
        assert seeded_pair.skim(BOB) == (500, 0)
        assert ledger.balance_of(DAI, BOB) == 500
        assert seeded_pair.get_reserves() == (1_000_000, 1_000_000)

    def test_sync_adopts_balances(self, ledger: TokenLedger, seeded_pair: Pair):
        ledger.credit(DAI, seeded_pair.address, 500)
        seeded_pair.sync()
        assert seeded_pair.get_reserves() == (1_000_500, 1_000_000)


class TestShareTransfer:
    def test_transfer_conserves_supply(self, seeded_pair: Pair):
        seeded_pair.transfer_shares(LP, ALICE, 1_000)
        assert seeded_pair.share_balance(ALICE) == 1_000
        assert seeded_pair.share_balance(LP) == 998_000
        assert share_sum(seeded_pair) == seeded_pair.total_supply

    def test_cannot_overspend(self, seeded_pair: Pair):
        with pytest.raises(InsufficientShareBalance):
            seeded_pair.transfer_shares(ALICE, LP, 1)

    def test_lock_cannot_move(self, seeded_pair: Pair):
        with pytest.raises(InsufficientShareBalance):
            seeded_pair.transfer_shares(ZERO_ADDRESS, ALICE, 1)


class TestProtocolFee:
    """Tests for the protocol's share of fee growth."""

    def test_fee_minted_on_next_liquidity_event(self, exchange: Exchange):
        exchange.registry.set_fee_to(FEE_SETTER, FEE_RECIPIENT)
        pair = seed_pair(exchange, DAI, USDC, 1_000_000, 1_000_000)
        assert pair.k_last == 10**12

        exchange.ledger.credit(DAI, pair.address, 100_000)
        pair.swap(0, 90_661, ALICE)
        assert pair.get_reserves() == (1_100_000, 909_339)

        # rootK = 1_000_136, rootKLast = 1_000_000
        # 1_000_000 * 136 // (1_000_136 * 5 + 1_000_000) = 22
        pair.burn(LP, 1_000)
        assert pair.share_balance(FEE_RECIPIENT) == 22
        assert pair.k_last == pair.reserve0 * pair.reserve1
        assert share_sum(pair) == pair.total_supply

    def test_fee_off_keeps_k_last_zero(self, exchange: Exchange, seeded_pair: Pair):
        exchange.ledger.credit(DAI, seeded_pair.address, 100_000)
        seeded_pair.swap(0, 90_661, ALICE)
        seeded_pair.burn(LP, 1_000)
        assert seeded_pair.k_last == 0
        assert seeded_pair.share_balance(FEE_RECIPIENT) == 0
