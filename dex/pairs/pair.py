"""Per-pair reserve ledger.

Each Pair holds two token reserves and a table of liquidity shares, and
only changes them through mint, burn and swap under the constant product
rule with a 0.3% fee on input.

Token movement follows a push-then-settle model: callers transfer tokens
into the pair's custody first, then call mint or swap, and the pair infers
what arrived from its ledger balances.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from dex.constants import (
    FEE_CHARGED,
    FEE_DENOMINATOR,
    MINIMUM_LIQUIDITY,
    PROTOCOL_FEE_DIVISOR,
    ZERO_ADDRESS,
)
from dex.errors import (
    InsufficientInitialLiquidity,
    InsufficientInputAmount,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InsufficientOutputLiquidity,
    InsufficientShareBalance,
    InvalidAmount,
    InvalidRecipient,
    InvalidToken,
    KInvariantViolation,
    Locked,
)
from dex.models.types import is_zero_address, normalize_address
from dex.safe_int import S
from dex.tokens.ledger import TokenLedger
from dex.transaction import atomic

logger = structlog.get_logger()


class FeeRecipientSource(Protocol):
    """Anything that knows the current protocol fee recipient (the registry)."""

    @property
    def fee_to(self) -> str | None: ...


class FlashSwapCallee(Protocol):
    """Callback invoked after optimistic transfer-out and before settlement."""

    def __call__(self, pair: Pair, amount0_out: int, amount1_out: int, data: bytes) -> None: ...


@dataclass(frozen=True)
class PairSnapshot:
    """Copy of a pair's mutable state, used for rollback."""

    reserve0: int
    reserve1: int
    total_supply: int
    k_last: int
    shares: dict[str, int] = field(default_factory=dict)


def initial_shares(amount0: int, amount1: int) -> int:
    """Shares issued to the first depositor, after the minimum liquidity lock.

    Raises:
        InsufficientInitialLiquidity: If floor(sqrt(amount0 * amount1)) <= MINIMUM_LIQUIDITY
    """
    root = (S(amount0) * S(amount1)).isqrt()
    if root <= MINIMUM_LIQUIDITY:
        raise InsufficientInitialLiquidity(
            f"sqrt({amount0} * {amount1}) = {root.value} does not exceed {MINIMUM_LIQUIDITY}"
        )
    return (root - MINIMUM_LIQUIDITY).value


def proportional_shares(
    amount0: int,
    amount1: int,
    reserve0: int,
    reserve1: int,
    total_supply: int,
) -> int:
    """Shares for a deposit into an active pair, priced at the worse of the two ratios.

    Raises:
        InsufficientLiquidityMinted: If the deposit is worth less than one share
    """
    shares = (S(amount0) * S(total_supply) // S(reserve0)).min(
        S(amount1) * S(total_supply) // S(reserve1)
    )
    if shares == 0:
        raise InsufficientLiquidityMinted(
            f"Deposit ({amount0}, {amount1}) mints no shares of {total_supply}"
        )
    return shares.value


def burn_amounts(shares: int, reserve0: int, reserve1: int, total_supply: int) -> tuple[int, int]:
    """Pro-rata reserve amounts for burning shares (floor rounding).

    Raises:
        InsufficientLiquidityBurned: If either amount rounds down to zero
    """
    amount0 = (S(shares) * S(reserve0) // S(total_supply)).value
    amount1 = (S(shares) * S(reserve1) // S(total_supply)).value
    if amount0 == 0 or amount1 == 0:
        raise InsufficientLiquidityBurned(
            f"Burning {shares} of {total_supply} returns ({amount0}, {amount1})"
        )
    return amount0, amount1


class Pair:
    """Reserve ledger for one canonical token pair.

    Attributes:
        address: Pair identity and custody account in the token ledger
        token0: Smaller token identity
        token1: Larger token identity
        reserve0: Last settled holding of token0
        reserve1: Last settled holding of token1
        total_supply: Outstanding liquidity shares, including the locked minimum
        k_last: reserve0 * reserve1 after the last liquidity event (protocol fee only)
        lock: Exclusive lock serializing all mutation of this pair
    """

    def __init__(
        self,
        address: str,
        token0: str,
        token1: str,
        ledger: TokenLedger,
        fee_source: FeeRecipientSource | None = None,
    ) -> None:
        self.address = normalize_address(address)
        self.token0 = normalize_address(token0)
        self.token1 = normalize_address(token1)
        if self.token0 >= self.token1:
            raise InvalidToken(f"Tokens not in canonical order: {token0}, {token1}")
        self.ledger = ledger
        self.fee_source = fee_source
        self.reserve0 = 0
        self.reserve1 = 0
        self.total_supply = 0
        self.k_last = 0
        self.lock = threading.RLock()
        self._shares: dict[str, int] = {}
        self._entered = False

    def __repr__(self) -> str:
        return (
            f"Pair({self.address}, {self.token0}/{self.token1}, "
            f"reserves=({self.reserve0}, {self.reserve1}), supply={self.total_supply})"
        )

    # --- Read-only views ---------------------------------------------------

    def get_reserves(self) -> tuple[int, int]:
        """Current (reserve0, reserve1), read atomically."""
        with self.lock:
            return self.reserve0, self.reserve1

    def get_reserves_for(self, token_in: str) -> tuple[int, int]:
        """Current reserves ordered as (reserve_in, reserve_out)."""
        token_in = normalize_address(token_in)
        with self.lock:
            if token_in == self.token0:
                return self.reserve0, self.reserve1
            if token_in == self.token1:
                return self.reserve1, self.reserve0
        raise InvalidToken(f"Token {token_in} not in pair {self.address}")

    def get_token_out(self, token_in: str) -> str:
        """The other token of the pair."""
        token_in = normalize_address(token_in)
        if token_in == self.token0:
            return self.token1
        if token_in == self.token1:
            return self.token0
        raise InvalidToken(f"Token {token_in} not in pair {self.address}")

    def share_balance(self, holder: str) -> int:
        """Liquidity shares held by holder."""
        with self.lock:
            return self._shares.get(normalize_address(holder), 0)

    def holders(self) -> dict[str, int]:
        """Copy of the share table (zero balances omitted)."""
        with self.lock:
            return dict(self._shares)

    @property
    def is_initialized(self) -> bool:
        return self.total_supply > 0

    # --- Rollback support --------------------------------------------------

    def snapshot(self) -> PairSnapshot:
        return PairSnapshot(
            reserve0=self.reserve0,
            reserve1=self.reserve1,
            total_supply=self.total_supply,
            k_last=self.k_last,
            shares=dict(self._shares),
        )

    def restore(self, snapshot: PairSnapshot) -> None:
        self.reserve0 = snapshot.reserve0
        self.reserve1 = snapshot.reserve1
        self.total_supply = snapshot.total_supply
        self.k_last = snapshot.k_last
        self._shares = dict(snapshot.shares)

    # --- Share table -------------------------------------------------------

    def transfer_shares(self, sender: str, recipient: str, amount: int) -> None:
        """Move liquidity shares between holders.

        Raises:
            InvalidRecipient: If recipient is the zero address
            InsufficientShareBalance: If sender holds fewer than amount shares
        """
        if amount < 0:
            raise InvalidAmount(f"Share amount cannot be negative: {amount}")
        if is_zero_address(recipient):
            raise InvalidRecipient("Cannot transfer shares to the zero address")
        if is_zero_address(sender):
            raise InsufficientShareBalance("Locked minimum liquidity cannot be transferred")
        sender = normalize_address(sender)
        with self.lock:
            if self._shares.get(sender, 0) < amount:
                raise InsufficientShareBalance(
                    f"{sender} holds {self._shares.get(sender, 0)} shares, needs {amount}"
                )
            self._debit_shares(sender, amount)
            self._credit_shares(normalize_address(recipient), amount)

    def _mint_shares(self, holder: str, amount: int) -> None:
        self.total_supply += amount
        self._credit_shares(holder, amount)

    def _credit_shares(self, holder: str, amount: int) -> None:
        if amount:
            self._shares[holder] = self._shares.get(holder, 0) + amount

    def _debit_shares(self, holder: str, amount: int) -> None:
        remaining = (S(self._shares.get(holder, 0)) - S(amount)).value
        if remaining:
            self._shares[holder] = remaining
        else:
            self._shares.pop(holder, None)

    def _burn_shares(self, holder: str, amount: int) -> None:
        self._debit_shares(holder, amount)
        self.total_supply -= amount

    # --- Liquidity ---------------------------------------------------------

    def mint(self, to: str) -> int:
        """Issue shares for whatever was pushed into the pair since the last settlement.

        Args:
            to: Recipient of the new shares

        Returns:
            Number of shares issued to ``to``

        Raises:
            InvalidRecipient: If ``to`` is the zero address
            InsufficientInitialLiquidity: First deposit too small for the lock
            InsufficientLiquidityMinted: Later deposit worth less than one share
        """
        if is_zero_address(to):
            raise InvalidRecipient("Cannot mint shares to the zero address")
        to = normalize_address(to)
        with self._operation():
            reserve0, reserve1 = self.reserve0, self.reserve1
            balance0 = self.ledger.balance_of(self.token0, self.address)
            balance1 = self.ledger.balance_of(self.token1, self.address)
            amount0 = (S(balance0) - S(reserve0)).value
            amount1 = (S(balance1) - S(reserve1)).value

            fee_on = self._mint_fee(reserve0, reserve1)
            if self.total_supply == 0:
                shares = initial_shares(amount0, amount1)
                self._mint_shares(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
            else:
                shares = proportional_shares(
                    amount0, amount1, reserve0, reserve1, self.total_supply
                )

            self._mint_shares(to, shares)
            self._update(balance0, balance1)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1

        logger.info(
            "pair_mint",
            pair=self.address,
            to=to,
            amount0=amount0,
            amount1=amount1,
            shares=shares,
        )
        return shares

    def burn(self, holder: str, shares: int, to: str | None = None) -> tuple[int, int]:
        """Redeem holder's shares for a pro-rata slice of both reserves.

        Args:
            holder: Account whose shares are burned
            shares: Number of shares to burn
            to: Recipient of the released tokens (defaults to holder)

        Returns:
            (amount0, amount1) sent to the recipient

        Raises:
            InsufficientShareBalance: Holder owns fewer shares, or holder is the lock
            InsufficientLiquidityBurned: Either output rounds down to zero
        """
        if is_zero_address(holder):
            raise InsufficientShareBalance("Locked minimum liquidity cannot be burned")
        holder = normalize_address(holder)
        recipient = holder if to is None else to
        if is_zero_address(recipient):
            raise InvalidRecipient("Cannot burn to the zero address")
        recipient = normalize_address(recipient)

        if shares < 0:
            raise InvalidAmount(f"Share amount cannot be negative: {shares}")

        with self._operation():
            owned = self._shares.get(holder, 0)
            if shares > owned:
                raise InsufficientShareBalance(f"{holder} holds {owned} shares, burning {shares}")
            reserve0, reserve1 = self.reserve0, self.reserve1

            fee_on = self._mint_fee(reserve0, reserve1)
            amount0, amount1 = burn_amounts(shares, reserve0, reserve1, self.total_supply)

            self._burn_shares(holder, shares)
            self.ledger.transfer(self.token0, self.address, recipient, amount0)
            self.ledger.transfer(self.token1, self.address, recipient, amount1)
            self._update((S(reserve0) - S(amount0)).value, (S(reserve1) - S(amount1)).value)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1

        logger.info(
            "pair_burn",
            pair=self.address,
            holder=holder,
            to=recipient,
            shares=shares,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    # --- Swaps -------------------------------------------------------------

    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
        callee: FlashSwapCallee | None = None,
    ) -> None:
        """Send out the requested amounts and settle against whatever was pushed in.

        Both outputs may be nonzero in one call. With a ``callee`` the outputs
        are transferred optimistically and the callee may supply the input
        before settlement (flash swap).

        Raises:
            InsufficientOutputAmount: Both outputs are zero
            InvalidRecipient: ``to`` is zero or one of the pair's tokens
            InsufficientOutputLiquidity: An output is not strictly below its reserve
            InsufficientInputAmount: Nothing was pushed into the pair
            KInvariantViolation: Fee-adjusted product fell below the prior product
        """
        if amount0_out < 0 or amount1_out < 0:
            raise InvalidAmount(f"Negative swap output: ({amount0_out}, {amount1_out})")
        if amount0_out == 0 and amount1_out == 0:
            raise InsufficientOutputAmount("Swap requests no output")
        if is_zero_address(to):
            raise InvalidRecipient("Cannot swap to the zero address")
        to = normalize_address(to)
        if to in (self.token0, self.token1):
            raise InvalidRecipient(f"Recipient {to} is a token of the pair")

        with self._operation():
            reserve0, reserve1 = self.reserve0, self.reserve1
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientOutputLiquidity(
                    f"Requested ({amount0_out}, {amount1_out}) "
                    f"from reserves ({reserve0}, {reserve1})"
                )

            self.ledger.transfer(self.token0, self.address, to, amount0_out)
            self.ledger.transfer(self.token1, self.address, to, amount1_out)
            if callee is not None:
                callee(self, amount0_out, amount1_out, data)

            balance0 = self.ledger.balance_of(self.token0, self.address)
            balance1 = self.ledger.balance_of(self.token1, self.address)
            amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (reserve1 - amount1_out), 0)
            if amount0_in == 0 and amount1_in == 0:
                raise InsufficientInputAmount("No input reached the pair")

            adjusted0 = S(balance0) * FEE_DENOMINATOR - S(amount0_in) * FEE_CHARGED
            adjusted1 = S(balance1) * FEE_DENOMINATOR - S(amount1_in) * FEE_CHARGED
            required = S(reserve0) * S(reserve1) * (FEE_DENOMINATOR**2)
            if adjusted0 * adjusted1 < required:
                logger.error(
                    "k_invariant_violation",
                    pair=self.address,
                    reserves=(reserve0, reserve1),
                    balances=(balance0, balance1),
                    amounts_in=(amount0_in, amount1_in),
                    amounts_out=(amount0_out, amount1_out),
                )
                raise KInvariantViolation(
                    f"Adjusted product {(adjusted0 * adjusted1).value} below {required.value}"
                )

            self._update(balance0, balance1)

        logger.info(
            "pair_swap",
            pair=self.address,
            to=to,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
        )

    def skim(self, to: str) -> tuple[int, int]:
        """Send any balance above the reserves to ``to``."""
        if is_zero_address(to):
            raise InvalidRecipient("Cannot skim to the zero address")
        with self._operation():
            excess0 = self.ledger.balance_of(self.token0, self.address) - self.reserve0
            excess1 = self.ledger.balance_of(self.token1, self.address) - self.reserve1
            self.ledger.transfer(self.token0, self.address, to, max(excess0, 0))
            self.ledger.transfer(self.token1, self.address, to, max(excess1, 0))
        return max(excess0, 0), max(excess1, 0)

    def sync(self) -> None:
        """Adopt the current ledger balances as the reserves."""
        with self._operation():
            self._update(
                self.ledger.balance_of(self.token0, self.address),
                self.ledger.balance_of(self.token1, self.address),
            )

    # --- Internals ---------------------------------------------------------

    @contextmanager
    def _operation(self) -> Iterator[None]:
        with atomic(self.ledger, [self]):
            if self._entered:
                raise Locked(f"Pair {self.address} re-entered")
            self._entered = True
            try:
                yield
            finally:
                self._entered = False

    def _update(self, balance0: int, balance1: int) -> None:
        self.reserve0 = balance0
        self.reserve1 = balance1
        logger.debug("pair_sync", pair=self.address, reserve0=balance0, reserve1=balance1)

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's share of fee growth since the last liquidity event."""
        fee_to = self.fee_source.fee_to if self.fee_source is not None else None
        fee_on = not is_zero_address(fee_to)
        if fee_on and fee_to is not None:
            if self.k_last != 0:
                root_k = (S(reserve0) * S(reserve1)).isqrt()
                root_k_last = S(self.k_last).isqrt()
                if root_k > root_k_last:
                    numerator = S(self.total_supply) * (root_k - root_k_last)
                    denominator = root_k * PROTOCOL_FEE_DIVISOR + root_k_last
                    shares = (numerator // denominator).value
                    if shares > 0:
                        self._mint_shares(normalize_address(fee_to), shares)
                        logger.info(
                            "protocol_fee_minted", pair=self.address, fee_to=fee_to, shares=shares
                        )
        elif self.k_last != 0:
            self.k_last = 0
        return fee_on
