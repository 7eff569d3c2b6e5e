"""Liquidity provisioning against a single pair.

Computes deposit amounts that match the pair's current ratio, moves the
provider's tokens into the pair and settles the mint, or burns shares and
checks the released amounts, each as one all-or-nothing step.
"""

from __future__ import annotations

import structlog

from dex.errors import InsufficientAAmount, InsufficientBAmount
from dex.models.types import normalize_address
from dex.pairs.pair import Pair
from dex.routing.library import quote
from dex.tokens.ledger import TokenLedger
from dex.transaction import atomic

logger = structlog.get_logger()


def optimal_amounts(
    reserve_a: int,
    reserve_b: int,
    amount_a_desired: int,
    amount_b_desired: int,
    amount_a_min: int,
    amount_b_min: int,
) -> tuple[int, int]:
    """Largest deposit at the reserve ratio that fits within the desired amounts.

    An empty pair takes the desired amounts as they are, which sets its price.
    Otherwise all of A is used if the matching B fits, else all of B.

    Raises:
        InsufficientBAmount: Matching B is below amount_b_min
        InsufficientAAmount: Matching A exceeds amount_a_desired or is below amount_a_min
    """
    if reserve_a == 0 and reserve_b == 0:
        return amount_a_desired, amount_b_desired

    amount_b_optimal = quote(amount_a_desired, reserve_a, reserve_b)
    if amount_b_optimal <= amount_b_desired:
        if amount_b_optimal < amount_b_min:
            raise InsufficientBAmount(f"Optimal B {amount_b_optimal} below minimum {amount_b_min}")
        return amount_a_desired, amount_b_optimal

    amount_a_optimal = quote(amount_b_desired, reserve_b, reserve_a)
    if amount_a_optimal > amount_a_desired:
        raise InsufficientAAmount(f"Optimal A {amount_a_optimal} above desired {amount_a_desired}")
    if amount_a_optimal < amount_a_min:
        raise InsufficientAAmount(f"Optimal A {amount_a_optimal} below minimum {amount_a_min}")
    return amount_a_optimal, amount_b_desired


class LiquidityCoordinator:
    """Adds and removes liquidity for providers, with slippage minimums."""

    def __init__(self, ledger: TokenLedger) -> None:
        self.ledger = ledger

    def optimal_amounts(
        self,
        pair: Pair,
        token_a: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        """optimal_amounts() against the pair's current reserves, oriented to token_a."""
        reserve_a, reserve_b = pair.get_reserves_for(token_a)
        return optimal_amounts(
            reserve_a, reserve_b, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
        )

    def add_liquidity(
        self,
        pair: Pair,
        token_a: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        provider: str,
        to: str,
    ) -> tuple[int, int, int]:
        """Deposit the provider's tokens at the pair's ratio and mint shares to ``to``.

        Amounts are computed while holding the pair's lock, so the deposit
        always matches the reserves it is settled against.

        Returns:
            (amount_a, amount_b, shares)
        """
        token_a = normalize_address(token_a)
        token_b = pair.get_token_out(token_a)
        with atomic(self.ledger, [pair]):
            amount_a, amount_b = self.optimal_amounts(
                pair, token_a, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
            )
            self.ledger.transfer(token_a, provider, pair.address, amount_a)
            self.ledger.transfer(token_b, provider, pair.address, amount_b)
            shares = pair.mint(to)

        logger.info(
            "liquidity_added",
            pair=pair.address,
            provider=provider,
            amount_a=amount_a,
            amount_b=amount_b,
            shares=shares,
        )
        return amount_a, amount_b, shares

    def remove_liquidity(
        self,
        pair: Pair,
        token_a: str,
        shares: int,
        amount_a_min: int,
        amount_b_min: int,
        holder: str,
        to: str,
    ) -> tuple[int, int]:
        """Burn holder's shares and send both tokens to ``to``.

        The burn and the minimum checks form one transaction: if either
        released amount is below its minimum, the burn is undone.

        Returns:
            (amount_a, amount_b) in the caller's token order
        """
        token_a = normalize_address(token_a)
        with atomic(self.ledger, [pair]):
            amount0, amount1 = pair.burn(holder, shares, to)
            if token_a == pair.token0:
                amount_a, amount_b = amount0, amount1
            else:
                amount_a, amount_b = amount1, amount0
            if amount_a < amount_a_min:
                raise InsufficientAAmount(f"Released A {amount_a} below minimum {amount_a_min}")
            if amount_b < amount_b_min:
                raise InsufficientBAmount(f"Released B {amount_b} below minimum {amount_b_min}")

        logger.info(
            "liquidity_removed",
            pair=pair.address,
            holder=holder,
            shares=shares,
            amount_a=amount_a,
            amount_b=amount_b,
        )
        return amount_a, amount_b
