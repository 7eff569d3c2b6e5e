"""Constant product quote math.

Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)

The 997/1000 factor accounts for the 0.3% fee. All functions are pure and
raise instead of returning sentinel values, so a quote can never be
mistaken for a tradable amount.
"""

from __future__ import annotations

from dex.constants import FEE_DENOMINATOR, FEE_NUMERATOR
from dex.errors import (
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidAmount,
)
from dex.pairs.address import sort_tokens
from dex.safe_int import S


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Equivalent amount of B for amount_a of A at the current reserve ratio (no fee).

    Raises:
        InvalidAmount: If amount_a is zero
        InsufficientLiquidity: If either reserve is zero
    """
    if amount_a <= 0:
        raise InvalidAmount(f"Quote amount must be positive: {amount_a}")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"Empty reserves: ({reserve_a}, {reserve_b})")
    return (S(amount_a) * S(reserve_b) // S(reserve_a)).value


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Output of a single hop for an exact input, after the fee.

    Raises:
        InsufficientInputAmount: If amount_in is zero
        InsufficientLiquidity: If either reserve is zero
    """
    if amount_in <= 0:
        raise InsufficientInputAmount(f"Input amount must be positive: {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: ({reserve_in}, {reserve_out})")

    amount_in_with_fee = S(amount_in) * FEE_NUMERATOR
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * FEE_DENOMINATOR + amount_in_with_fee
    return (numerator // denominator).value


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Input a single hop needs to produce at least amount_out.

    Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

    The +1 covers floor rounding, so feeding the result back through
    get_amount_out always yields at least amount_out.

    Raises:
        InsufficientOutputAmount: If amount_out is zero
        InsufficientLiquidity: If either reserve is zero or amount_out >= reserve_out
    """
    if amount_out <= 0:
        raise InsufficientOutputAmount(f"Output amount must be positive: {amount_out}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"Empty reserves: ({reserve_in}, {reserve_out})")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"Output {amount_out} not below reserve {reserve_out}")

    numerator = S(reserve_in) * S(amount_out) * FEE_DENOMINATOR
    denominator = (S(reserve_out) - S(amount_out)) * FEE_NUMERATOR
    return ((numerator // denominator) + 1).value


__all__ = ["get_amount_in", "get_amount_out", "quote", "sort_tokens"]
