"""Test helpers module for shared test utilities.

- constants: Token and account addresses, fixed clock
- factories: Exchange and pair builders
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    DAI,
    DEADLINE,
    FEE_RECIPIENT,
    FEE_SETTER,
    LP,
    NOW,
    ROUTER,
    USDC,
    WBTC,
    WRAPPED,
)
from tests.helpers.factories import (
    fund,
    make_exchange,
    seed_native_pair,
    seed_pair,
    share_sum,
)

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "DAI",
    "DEADLINE",
    "FEE_RECIPIENT",
    "FEE_SETTER",
    "LP",
    "NOW",
    "ROUTER",
    "USDC",
    "WBTC",
    "WRAPPED",
    # Factories
    "fund",
    "make_exchange",
    "seed_native_pair",
    "seed_pair",
    "share_sum",
]
