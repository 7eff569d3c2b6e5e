"""Pairs, their deterministic identities, and the registry that owns them."""

from dex.pairs.address import predict_pair_address, sort_tokens
from dex.pairs.pair import (
    FlashSwapCallee,
    Pair,
    PairSnapshot,
    burn_amounts,
    initial_shares,
    proportional_shares,
)
from dex.pairs.registry import PairRegistry

__all__ = [
    "FlashSwapCallee",
    "Pair",
    "PairRegistry",
    "PairSnapshot",
    "burn_amounts",
    "initial_shares",
    "predict_pair_address",
    "proportional_shares",
    "sort_tokens",
]
