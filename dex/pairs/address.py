"""Deterministic pair identities.

A pair's address depends only on the registry identity, the two tokens and
the init code hash, so callers can compute it before the pair exists.
"""

from __future__ import annotations

from eth_abi.packed import encode_packed
from eth_utils import keccak

from dex.errors import IdenticalTokens, InvalidToken, ZeroToken
from dex.models.types import is_valid_address, is_zero_address, normalize_address


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return the two tokens in canonical (ascending byte) order.

    Raises:
        IdenticalTokens: If both tokens are the same
        ZeroToken: If either token is the zero address
        InvalidToken: If either token is not a 20-byte hex address
    """
    if is_zero_address(token_a) or is_zero_address(token_b):
        raise ZeroToken("Token cannot be the zero address")
    token_a = normalize_address(token_a)
    token_b = normalize_address(token_b)
    for token in (token_a, token_b):
        if not is_valid_address(token):
            raise InvalidToken(f"Invalid token address: {token}")
    if token_a == token_b:
        raise IdenticalTokens(f"Identical tokens: {token_a}")
    # Lowercase hex of equal length sorts like the underlying bytes
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


def pair_salt(token0: str, token1: str) -> bytes:
    """keccak256 of the packed, already sorted token pair."""
    return keccak(
        encode_packed(
            ["address", "address"],
            [bytes.fromhex(token0[2:]), bytes.fromhex(token1[2:])],
        )
    )


def predict_pair_address(
    factory: str,
    token_a: str,
    token_b: str,
    init_code_hash: str,
) -> str:
    """Derive the pair address for an unordered token pair.

    Formula: keccak256(0xff ++ factory ++ salt ++ init_code_hash)[12:]

    Args:
        factory: Registry identity (20-byte hex address)
        token_a: Either token of the pair
        token_b: The other token
        init_code_hash: 32-byte hex hash

    Returns:
        Lowercase 0x-prefixed address
    """
    token0, token1 = sort_tokens(token_a, token_b)
    factory_bytes = bytes.fromhex(normalize_address(factory, validate=True)[2:])
    code_hash = bytes.fromhex(init_code_hash.removeprefix("0x"))
    if len(code_hash) != 32:
        raise ValueError(f"init_code_hash must be 32 bytes, got {len(code_hash)}")

    digest = keccak(b"\xff" + factory_bytes + pair_salt(token0, token1) + code_hash)
    return "0x" + digest[12:].hex()
