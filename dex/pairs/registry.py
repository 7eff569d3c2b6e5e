"""Pair registry (factory).

Maps every unordered token pair to exactly one canonical Pair. Pairs are
created once and never replaced. Only a pair left unused by the failed call
that created it is removed again. The registry also owns the
protocol fee settings that every pair consults on liquidity events.
"""

from __future__ import annotations

import threading

import structlog

from dex.config import DEFAULT_DEX_CONFIG, DexConfig
from dex.errors import Forbidden, PairExists, PairNotFound
from dex.models.types import is_zero_address, normalize_address
from dex.pairs.address import predict_pair_address, sort_tokens
from dex.pairs.pair import Pair
from dex.tokens.ledger import TokenLedger

logger = structlog.get_logger()


class PairRegistry:
    """Registry of canonical pairs keyed by unordered token pair.

    Lookups are symmetric: the key is a frozenset of the two normalized
    token addresses, so (A, B) and (B, A) resolve to the same entry.
    """

    def __init__(self, ledger: TokenLedger, config: DexConfig = DEFAULT_DEX_CONFIG) -> None:
        """Initialize an empty registry.

        Args:
            ledger: Token ledger every pair keeps custody in
            config: Registry identity, init code hash and initial fee setter
        """
        self.ledger = ledger
        self.factory_address = normalize_address(config.factory_address, validate=True)
        self.init_code_hash = config.init_code_hash
        self._fee_to: str | None = None
        self._fee_to_setter = normalize_address(config.fee_to_setter)
        self._pairs: dict[frozenset[str], Pair] = {}
        self._all_pairs: list[Pair] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._all_pairs)

    @property
    def all_pairs_length(self) -> int:
        """Number of pairs ever created."""
        return len(self._all_pairs)

    def all_pairs(self) -> list[Pair]:
        """All pairs in creation order."""
        with self._lock:
            return list(self._all_pairs)

    def pair_at(self, index: int) -> Pair:
        """Pair by creation index."""
        return self._all_pairs[index]

    def predict_pair_address(self, token_a: str, token_b: str) -> str:
        """Address the pair for (token_a, token_b) has or will have."""
        return predict_pair_address(self.factory_address, token_a, token_b, self.init_code_hash)

    def create_pair(self, token_a: str, token_b: str) -> Pair:
        """Create the canonical pair for an unordered token pair.

        Raises:
            IdenticalTokens: If token_a == token_b
            ZeroToken: If either token is the zero address
            PairExists: If a pair already exists in either order
        """
        token0, token1 = sort_tokens(token_a, token_b)
        key = frozenset((token0, token1))
        with self._lock:
            if key in self._pairs:
                raise PairExists(f"Pair already exists for {token0}/{token1}")
            pair = Pair(
                address=self.predict_pair_address(token0, token1),
                token0=token0,
                token1=token1,
                ledger=self.ledger,
                fee_source=self,
            )
            self._pairs[key] = pair
            self._all_pairs.append(pair)
            count = len(self._all_pairs)

        logger.info(
            "pair_created",
            token0=token0,
            token1=token1,
            pair=pair.address,
            all_pairs_length=count,
        )
        return pair

    def get_pair(self, token_a: str, token_b: str) -> Pair | None:
        """Symmetric lookup. Returns None if no pair exists."""
        key = frozenset((normalize_address(token_a), normalize_address(token_b)))
        return self._pairs.get(key)

    def require_pair(self, token_a: str, token_b: str) -> Pair:
        """Symmetric lookup that fails when the pair is missing.

        Raises:
            PairNotFound: If no pair exists for the tokens
        """
        pair = self.get_pair(token_a, token_b)
        if pair is None:
            raise PairNotFound(f"No pair for {token_a}/{token_b}")
        return pair

    def get_or_create_pair(self, token_a: str, token_b: str) -> Pair:
        """Return the existing pair, creating it first if necessary."""
        pair = self.get_pair(token_a, token_b)
        if pair is not None:
            return pair
        try:
            return self.create_pair(token_a, token_b)
        except PairExists:
            # Lost a creation race; the winner's pair is canonical
            return self.require_pair(token_a, token_b)

    def discard_unused(self, pair: Pair) -> None:
        """Unregister a pair whose creating call failed.

        A pair with outstanding shares is never removed.
        """
        key = frozenset((pair.token0, pair.token1))
        with self._lock:
            if pair.total_supply or self._pairs.get(key) is not pair:
                return
            del self._pairs[key]
            self._all_pairs.remove(pair)
            count = len(self._all_pairs)

        logger.info("pair_discarded", pair=pair.address, all_pairs_length=count)

    # --- Protocol fee ------------------------------------------------------

    @property
    def fee_to(self) -> str | None:
        """Protocol fee recipient, or None when the protocol fee is off."""
        return self._fee_to

    @property
    def fee_to_setter(self) -> str:
        return self._fee_to_setter

    def set_fee_to(self, caller: str, recipient: str | None) -> None:
        """Set (or clear, with None/zero) the protocol fee recipient.

        Raises:
            Forbidden: If caller is not the fee setter
        """
        self._require_setter(caller)
        self._fee_to = None if is_zero_address(recipient) else normalize_address(recipient or "")
        logger.info("fee_to_updated", fee_to=self._fee_to)

    def set_fee_to_setter(self, caller: str, new_setter: str) -> None:
        """Hand the fee setter role to another account.

        Raises:
            Forbidden: If caller is not the fee setter
        """
        self._require_setter(caller)
        self._fee_to_setter = normalize_address(new_setter)
        logger.info("fee_to_setter_updated", fee_to_setter=self._fee_to_setter)

    def _require_setter(self, caller: str) -> None:
        if is_zero_address(caller) or normalize_address(caller) != self._fee_to_setter:
            raise Forbidden(f"{caller} is not the fee setter")
