"""Multi-hop quoting over registered pairs."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from dex.errors import InvalidPath
from dex.models.types import normalize_address
from dex.pairs.pair import Pair
from dex.pairs.registry import PairRegistry
from dex.routing import library

logger = structlog.get_logger()


class RouterQuoteEngine:
    """Computes amounts along a token path from current pair reserves.

    Stateless apart from reading reserves. A quote is a snapshot: reserves
    may move before execution, so execute-time callers recompute amounts
    while holding the pair locks.
    """

    def __init__(self, registry: PairRegistry) -> None:
        self.registry = registry

    # Single-hop math, exposed for callers that hold reserves already
    quote = staticmethod(library.quote)
    get_amount_out = staticmethod(library.get_amount_out)
    get_amount_in = staticmethod(library.get_amount_in)

    def validate_path(self, path: Sequence[str]) -> list[str]:
        """Normalize a path and check it has at least one hop.

        Raises:
            InvalidPath: If the path has fewer than two tokens
        """
        if len(path) < 2:
            raise InvalidPath(f"Path needs at least 2 tokens, got {len(path)}")
        return [normalize_address(token) for token in path]

    def pairs_for_path(self, path: Sequence[str]) -> list[Pair]:
        """The pair for every hop of the path, in hop order.

        Raises:
            InvalidPath: If the path is too short
            PairNotFound: If any hop has no registered pair
        """
        tokens = self.validate_path(path)
        return [
            self.registry.require_pair(token_in, token_out)
            for token_in, token_out in zip(tokens, tokens[1:])
        ]

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> list[int]:
        """Amounts at every point of the path for an exact input.

        Returns:
            [amount_in, hop1_out, ..., final_out]
        """
        tokens = self.validate_path(path)
        pairs = self.pairs_for_path(tokens)
        amounts = [amount_in]
        for i, pair in enumerate(pairs):
            reserve_in, reserve_out = pair.get_reserves_for(tokens[i])
            amounts.append(library.get_amount_out(amounts[i], reserve_in, reserve_out))

        logger.debug("quote_amounts_out", path=tokens, amounts=amounts)
        return amounts

    def get_amounts_in(self, amount_out: int, path: Sequence[str]) -> list[int]:
        """Amounts at every point of the path for an exact final output.

        Walks the path backwards from the last hop.

        Returns:
            [required_in, ..., amount_out]
        """
        tokens = self.validate_path(path)
        pairs = self.pairs_for_path(tokens)
        amounts = [0] * len(tokens)
        amounts[-1] = amount_out
        for i in range(len(pairs) - 1, -1, -1):
            reserve_in, reserve_out = pairs[i].get_reserves_for(tokens[i])
            amounts[i] = library.get_amount_in(amounts[i + 1], reserve_in, reserve_out)

        logger.debug("quote_amounts_in", path=tokens, amounts=amounts)
        return amounts
