"""Execute-time entry points: swaps along a path and liquidity add/remove.

Every entry point checks its deadline first, then validates the request,
then runs as one transaction over all pairs it touches. Amounts are
recomputed under the pair locks, so the slippage bounds are checked against
the reserves the swap actually settles on.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

import structlog

from dex.constants import NATIVE_TOKEN
from dex.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientOutputAmount,
    InvalidAmount,
    InvalidPath,
    InvalidRecipient,
    InvalidToken,
    PairExists,
)
from dex.liquidity.coordinator import LiquidityCoordinator
from dex.models.types import is_zero_address, normalize_address
from dex.pairs.pair import Pair
from dex.pairs.registry import PairRegistry
from dex.routing.quote import RouterQuoteEngine
from dex.tokens.wrapped import WrappedNative
from dex.transaction import atomic

logger = structlog.get_logger()

Clock = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


def output_amounts(pair: Pair, token_in: str, amount_out: int) -> tuple[int, int]:
    """Orient a hop's output to the pair's (amount0_out, amount1_out)."""
    if token_in == pair.token0:
        return 0, amount_out
    return amount_out, 0


class Router:
    """Routes swaps and liquidity requests from an account through the registry's pairs.

    ``sender`` is always the account whose tokens are spent. ``value`` on
    the native entry points is the native asset the sender offers.
    """

    def __init__(
        self,
        registry: PairRegistry,
        wrapped_native: WrappedNative,
        address: str,
        clock: Clock | None = None,
    ) -> None:
        """Initialize a router.

        Args:
            registry: Source of pairs for every path
            wrapped_native: Wrapper used for native-asset entry points
            address: Router's own custody account, used while unwrapping
            clock: Returns the current unix timestamp (defaults to wall clock)
        """
        self.registry = registry
        self.ledger = registry.ledger
        self.wrapped_native = wrapped_native
        self.address = normalize_address(address, validate=True)
        self.clock = clock or _wall_clock
        self.quotes = RouterQuoteEngine(registry)
        self.coordinator = LiquidityCoordinator(self.ledger)

    @property
    def wrapped(self) -> str:
        return self.wrapped_native.address

    # --- Validation --------------------------------------------------------

    def _ensure(self, deadline: int) -> None:
        now = self.clock()
        if deadline < now:
            logger.warning("request_expired", deadline=deadline, now=now)
            raise Expired(f"Deadline {deadline} passed at {now}")

    @staticmethod
    def _require_amount(amount: int, name: str) -> None:
        if amount <= 0:
            logger.warning("request_rejected", reason="invalid_amount", field=name, amount=amount)
            raise InvalidAmount(f"{name} must be positive: {amount}")

    @staticmethod
    def _require_recipient(to: str) -> str:
        if is_zero_address(to):
            logger.warning("request_rejected", reason="invalid_recipient")
            raise InvalidRecipient("Recipient cannot be the zero address")
        return normalize_address(to)

    @staticmethod
    def _require_token(token: str) -> str:
        if is_zero_address(token):
            logger.warning("request_rejected", reason="invalid_token")
            raise InvalidToken("Token cannot be the zero address")
        return normalize_address(token)

    def _prepare_path(
        self, path: Sequence[str], *, starts_native: bool = False, ends_native: bool = False
    ) -> tuple[list[str], list[Pair]]:
        tokens = self.quotes.validate_path(path)
        for token in tokens:
            self._require_token(token)
        if starts_native and tokens[0] != self.wrapped:
            logger.warning("request_rejected", reason="path_not_from_wrapped")
            raise InvalidPath(f"Path must start with wrapped native {self.wrapped}")
        if ends_native and tokens[-1] != self.wrapped:
            logger.warning("request_rejected", reason="path_not_to_wrapped")
            raise InvalidPath(f"Path must end with wrapped native {self.wrapped}")
        return tokens, self.quotes.pairs_for_path(tokens)

    # --- Swap execution ----------------------------------------------------

    def _swap(self, amounts: list[int], path: list[str], pairs: list[Pair], to: str) -> None:
        """Run each hop, sending intermediate outputs straight to the next pair.

        The first pair must already hold amounts[0] of path[0].
        """
        for i, pair in enumerate(pairs):
            amount0_out, amount1_out = output_amounts(pair, path[i], amounts[i + 1])
            recipient = pairs[i + 1].address if i < len(pairs) - 1 else to
            pair.swap(amount0_out, amount1_out, recipient)

    def _unwrap_to(self, to: str, amount: int) -> None:
        self.wrapped_native.withdraw(self.address, amount)
        self.ledger.transfer(NATIVE_TOKEN, self.address, to, amount)

    @contextmanager
    def _deposit_pair(self, token_a: str, token_b: str) -> Iterator[Pair]:
        """Yield the pair for a deposit, creating it if missing.

        A pair created here is unregistered again if the deposit fails.
        """
        pair = self.registry.get_pair(token_a, token_b)
        created = pair is None
        if pair is None:
            try:
                pair = self.registry.create_pair(token_a, token_b)
            except PairExists:
                pair = self.registry.require_pair(token_a, token_b)
                created = False
        try:
            yield pair
        except Exception:
            if created:
                self.registry.discard_unused(pair)
            raise

    def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
    ) -> list[int]:
        """Spend exactly amount_in of path[0]; receive at least amount_out_min of path[-1].

        Returns:
            Amounts at every point of the path
        """
        self._ensure(deadline)
        self._require_amount(amount_in, "amount_in")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_out(amount_in, tokens)
            if amounts[-1] < amount_out_min:
                raise InsufficientOutputAmount(
                    f"Output {amounts[-1]} below minimum {amount_out_min}"
                )
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, to)

        logger.info("swap_executed", kind="exact_in", path=tokens, amounts=amounts, to=to)
        return amounts

    def swap_tokens_for_exact_tokens(
        self,
        amount_out: int,
        amount_in_max: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
    ) -> list[int]:
        """Receive exactly amount_out of path[-1]; spend at most amount_in_max of path[0]."""
        self._ensure(deadline)
        self._require_amount(amount_out, "amount_out")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_in(amount_out, tokens)
            if amounts[0] > amount_in_max:
                raise ExcessiveInputAmount(f"Input {amounts[0]} above maximum {amount_in_max}")
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, to)

        logger.info("swap_executed", kind="exact_out", path=tokens, amounts=amounts, to=to)
        return amounts

    def swap_exact_native_for_tokens(
        self,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
        value: int,
    ) -> list[int]:
        """Spend exactly ``value`` native asset; path must start at the wrapper."""
        self._ensure(deadline)
        self._require_amount(value, "value")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path, starts_native=True)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_out(value, tokens)
            if amounts[-1] < amount_out_min:
                raise InsufficientOutputAmount(
                    f"Output {amounts[-1]} below minimum {amount_out_min}"
                )
            self.wrapped_native.deposit(sender, amounts[0])
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, to)

        logger.info("swap_executed", kind="exact_native_in", path=tokens, amounts=amounts, to=to)
        return amounts

    def swap_tokens_for_exact_native(
        self,
        amount_out: int,
        amount_in_max: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
    ) -> list[int]:
        """Receive exactly amount_out native asset; path must end at the wrapper."""
        self._ensure(deadline)
        self._require_amount(amount_out, "amount_out")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path, ends_native=True)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_in(amount_out, tokens)
            if amounts[0] > amount_in_max:
                raise ExcessiveInputAmount(f"Input {amounts[0]} above maximum {amount_in_max}")
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, self.address)
            self._unwrap_to(to, amounts[-1])

        logger.info("swap_executed", kind="exact_native_out", path=tokens, amounts=amounts, to=to)
        return amounts

    def swap_exact_tokens_for_native(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
    ) -> list[int]:
        """Spend exactly amount_in of path[0]; receive native asset for the final wrapper output."""
        self._ensure(deadline)
        self._require_amount(amount_in, "amount_in")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path, ends_native=True)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_out(amount_in, tokens)
            if amounts[-1] < amount_out_min:
                raise InsufficientOutputAmount(
                    f"Output {amounts[-1]} below minimum {amount_out_min}"
                )
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, self.address)
            self._unwrap_to(to, amounts[-1])

        logger.info(
            "swap_executed", kind="exact_in_native_out", path=tokens, amounts=amounts, to=to
        )
        return amounts

    def swap_native_for_exact_tokens(
        self,
        amount_out: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        sender: str,
        value: int,
    ) -> list[int]:
        """Receive exactly amount_out of path[-1] for at most ``value`` native asset.

        Only the required input is wrapped, so nothing needs refunding.
        """
        self._ensure(deadline)
        self._require_amount(amount_out, "amount_out")
        to = self._require_recipient(to)
        tokens, pairs = self._prepare_path(path, starts_native=True)

        with atomic(self.ledger, pairs):
            amounts = self.quotes.get_amounts_in(amount_out, tokens)
            if amounts[0] > value:
                raise ExcessiveInputAmount(f"Input {amounts[0]} above offered value {value}")
            self.wrapped_native.deposit(sender, amounts[0])
            self.ledger.transfer(tokens[0], sender, pairs[0].address, amounts[0])
            self._swap(amounts, tokens, pairs, to)

        logger.info(
            "swap_executed", kind="native_in_exact_out", path=tokens, amounts=amounts, to=to
        )
        return amounts

    # --- Liquidity ---------------------------------------------------------

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        sender: str,
    ) -> tuple[int, int, int]:
        """Deposit both tokens at the pair's ratio, creating the pair on first use.

        Returns:
            (amount_a, amount_b, shares)
        """
        self._ensure(deadline)
        token_a = self._require_token(token_a)
        token_b = self._require_token(token_b)
        self._require_amount(amount_a_desired, "amount_a_desired")
        self._require_amount(amount_b_desired, "amount_b_desired")
        to = self._require_recipient(to)

        with self._deposit_pair(token_a, token_b) as pair:
            return self.coordinator.add_liquidity(
                pair,
                token_a,
                amount_a_desired,
                amount_b_desired,
                amount_a_min,
                amount_b_min,
                sender,
                to,
            )

    def add_liquidity_native(
        self,
        token: str,
        amount_token_desired: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        sender: str,
        value: int,
    ) -> tuple[int, int, int]:
        """Deposit token against up to ``value`` native asset.

        The whole value is wrapped for the deposit and the unused part is
        unwrapped back to the sender in the same transaction.

        Returns:
            (amount_token, amount_native, shares)
        """
        self._ensure(deadline)
        token = self._require_token(token)
        self._require_amount(amount_token_desired, "amount_token_desired")
        self._require_amount(value, "value")
        to = self._require_recipient(to)

        with self._deposit_pair(token, self.wrapped) as pair, atomic(self.ledger, [pair]):
            self.wrapped_native.deposit(sender, value)
            amount_token, amount_native, shares = self.coordinator.add_liquidity(
                pair,
                token,
                amount_token_desired,
                value,
                amount_token_min,
                amount_native_min,
                sender,
                to,
            )
            self.wrapped_native.withdraw(sender, value - amount_native)

        return amount_token, amount_native, shares

    def remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        shares: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        sender: str,
    ) -> tuple[int, int]:
        """Burn sender's shares of the (token_a, token_b) pair.

        Returns:
            (amount_a, amount_b)
        """
        self._ensure(deadline)
        token_a = self._require_token(token_a)
        token_b = self._require_token(token_b)
        self._require_amount(shares, "shares")
        to = self._require_recipient(to)
        pair = self.registry.require_pair(token_a, token_b)
        return self.coordinator.remove_liquidity(
            pair, token_a, shares, amount_a_min, amount_b_min, sender, to
        )

    def remove_liquidity_native(
        self,
        token: str,
        shares: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        sender: str,
    ) -> tuple[int, int]:
        """Burn sender's shares of the (token, wrapper) pair and pay the wrapper side as native.

        Returns:
            (amount_token, amount_native)
        """
        self._ensure(deadline)
        self._require_amount(shares, "shares")
        token = self._require_token(token)
        to = self._require_recipient(to)
        pair = self.registry.require_pair(token, self.wrapped)
        with atomic(self.ledger, [pair]):
            amount_token, amount_native = self.coordinator.remove_liquidity(
                pair, token, shares, amount_token_min, amount_native_min, sender, self.address
            )
            self.ledger.transfer(token, self.address, to, amount_token)
            self._unwrap_to(to, amount_native)

        return amount_token, amount_native
