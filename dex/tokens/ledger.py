"""In-memory token custody ledger.

The exchange core never owns token semantics; it only needs to know what a
pair holds and to move tokens in and out of custody. Every movement made
inside an ``atomic()`` block is journaled so the block can be undone as a
whole when an operation aborts.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from dex.errors import InsufficientBalance
from dex.models.types import normalize_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class Movement:
    """One journaled balance movement. ``None`` on a side means supply."""

    token: str
    source: str | None
    destination: str | None
    amount: int


class TokenLedger:
    """Balances of every token for every holder.

    Thread-safe for individual movements. Journals are per thread, so two
    threads rolling back concurrently only undo their own movements.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._balances: dict[str, dict[str, int]] = {}
        self._supply: dict[str, int] = {}
        self._local = threading.local()

    def balance_of(self, token: str, holder: str) -> int:
        """Balance of holder in token (0 if never seen)."""
        token = normalize_address(token)
        holder = normalize_address(holder)
        with self._lock:
            return self._balances.get(token, {}).get(holder, 0)

    def total_supply(self, token: str) -> int:
        """Total credited minus debited amount of token."""
        with self._lock:
            return self._supply.get(normalize_address(token), 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        """Move amount of token from sender to recipient.

        Raises:
            InsufficientBalance: If sender holds less than amount
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Transfer amount cannot be negative: {amount}")
        if amount == 0:
            return
        token = normalize_address(token)
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        with self._lock:
            available = self._balances.get(token, {}).get(sender, 0)
            if available < amount:
                raise InsufficientBalance(
                    f"{sender} holds {available} of {token}, needs {amount}"
                )
            self._apply(Movement(token, sender, recipient, amount))

    def credit(self, token: str, holder: str, amount: int) -> None:
        """Create amount of token in holder's balance."""
        if amount < 0:
            raise ValueError(f"Credit amount cannot be negative: {amount}")
        if amount == 0:
            return
        with self._lock:
            self._apply(Movement(normalize_address(token), None, normalize_address(holder), amount))

    def debit(self, token: str, holder: str, amount: int) -> None:
        """Destroy amount of token from holder's balance.

        Raises:
            InsufficientBalance: If holder holds less than amount
        """
        if amount < 0:
            raise ValueError(f"Debit amount cannot be negative: {amount}")
        if amount == 0:
            return
        token = normalize_address(token)
        holder = normalize_address(holder)
        with self._lock:
            available = self._balances.get(token, {}).get(holder, 0)
            if available < amount:
                raise InsufficientBalance(f"{holder} holds {available} of {token}, needs {amount}")
            self._apply(Movement(token, holder, None, amount))

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Journal movements made in this thread; undo them if the block raises.

        Nested blocks hand their journal to the enclosing block on success,
        so only the outermost block decides the final outcome.
        """
        journal: list[Movement] = []
        stack = self._journals()
        stack.append(journal)
        try:
            yield
        except BaseException:
            stack.pop()
            self._undo(journal)
            raise
        stack.pop()
        if stack:
            stack[-1].extend(journal)

    def _journals(self) -> list[list[Movement]]:
        stack = getattr(self._local, "journals", None)
        if stack is None:
            stack = []
            self._local.journals = stack
        return stack

    def _apply(self, movement: Movement) -> None:
        self._move(movement.token, movement.source, movement.destination, movement.amount)
        stack = self._journals()
        if stack:
            stack[-1].append(movement)

    def _move(self, token: str, source: str | None, destination: str | None, amount: int) -> None:
        balances = self._balances.setdefault(token, {})
        if source is None:
            self._supply[token] = self._supply.get(token, 0) + amount
        else:
            balances[source] = balances.get(source, 0) - amount
        if destination is None:
            self._supply[token] = self._supply.get(token, 0) - amount
        else:
            balances[destination] = balances.get(destination, 0) + amount

    def _undo(self, journal: list[Movement]) -> None:
        if not journal:
            return
        with self._lock:
            for movement in reversed(journal):
                self._move(movement.token, movement.destination, movement.source, movement.amount)
        logger.debug("ledger_rollback", movements=len(journal))
