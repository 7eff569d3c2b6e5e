"""Native asset wrapper (WETH-style)."""

from __future__ import annotations

from dex.constants import NATIVE_TOKEN
from dex.models.types import normalize_address
from dex.tokens.ledger import TokenLedger


class WrappedNative:
    """Wraps the native asset one-to-one into a ledger token.

    Deposited native funds sit in the wrapper's own custody, so the native
    supply held by the wrapper always equals the wrapper token supply.
    """

    def __init__(self, ledger: TokenLedger, address: str) -> None:
        self.ledger = ledger
        self.address = normalize_address(address, validate=True)

    def deposit(self, holder: str, amount: int) -> None:
        """Lock holder's native asset and credit the same amount of wrapper tokens."""
        self.ledger.transfer(NATIVE_TOKEN, holder, self.address, amount)
        self.ledger.credit(self.address, holder, amount)

    def withdraw(self, holder: str, amount: int) -> None:
        """Burn holder's wrapper tokens and release the same amount of native asset."""
        self.ledger.debit(self.address, holder, amount)
        self.ledger.transfer(NATIVE_TOKEN, self.address, holder, amount)
