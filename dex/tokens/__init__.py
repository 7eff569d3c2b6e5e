"""Token custody collaborators."""

from dex.tokens.ledger import Movement, TokenLedger
from dex.tokens.wrapped import WrappedNative

__all__ = ["Movement", "TokenLedger", "WrappedNative"]
