"""Error taxonomy for the exchange core.

Every error aborts the enclosing operation and rolls back any state it
touched. ``kind`` is the stable name a caller layer should surface.
"""


class DexError(Exception):
    """Base error for exchange operations."""

    @property
    def kind(self) -> str:
        return type(self).__name__


# --- Pair identity -----------------------------------------------------------


class PairIdentityError(DexError):
    """Base error for pair identity problems."""

    pass


class IdenticalTokens(PairIdentityError):
    """Both sides of a pair are the same token."""

    pass


class ZeroToken(PairIdentityError):
    """A token identity is the zero address."""

    pass


class PairExists(PairIdentityError):
    """A pair already exists for the unordered token pair."""

    pass


class PairNotFound(PairIdentityError):
    """No pair is registered for a hop of the path."""

    pass


# --- Reserve / liquidity state ----------------------------------------------


class LiquidityStateError(DexError):
    """Base error for arithmetic and reserve-state failures."""

    pass


class InsufficientLiquidity(LiquidityStateError):
    """Reserves are zero or too small for the request."""

    pass


class InsufficientInitialLiquidity(LiquidityStateError):
    """First deposit does not exceed the minimum liquidity lock."""

    pass


class InsufficientLiquidityMinted(LiquidityStateError):
    """Deposit is too small to mint a single share."""

    pass


class InsufficientLiquidityBurned(LiquidityStateError):
    """Burn would return zero of one of the tokens."""

    pass


class InsufficientOutputLiquidity(LiquidityStateError):
    """Requested swap output is not strictly below the reserve."""

    pass


class InsufficientInputAmount(LiquidityStateError):
    """No input reached the pair, or a quote was asked for zero input."""

    pass


class InsufficientShareBalance(LiquidityStateError):
    """Holder does not own enough liquidity shares."""

    pass


# --- Integrity ---------------------------------------------------------------


class IntegrityError(DexError):
    """Base error for invariant violations."""

    pass


class KInvariantViolation(IntegrityError):
    """Fee-adjusted constant product decreased across a swap."""

    pass


# --- Caller input ------------------------------------------------------------


class ValidationError(DexError):
    """Base error for rejected caller input."""

    pass


class Expired(ValidationError):
    """Deadline is in the past."""

    pass


class InvalidPath(ValidationError):
    """Path is too short or has the native wrapper at the wrong end."""

    pass


class InvalidToken(ValidationError):
    """Token parameter is missing or the zero address."""

    pass


class InvalidAmount(ValidationError):
    """Amount parameter is zero."""

    pass


class InvalidRecipient(ValidationError):
    """Recipient is the zero address or one of the pair's tokens."""

    pass


class InsufficientAAmount(ValidationError):
    """Amount of token A is below the caller's minimum."""

    pass


class InsufficientBAmount(ValidationError):
    """Amount of token B is below the caller's minimum."""

    pass


class InsufficientOutputAmount(ValidationError):
    """Final output is below the caller's minimum, or no output was requested."""

    pass


class ExcessiveInputAmount(ValidationError):
    """Required input exceeds the caller's maximum."""

    pass


# --- Collaborators -----------------------------------------------------------


class TransferFailed(DexError):
    """Token ledger refused a transfer."""

    pass


class InsufficientBalance(TransferFailed):
    """Sender does not hold enough of the token."""

    pass


class Forbidden(DexError):
    """Caller is not allowed to change fee settings."""

    pass


class Locked(IntegrityError):
    """Pair was re-entered from inside one of its own operations."""

    pass
