"""Data models for the exchange core and its HTTP surface."""

from dex.models.api import (
    AmountsResponse,
    ErrorResponse,
    PairListResponse,
    PairResponse,
    PredictedPairResponse,
    QuoteAmountsInRequest,
    QuoteAmountsOutRequest,
)
from dex.models.types import (
    Address,
    Uint256,
    is_valid_address,
    is_zero_address,
    normalize_address,
)

__all__ = [
    "Address",
    "AmountsResponse",
    "ErrorResponse",
    "PairListResponse",
    "PairResponse",
    "PredictedPairResponse",
    "QuoteAmountsInRequest",
    "QuoteAmountsOutRequest",
    "Uint256",
    "is_valid_address",
    "is_zero_address",
    "normalize_address",
]
