"""Pydantic models for the HTTP read/quote surface."""

from pydantic import BaseModel, Field

from dex.models.types import Address, Uint256


class QuoteAmountsOutRequest(BaseModel):
    """Quote the amounts along a path for an exact input."""

    amount_in: Uint256 = Field(alias="amountIn", description="Exact input of path[0]")
    path: list[Address] = Field(min_length=2, description="Token path, input first")

    model_config = {"populate_by_name": True}


class QuoteAmountsInRequest(BaseModel):
    """Quote the amounts along a path for an exact final output."""

    amount_out: Uint256 = Field(alias="amountOut", description="Exact output of path[-1]")
    path: list[Address] = Field(min_length=2, description="Token path, input first")

    model_config = {"populate_by_name": True}


class AmountsResponse(BaseModel):
    """Amounts at every point of a path."""

    path: list[Address]
    amounts: list[Uint256]


class PairResponse(BaseModel):
    """Public state of one pair."""

    address: Address
    token0: Address
    token1: Address
    reserve0: Uint256
    reserve1: Uint256
    total_supply: Uint256 = Field(alias="totalSupply")
    k_last: Uint256 = Field(alias="kLast")

    model_config = {"populate_by_name": True}


class PairListResponse(BaseModel):
    """All pairs in creation order."""

    pairs: list[PairResponse]
    count: int


class PredictedPairResponse(BaseModel):
    """Derived address of a pair, whether or not it exists yet."""

    token0: Address
    token1: Address
    address: Address
    exists: bool


class ErrorResponse(BaseModel):
    """Body of every exchange error response."""

    error: str = Field(description="Stable error kind, e.g. InsufficientLiquidity")
    detail: str
