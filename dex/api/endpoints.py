"""API endpoints for reading pairs and quoting paths."""

import structlog
from fastapi import APIRouter, Depends

from dex.exchange import Exchange, get_default_exchange
from dex.models.api import (
    AmountsResponse,
    PairListResponse,
    PairResponse,
    PredictedPairResponse,
    QuoteAmountsInRequest,
    QuoteAmountsOutRequest,
)
from dex.pairs.address import sort_tokens
from dex.pairs.pair import Pair

logger = structlog.get_logger()

router = APIRouter()


def get_exchange() -> Exchange:
    """Dependency provider for the exchange instance.

    Override this in tests to inject a seeded exchange:
        app.dependency_overrides[get_exchange] = lambda: exchange
    """
    return get_default_exchange()


def _pair_response(pair: Pair) -> PairResponse:
    reserve0, reserve1 = pair.get_reserves()
    return PairResponse(
        address=pair.address,
        token0=pair.token0,
        token1=pair.token1,
        reserve0=reserve0,
        reserve1=reserve1,
        total_supply=pair.total_supply,
        k_last=pair.k_last,
    )


@router.get("/pairs")
async def list_pairs(exchange: Exchange = Depends(get_exchange)) -> PairListResponse:
    """All pairs in creation order."""
    pairs = [_pair_response(pair) for pair in exchange.registry.all_pairs()]
    return PairListResponse(pairs=pairs, count=len(pairs))


@router.get("/pairs/{token_a}/{token_b}")
async def get_pair(
    token_a: str, token_b: str, exchange: Exchange = Depends(get_exchange)
) -> PairResponse:
    """One pair by its two tokens, in either order (404 when absent)."""
    return _pair_response(exchange.registry.require_pair(token_a, token_b))


@router.get("/pairs/{token_a}/{token_b}/predict")
async def predict_pair(
    token_a: str, token_b: str, exchange: Exchange = Depends(get_exchange)
) -> PredictedPairResponse:
    """Derived pair address, available before the pair is created."""
    token0, token1 = sort_tokens(token_a, token_b)
    return PredictedPairResponse(
        token0=token0,
        token1=token1,
        address=exchange.registry.predict_pair_address(token0, token1),
        exists=exchange.registry.get_pair(token0, token1) is not None,
    )


@router.post("/quote/amounts-out")
async def quote_amounts_out(
    request: QuoteAmountsOutRequest, exchange: Exchange = Depends(get_exchange)
) -> AmountsResponse:
    """Amounts along the path for an exact input."""
    amounts = exchange.quotes.get_amounts_out(int(request.amount_in), request.path)
    logger.info("quote_served", kind="amounts_out", path=request.path, amounts=amounts)
    return AmountsResponse(path=request.path, amounts=amounts)


@router.post("/quote/amounts-in")
async def quote_amounts_in(
    request: QuoteAmountsInRequest, exchange: Exchange = Depends(get_exchange)
) -> AmountsResponse:
    """Amounts along the path for an exact final output."""
    amounts = exchange.quotes.get_amounts_in(int(request.amount_out), request.path)
    logger.info("quote_served", kind="amounts_in", path=request.path, amounts=amounts)
    return AmountsResponse(path=request.path, amounts=amounts)
