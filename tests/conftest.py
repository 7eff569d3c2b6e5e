"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from dex.api.endpoints import get_exchange
from dex.api.main import app
from dex.exchange import Exchange
from dex.pairs.pair import Pair
from dex.pairs.registry import PairRegistry
from dex.routing.router import Router
from dex.tokens.ledger import TokenLedger
from tests.helpers import DAI, USDC, WBTC, make_exchange, seed_pair


@pytest.fixture
def exchange() -> Exchange:
    """Empty exchange with the clock fixed at NOW."""
    return make_exchange()


@pytest.fixture
def ledger(exchange: Exchange) -> TokenLedger:
    return exchange.ledger


@pytest.fixture
def registry(exchange: Exchange) -> PairRegistry:
    return exchange.registry


@pytest.fixture
def router(exchange: Exchange) -> Router:
    return exchange.router


@pytest.fixture
def pair(exchange: Exchange) -> Pair:
    """Empty DAI/USDC pair."""
    return exchange.registry.create_pair(DAI, USDC)


@pytest.fixture
def seeded_pair(exchange: Exchange) -> Pair:
    """DAI/USDC pair with reserves (1_000_000, 1_000_000)."""
    return seed_pair(exchange, DAI, USDC, 1_000_000, 1_000_000)


@pytest.fixture
def seeded_path(exchange: Exchange) -> list[Pair]:
    """WBTC/DAI and DAI/USDC pairs, each with reserves (1_000_000, 1_000_000)."""
    return [
        seed_pair(exchange, WBTC, DAI, 1_000_000, 1_000_000),
        seed_pair(exchange, DAI, USDC, 1_000_000, 1_000_000),
    ]


@pytest.fixture
def client(exchange: Exchange) -> Iterator[TestClient]:
    """API test client bound to the test exchange."""
    app.dependency_overrides[get_exchange] = lambda: exchange
    yield TestClient(app)
    app.dependency_overrides.clear()
