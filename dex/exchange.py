"""Exchange wiring: one ledger, one registry, and the engines built on them."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import structlog

from dex.config import DexConfig
from dex.liquidity.coordinator import LiquidityCoordinator
from dex.pairs.registry import PairRegistry
from dex.routing.quote import RouterQuoteEngine
from dex.routing.router import Clock, Router
from dex.tokens.ledger import TokenLedger
from dex.tokens.wrapped import WrappedNative

logger = structlog.get_logger()


@dataclass
class Exchange:
    """A complete exchange instance sharing one token ledger."""

    config: DexConfig
    ledger: TokenLedger
    wrapped_native: WrappedNative
    registry: PairRegistry
    quotes: RouterQuoteEngine
    coordinator: LiquidityCoordinator
    router: Router

    @classmethod
    def create(cls, config: DexConfig | None = None, clock: Clock | None = None) -> Exchange:
        """Build an empty exchange from config (environment when omitted)."""
        config = config or DexConfig.from_env()
        ledger = TokenLedger()
        wrapped_native = WrappedNative(ledger, config.wrapped_native)
        registry = PairRegistry(ledger, config)
        router = Router(registry, wrapped_native, config.router_address, clock=clock)
        logger.info(
            "exchange_created",
            factory=registry.factory_address,
            wrapped_native=wrapped_native.address,
        )
        return cls(
            config=config,
            ledger=ledger,
            wrapped_native=wrapped_native,
            registry=registry,
            quotes=router.quotes,
            coordinator=router.coordinator,
            router=router,
        )


_default_exchange: Exchange | None = None
_default_lock = threading.Lock()


def get_default_exchange() -> Exchange:
    """Process-wide exchange, created from the environment on first use."""
    global _default_exchange
    with _default_lock:
        if _default_exchange is None:
            _default_exchange = Exchange.create()
        return _default_exchange
