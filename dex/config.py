"""Exchange configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dex.constants import (
    DEFAULT_FACTORY_ADDRESS,
    DEFAULT_INIT_CODE_HASH,
    DEFAULT_ROUTER_ADDRESS,
    DEFAULT_WRAPPED_NATIVE,
    ZERO_ADDRESS,
)
from dex.models.types import normalize_address


@dataclass(frozen=True)
class DexConfig:
    """Centralized configuration for an exchange instance.

    Attributes:
        factory_address: Identity of the pair registry, mixed into every
            derived pair address
        init_code_hash: 32-byte hex hash mixed into every derived pair address
        fee_to_setter: Account allowed to change the protocol fee recipient
        wrapped_native: Address of the native-asset wrapper token
        router_address: Custody account of the router for native unwrapping
    """

    factory_address: str = DEFAULT_FACTORY_ADDRESS
    init_code_hash: str = DEFAULT_INIT_CODE_HASH
    fee_to_setter: str = ZERO_ADDRESS
    wrapped_native: str = DEFAULT_WRAPPED_NATIVE
    router_address: str = DEFAULT_ROUTER_ADDRESS

    @classmethod
    def from_env(cls) -> DexConfig:
        """Build a config from DEX_* environment variables, falling back to defaults."""
        return cls(
            factory_address=normalize_address(
                os.environ.get("DEX_FACTORY_ADDRESS", DEFAULT_FACTORY_ADDRESS), validate=True
            ),
            init_code_hash=os.environ.get("DEX_INIT_CODE_HASH", DEFAULT_INIT_CODE_HASH).lower(),
            fee_to_setter=normalize_address(
                os.environ.get("DEX_FEE_TO_SETTER", ZERO_ADDRESS), validate=True
            ),
            wrapped_native=normalize_address(
                os.environ.get("DEX_WRAPPED_NATIVE", DEFAULT_WRAPPED_NATIVE), validate=True
            ),
            router_address=normalize_address(
                os.environ.get("DEX_ROUTER_ADDRESS", DEFAULT_ROUTER_ADDRESS), validate=True
            ),
        )


# Default configuration instance
DEFAULT_DEX_CONFIG = DexConfig()
