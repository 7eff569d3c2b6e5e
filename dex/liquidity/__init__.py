"""Liquidity provisioning."""

from dex.liquidity.coordinator import LiquidityCoordinator, optimal_amounts

__all__ = ["LiquidityCoordinator", "optimal_amounts"]
