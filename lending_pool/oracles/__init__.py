"""Price oracle implementations."""
from .memory import InMemoryPriceOracle
from .pyth import PythPriceFeed, to_fixed_price

__all__ = ["InMemoryPriceOracle", "PythPriceFeed", "to_fixed_price"]
