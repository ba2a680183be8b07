"""Price oracle protocol — USD price feed abstraction."""
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for pricing assets in 7-decimal fixed-point USD.

    ``get_price`` raises ``PriceNotSet`` for unknown assets.
    """

    def get_price(self, symbol: str) -> int: ...

    def is_price_fresh(self, symbol: str, max_age: int) -> bool: ...
