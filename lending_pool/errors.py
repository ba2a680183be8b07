"""Error taxonomy — every failure aborts the whole operation."""
from __future__ import annotations


class LendingPoolError(Exception):
    """Base class for all pool, oracle and receipt-ledger failures."""


class AlreadyInitialized(LendingPoolError):
    pass


class NotInitialized(LendingPoolError):
    pass


class Unauthorized(LendingPoolError):
    """Caller is not the admin, bridge authority or lending pool identity."""


class AssetNotConfigured(LendingPoolError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Asset not configured: {symbol}")
        self.symbol = symbol


class AssetInactive(LendingPoolError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Asset not active: {symbol}")
        self.symbol = symbol


class AssetNotCollateralEligible(LendingPoolError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Asset cannot be used as collateral: {symbol}")
        self.symbol = symbol


class InvalidAmount(LendingPoolError):
    def __init__(self, amount: int) -> None:
        super().__init__(f"Amount must be positive, got {amount}")
        self.amount = amount


class AmountTooSmall(LendingPoolError):
    """The amount is worth less than one receipt share at the current rate."""

    def __init__(self, symbol: str, amount: int) -> None:
        super().__init__(f"Amount {amount} {symbol} is below one receipt share")
        self.symbol = symbol
        self.amount = amount


class InvalidConfiguration(LendingPoolError):
    pass


class InsufficientLiquidity(LendingPoolError):
    pass


class InsufficientBalance(LendingPoolError):
    """A user tried to withdraw or burn more than they own."""


class InsufficientCollateral(LendingPoolError):
    pass


class LiquidationRisk(InsufficientCollateral):
    """The operation would push the health factor below 1.0."""


class PriceUnavailable(LendingPoolError):
    pass


class PriceNotSet(PriceUnavailable):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Price not set for asset: {symbol}")
        self.symbol = symbol


class PriceStale(LendingPoolError):
    def __init__(self, symbol: str, max_age: int) -> None:
        super().__init__(f"Price for {symbol} older than {max_age}s")
        self.symbol = symbol
        self.max_age = max_age
