"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass

from .units import HEALTH_FACTOR_MAX


@dataclass(frozen=True)
class AssetConfig:
    """Risk configuration of a supported asset. Ratios are basis points."""

    ltv_ratio: int
    liquidation_threshold: int
    reserve_factor: int
    is_active: bool = True
    is_collateral: bool = True


@dataclass(frozen=True)
class PoolState:
    """Liquidity totals and current rates for one asset."""

    total_supplied: int = 0
    total_borrowed: int = 0
    utilization_rate: int = 0
    borrow_rate: int = 0
    supply_rate: int = 0
    last_update_timestamp: int = 0

    @property
    def available_liquidity(self) -> int:
        return self.total_supplied - self.total_borrowed


@dataclass(frozen=True)
class Position:
    """A user's balances in one asset. Missing positions read as all zeros."""

    supplied_amount: int = 0
    collateral_amount: int = 0
    debt_amount: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.supplied_amount or self.collateral_amount or self.debt_amount)


@dataclass(frozen=True)
class AssetBreakdown:
    """Valuation of one asset inside an account snapshot."""

    symbol: str
    price: int
    collateral_amount: int
    debt_amount: int
    collateral_usd: int
    debt_usd: int
    liquidation_threshold: int


@dataclass(frozen=True)
class AccountSnapshot:
    """Derived account view; never stored."""

    total_collateral_usd: int
    total_debt_usd: int
    ltv: int
    health_factor: int
    assets: tuple[AssetBreakdown, ...] = ()

    @property
    def has_debt(self) -> bool:
        return self.total_debt_usd > 0

    @property
    def health_factor_is_max(self) -> bool:
        return self.health_factor == HEALTH_FACTOR_MAX


# Types the persistent store knows how to encode.
RECORD_TYPES: dict[str, type] = {
    cls.__name__: cls for cls in (AssetConfig, PoolState, Position)
}
