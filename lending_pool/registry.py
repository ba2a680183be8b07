"""Asset registry — risk configuration and pool totals per asset."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from .errors import AssetNotConfigured, InvalidConfiguration
from .interfaces.state_store import StateStore
from .models import AssetConfig, PoolState
from .rates import InterestRateModel
from .units import (
    INITIAL_BORROW_RATE,
    INITIAL_SUPPLY_RATE,
    MAX_LIQUIDATION_THRESHOLD,
    MAX_LTV_RATIO,
    MAX_RESERVE_FACTOR,
)

logger = logging.getLogger(__name__)


def validate_risk_params(ltv_ratio: int, liquidation_threshold: int, reserve_factor: int) -> None:
    """Raise ``InvalidConfiguration`` when a ratio is outside its bounds."""
    bounds = (
        ("ltv_ratio", ltv_ratio, MAX_LTV_RATIO),
        ("liquidation_threshold", liquidation_threshold, MAX_LIQUIDATION_THRESHOLD),
        ("reserve_factor", reserve_factor, MAX_RESERVE_FACTOR),
    )
    for name, value, limit in bounds:
        if not 0 <= value <= limit:
            raise InvalidConfiguration(f"{name} must be within 0..{limit}, got {value}")


class AssetRegistry:
    """Owns ``AssetConfig`` and ``PoolState`` records in the state store."""

    def __init__(
        self,
        store: StateStore,
        rate_model: InterestRateModel,
        clock: Callable[[], int],
    ) -> None:
        self._store = store
        self._rate_model = rate_model
        self._clock = clock

    @staticmethod
    def _asset_key(symbol: str) -> tuple[str, str]:
        return ("asset", symbol)

    @staticmethod
    def _pool_key(symbol: str) -> tuple[str, str]:
        return ("pool", symbol)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        symbol: str,
        ltv_ratio: int,
        liquidation_threshold: int,
        reserve_factor: int,
    ) -> AssetConfig:
        """Create or overwrite an asset, resetting its pool to zero totals.

        User positions in the asset are not touched, so suppliers from before
        the reset can still withdraw against the new pool.
        """
        validate_risk_params(ltv_ratio, liquidation_threshold, reserve_factor)

        previous = self._store.get(self._pool_key(symbol))
        if previous is not None and (previous.total_supplied or previous.total_borrowed):
            logger.warning(
                "Re-configuring %s discards pool totals (supplied=%d, borrowed=%d); "
                "existing user positions are kept and may withdraw liquidity "
                "supplied after the reset",
                symbol,
                previous.total_supplied,
                previous.total_borrowed,
            )

        config = AssetConfig(
            ltv_ratio=ltv_ratio,
            liquidation_threshold=liquidation_threshold,
            reserve_factor=reserve_factor,
            is_active=True,
            is_collateral=True,
        )
        self._store.set(self._asset_key(symbol), config)
        self._store.set(
            self._pool_key(symbol),
            PoolState(
                borrow_rate=INITIAL_BORROW_RATE,
                supply_rate=INITIAL_SUPPLY_RATE,
                last_update_timestamp=self._clock(),
            ),
        )
        return config

    def update_risk_params(
        self,
        symbol: str,
        ltv_ratio: int,
        liquidation_threshold: int,
        reserve_factor: int,
    ) -> AssetConfig:
        """Change the ratios of a configured asset without touching its pool."""
        validate_risk_params(ltv_ratio, liquidation_threshold, reserve_factor)
        config = replace(
            self.get_config(symbol),
            ltv_ratio=ltv_ratio,
            liquidation_threshold=liquidation_threshold,
            reserve_factor=reserve_factor,
        )
        self._store.set(self._asset_key(symbol), config)
        return config

    def set_status(
        self,
        symbol: str,
        is_active: bool | None = None,
        is_collateral: bool | None = None,
    ) -> AssetConfig:
        config = self.get_config(symbol)
        if is_active is not None:
            config = replace(config, is_active=is_active)
        if is_collateral is not None:
            config = replace(config, is_collateral=is_collateral)
        self._store.set(self._asset_key(symbol), config)
        return config

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_config(self, symbol: str) -> AssetConfig:
        config = self._store.get(self._asset_key(symbol))
        if config is None:
            raise AssetNotConfigured(symbol)
        return config

    def find_config(self, symbol: str) -> AssetConfig | None:
        return self._store.get(self._asset_key(symbol))

    def get_pool(self, symbol: str) -> PoolState:
        pool = self._store.get(self._pool_key(symbol))
        if pool is None:
            raise AssetNotConfigured(symbol)
        return pool

    def pool_info(self, symbol: str) -> tuple[int, int, int]:
        """``(total_supplied, total_borrowed, utilization_rate)``; zeros if unknown."""
        pool = self._store.get(self._pool_key(symbol), PoolState())
        return pool.total_supplied, pool.total_borrowed, pool.utilization_rate

    def symbols(self) -> list[str]:
        return [key[1] for key in self._store.keys(("asset",))]

    # ------------------------------------------------------------------
    # Pool totals
    # ------------------------------------------------------------------

    def adjust_pool(self, symbol: str, supplied_delta: int = 0, borrowed_delta: int = 0) -> PoolState:
        """Apply deltas to the pool totals and re-quote rates."""
        pool = self.get_pool(symbol)
        pool = replace(
            pool,
            total_supplied=pool.total_supplied + supplied_delta,
            total_borrowed=pool.total_borrowed + borrowed_delta,
        )
        return self.refresh_rates(symbol, pool)

    def refresh_rates(self, symbol: str, pool: PoolState | None = None) -> PoolState:
        if pool is None:
            pool = self.get_pool(symbol)
        quote = self._rate_model.quote(pool.total_supplied, pool.total_borrowed)
        pool = replace(
            pool,
            utilization_rate=quote.utilization_rate,
            borrow_rate=quote.borrow_rate,
            supply_rate=quote.supply_rate,
            last_update_timestamp=self._clock(),
        )
        self._store.set(self._pool_key(symbol), pool)
        return pool
