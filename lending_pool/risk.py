"""Risk engine — USD valuation, LTV and health factor. Owns no state."""
from __future__ import annotations

import logging

from .errors import InsufficientCollateral, LiquidationRisk, PriceStale
from .interfaces.price_oracle import PriceOracle
from .models import AccountSnapshot, AssetBreakdown
from .positions import PositionLedger
from .registry import AssetRegistry
from .units import BPS, HEALTH_FACTOR_MAX, HEALTH_FACTOR_ONE, SCALE

logger = logging.getLogger(__name__)


def calc_ltv(collateral_usd: int, debt_usd: int) -> int:
    """Debt over collateral in basis points; 0 without collateral."""
    if collateral_usd <= 0:
        return 0
    return debt_usd * BPS // collateral_usd


def calc_health_factor(weighted_collateral_usd: int, debt_usd: int) -> int:
    """Health factor in 7-decimal fixed point.

    ``weighted_collateral_usd`` is the sum of ``collateral_usd *
    liquidation_threshold_bp`` over the collateral assets.
    """
    if debt_usd <= 0:
        return HEALTH_FACTOR_MAX
    return weighted_collateral_usd * SCALE // (debt_usd * BPS)


class RiskEngine:
    """Derives account risk from positions, asset configs and oracle prices.

    Liquidation thresholds always come from the collateral asset's config.
    """

    def __init__(
        self,
        registry: AssetRegistry,
        positions: PositionLedger,
        oracle: PriceOracle,
        max_price_age: int | None = None,
    ) -> None:
        self._registry = registry
        self._positions = positions
        self._oracle = oracle
        self._max_price_age = max_price_age

    def price(self, symbol: str) -> int:
        price = self._oracle.get_price(symbol)
        if self._max_price_age is not None and not self._oracle.is_price_fresh(
            symbol, self._max_price_age
        ):
            logger.warning("Stale price for %s (max age %ss)", symbol, self._max_price_age)
            raise PriceStale(symbol, self._max_price_age)
        return price

    def usd_value(self, symbol: str, amount: int, round_up: bool = False) -> int:
        if amount == 0:
            return 0
        if round_up:
            return -(-amount * self.price(symbol) // SCALE)
        return amount * self.price(symbol) // SCALE

    def get_user_account_data(self, user: str) -> AccountSnapshot:
        total_collateral = 0
        total_debt = 0
        weighted_collateral = 0
        breakdown: list[AssetBreakdown] = []

        for symbol, position in self._positions.positions_of(user):
            if not (position.collateral_amount or position.debt_amount):
                continue
            config = self._registry.get_config(symbol)
            price = self.price(symbol)
            collateral_usd = position.collateral_amount * price // SCALE
            # Collateral rounds down and debt rounds up
            debt_usd = -(-position.debt_amount * price // SCALE)

            total_collateral += collateral_usd
            total_debt += debt_usd
            weighted_collateral += collateral_usd * config.liquidation_threshold
            breakdown.append(
                AssetBreakdown(
                    symbol=symbol,
                    price=price,
                    collateral_amount=position.collateral_amount,
                    debt_amount=position.debt_amount,
                    collateral_usd=collateral_usd,
                    debt_usd=debt_usd,
                    liquidation_threshold=config.liquidation_threshold,
                )
            )

        return AccountSnapshot(
            total_collateral_usd=total_collateral,
            total_debt_usd=total_debt,
            ltv=calc_ltv(total_collateral, total_debt),
            health_factor=calc_health_factor(weighted_collateral, total_debt),
            assets=tuple(breakdown),
        )

    def require_healthy(self, user: str) -> AccountSnapshot:
        """Raise unless the account's current state is safe to hold debt."""
        snapshot = self.get_user_account_data(user)
        has_debt = any(a.debt_amount for a in snapshot.assets)
        if has_debt and snapshot.total_collateral_usd == 0:
            raise InsufficientCollateral(f"{user} has debt but no collateral value")
        if snapshot.health_factor < HEALTH_FACTOR_ONE:
            raise LiquidationRisk(
                f"Health factor {snapshot.health_factor} below {HEALTH_FACTOR_ONE} for {user}"
            )
        return snapshot

    def calculate_max_borrow(self, user: str, collateral_asset: str, borrow_asset: str) -> int:
        """USD value that the collateral asset alone can back at its LTV."""
        self._registry.get_config(borrow_asset)
        config = self._registry.get_config(collateral_asset)
        position = self._positions.get(user, collateral_asset)
        if position.collateral_amount == 0:
            return 0
        collateral_usd = self.usd_value(collateral_asset, position.collateral_amount)
        return collateral_usd * config.ltv_ratio // BPS

    def is_position_healthy(self, user: str, collateral_asset: str, borrow_asset: str) -> bool:
        config = self._registry.get_config(collateral_asset)
        debt = self._positions.get(user, borrow_asset).debt_amount
        if debt == 0:
            return True
        collateral = self._positions.get(user, collateral_asset).collateral_amount
        if collateral == 0:
            return False

        debt_usd = self.usd_value(borrow_asset, debt, round_up=True)
        collateral_usd = self.usd_value(collateral_asset, collateral)
        return debt_usd <= collateral_usd * config.liquidation_threshold // BPS
