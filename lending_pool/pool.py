"""Lending pool — the public, transactional operation surface."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .bridge import ReceiptTokenBridge
from .errors import AlreadyInitialized, NotInitialized, Unauthorized
from .interfaces.price_oracle import PriceOracle
from .interfaces.state_store import StateStore
from .models import AccountSnapshot, AssetConfig, PoolState, Position
from .positions import PositionLedger
from .rates import InterestRateModel
from .registry import AssetRegistry
from .risk import RiskEngine

logger = logging.getLogger(__name__)

_ADMIN_KEY = ("admin",)
_BRIDGE_AUTHORITY_KEY = ("bridge_authority",)


def _unix_now() -> int:
    return int(time.time())


class LendingPool:
    """Accounting and risk engine for a set of per-asset liquidity pools.

    Every mutating method is one atomic unit: it runs inside
    ``store.transaction()`` and any raised ``LendingPoolError`` leaves no
    trace in pool, position or receipt-token state. Receipt-token calls are
    always the last step of an operation.
    """

    def __init__(
        self,
        store: StateStore,
        oracle: PriceOracle,
        bridge: ReceiptTokenBridge,
        clock: Callable[[], int] = _unix_now,
        max_price_age: int | None = None,
        rate_model: InterestRateModel | None = None,
    ) -> None:
        self._store = store
        self.registry = AssetRegistry(store, rate_model or InterestRateModel(), clock)
        self.positions = PositionLedger(store, self.registry)
        self.risk = RiskEngine(self.registry, self.positions, oracle, max_price_age)
        self.bridge = bridge

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    @property
    def admin(self) -> str | None:
        return self._store.get(_ADMIN_KEY)

    @property
    def bridge_authority(self) -> str | None:
        return self._store.get(_BRIDGE_AUTHORITY_KEY)

    def _require_initialized(self) -> None:
        if self.admin is None:
            raise NotInitialized("Lending pool not initialized")

    def _require_admin(self, caller: str) -> None:
        self._require_initialized()
        if caller != self.admin:
            raise Unauthorized(f"{caller} is not the pool admin")

    def initialize(self, admin: str, bridge_authority: str | None = None) -> None:
        with self._store.transaction():
            if self.admin is not None:
                raise AlreadyInitialized("Lending pool already initialized")
            self._store.set(_ADMIN_KEY, admin)
            if bridge_authority is not None:
                self._store.set(_BRIDGE_AUTHORITY_KEY, bridge_authority)
        logger.info("Lending pool initialized (admin=%s)", admin)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def configure_asset(
        self,
        admin: str,
        symbol: str,
        ltv_ratio: int,
        liquidation_threshold: int,
        reserve_factor: int,
    ) -> AssetConfig:
        """Create or overwrite an asset. Resets the asset's pool totals."""
        with self._store.transaction():
            self._require_admin(admin)
            config = self.registry.configure(symbol, ltv_ratio, liquidation_threshold, reserve_factor)
        logger.info(
            "Asset configured: %s ltv=%d liq_threshold=%d reserve=%d",
            symbol, ltv_ratio, liquidation_threshold, reserve_factor,
        )
        return config

    def update_risk_params(
        self,
        admin: str,
        symbol: str,
        ltv_ratio: int,
        liquidation_threshold: int,
        reserve_factor: int,
    ) -> AssetConfig:
        """Change an asset's ratios; pool totals and flags are kept."""
        with self._store.transaction():
            self._require_admin(admin)
            config = self.registry.update_risk_params(
                symbol, ltv_ratio, liquidation_threshold, reserve_factor
            )
        logger.info(
            "Risk params updated: %s ltv=%d liq_threshold=%d reserve=%d",
            symbol, ltv_ratio, liquidation_threshold, reserve_factor,
        )
        return config

    def set_asset_status(
        self,
        admin: str,
        symbol: str,
        is_active: bool | None = None,
        is_collateral: bool | None = None,
    ) -> AssetConfig:
        with self._store.transaction():
            self._require_admin(admin)
            config = self.registry.set_status(symbol, is_active, is_collateral)
        logger.info(
            "Asset status: %s active=%s collateral=%s",
            symbol, config.is_active, config.is_collateral,
        )
        return config

    # ------------------------------------------------------------------
    # Supply
    # ------------------------------------------------------------------

    def deposit(self, user: str, symbol: str, amount: int) -> int:
        """Supply liquidity; returns the receipt shares minted to ``user``."""
        with self._store.transaction():
            self._require_initialized()
            self.positions.deposit(user, symbol, amount)
            shares = self.bridge.mint(symbol, user, amount)
        logger.info("Deposit: %s supplied %d %s", user, amount, symbol)
        return shares

    def bridge_deposit(self, caller: str, user: str, symbol: str, amount: int, lock_id: int) -> int:
        """Deposit on behalf of ``user`` for assets locked on another chain."""
        with self._store.transaction():
            self._require_initialized()
            if self.bridge_authority is None or caller != self.bridge_authority:
                raise Unauthorized(f"{caller} is not the bridge authority")
            self.positions.deposit(user, symbol, amount)
            shares = self.bridge.mint(symbol, user, amount)
        logger.info("Bridge deposit: %s supplied %d %s (lock %s)", user, amount, symbol, lock_id)
        return shares

    def withdraw(self, user: str, symbol: str, amount: int) -> int:
        """Redeem supplied liquidity; returns the receipt shares burned."""
        with self._store.transaction():
            self._require_initialized()
            position = self.positions.withdraw(user, symbol, amount)
            shares = self.bridge.burn(symbol, user, amount, position.supplied_amount + amount)
        logger.info("Withdraw: %s redeemed %d %s", user, amount, symbol)
        return shares

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def deposit_collateral(self, user: str, symbol: str, amount: int) -> Position:
        with self._store.transaction():
            self._require_initialized()
            position = self.positions.deposit_collateral(user, symbol, amount)
        logger.info("Collateral deposit: %s added %d %s", user, amount, symbol)
        return position

    def withdraw_collateral(self, user: str, symbol: str, amount: int) -> Position:
        """Remove collateral; rejected if remaining debt would become unsafe."""
        with self._store.transaction():
            self._require_initialized()
            position = self.positions.withdraw_collateral(user, symbol, amount)
            if any(p.debt_amount for _, p in self.positions.positions_of(user)):
                self.risk.require_healthy(user)
        logger.info("Collateral withdraw: %s removed %d %s", user, amount, symbol)
        return position

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    def borrow(self, user: str, symbol: str, amount: int) -> AccountSnapshot:
        """Borrow against collateral; returns the post-borrow account snapshot."""
        with self._store.transaction():
            self._require_initialized()
            self.positions.borrow(user, symbol, amount)
            snapshot = self.risk.require_healthy(user)
        logger.info(
            "Borrow: %s borrowed %d %s (health factor %d)",
            user, amount, symbol, snapshot.health_factor,
        )
        return snapshot

    def repay(self, user: str, symbol: str, amount: int) -> int:
        """Repay debt, capped at the outstanding amount; returns what was repaid."""
        with self._store.transaction():
            self._require_initialized()
            repaid = self.positions.repay(user, symbol, amount)
        if repaid < amount:
            logger.info("Repay of %d %s capped at outstanding debt %d", amount, symbol, repaid)
        logger.info("Repay: %s repaid %d %s", user, repaid, symbol)
        return repaid

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_asset_config(self, symbol: str) -> AssetConfig:
        return self.registry.get_config(symbol)

    def get_pool_info(self, symbol: str) -> tuple[int, int, int]:
        return self.registry.pool_info(symbol)

    def get_pool_state(self, symbol: str) -> PoolState:
        return self.registry.get_pool(symbol)

    def configured_assets(self) -> list[str]:
        return self.registry.symbols()

    def get_position(self, user: str, symbol: str) -> Position:
        return self.positions.get(user, symbol)

    def get_user_account_data(self, user: str) -> AccountSnapshot:
        return self.risk.get_user_account_data(user)

    def calculate_max_borrow(self, user: str, collateral_asset: str, borrow_asset: str) -> int:
        return self.risk.calculate_max_borrow(user, collateral_asset, borrow_asset)

    def is_position_healthy(self, user: str, collateral_asset: str, borrow_asset: str) -> bool:
        return self.risk.is_position_healthy(user, collateral_asset, borrow_asset)
