"""Position ledger — per-(user, asset) supplied, collateral and debt balances."""
from __future__ import annotations

from dataclasses import replace

from .errors import (
    AssetInactive,
    AssetNotCollateralEligible,
    InsufficientBalance,
    InsufficientCollateral,
    InsufficientLiquidity,
    InvalidAmount,
)
from .interfaces.state_store import StateStore
from .models import AssetConfig, Position
from .registry import AssetRegistry


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmount(amount)


class PositionLedger:
    """Owns ``Position`` records and applies balance transitions.

    Transitions validate eagerly and then write both the position and the
    pool totals. Callers run them inside a store transaction so that a later
    failure (risk check, receipt-token call) discards the writes.
    """

    def __init__(self, store: StateStore, registry: AssetRegistry) -> None:
        self._store = store
        self._registry = registry

    @staticmethod
    def _key(user: str, symbol: str) -> tuple[str, str, str]:
        return ("position", user, symbol)

    def get(self, user: str, symbol: str) -> Position:
        return self._store.get(self._key(user, symbol), Position())

    def positions_of(self, user: str) -> list[tuple[str, Position]]:
        """Non-empty positions of a user, sorted by asset symbol."""
        result: list[tuple[str, Position]] = []
        for key in self._store.keys(("position", user)):
            position = self._store.get(key)
            if not position.is_empty:
                result.append((key[2], position))
        return result

    def _put(self, user: str, symbol: str, position: Position) -> Position:
        self._store.set(self._key(user, symbol), position)
        return position

    def _active_config(self, symbol: str) -> AssetConfig:
        config = self._registry.get_config(symbol)
        if not config.is_active:
            raise AssetInactive(symbol)
        return config

    # ------------------------------------------------------------------
    # Supply side
    # ------------------------------------------------------------------

    def deposit(self, user: str, symbol: str, amount: int) -> Position:
        self._active_config(symbol)
        _require_positive(amount)

        position = self.get(user, symbol)
        self._registry.adjust_pool(symbol, supplied_delta=amount)
        return self._put(
            user, symbol, replace(position, supplied_amount=position.supplied_amount + amount)
        )

    def withdraw(self, user: str, symbol: str, amount: int) -> Position:
        self._active_config(symbol)
        _require_positive(amount)

        position = self.get(user, symbol)
        if amount > position.supplied_amount:
            raise InsufficientBalance(
                f"{user} supplied {position.supplied_amount} {symbol}, cannot withdraw {amount}"
            )
        pool = self._registry.get_pool(symbol)
        if amount > pool.available_liquidity:
            raise InsufficientLiquidity(
                f"Only {pool.available_liquidity} {symbol} available, requested {amount}"
            )

        self._registry.adjust_pool(symbol, supplied_delta=-amount)
        return self._put(
            user, symbol, replace(position, supplied_amount=position.supplied_amount - amount)
        )

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def deposit_collateral(self, user: str, symbol: str, amount: int) -> Position:
        config = self._registry.get_config(symbol)
        if not config.is_collateral:
            raise AssetNotCollateralEligible(symbol)
        _require_positive(amount)

        position = self.get(user, symbol)
        return self._put(
            user, symbol, replace(position, collateral_amount=position.collateral_amount + amount)
        )

    def withdraw_collateral(self, user: str, symbol: str, amount: int) -> Position:
        self._registry.get_config(symbol)
        _require_positive(amount)

        position = self.get(user, symbol)
        if amount > position.collateral_amount:
            raise InsufficientCollateral(
                f"{user} has {position.collateral_amount} {symbol} collateral, "
                f"cannot withdraw {amount}"
            )
        return self._put(
            user, symbol, replace(position, collateral_amount=position.collateral_amount - amount)
        )

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    def borrow(self, user: str, symbol: str, amount: int) -> Position:
        """Tentatively record new debt; the caller must still run the risk check."""
        self._active_config(symbol)
        _require_positive(amount)

        pool = self._registry.get_pool(symbol)
        if amount > pool.available_liquidity:
            raise InsufficientLiquidity(
                f"Only {pool.available_liquidity} {symbol} available, requested {amount}"
            )

        position = self.get(user, symbol)
        self._registry.adjust_pool(symbol, borrowed_delta=amount)
        return self._put(
            user, symbol, replace(position, debt_amount=position.debt_amount + amount)
        )

    def repay(self, user: str, symbol: str, amount: int) -> int:
        """Repay up to the outstanding debt; returns the amount actually repaid."""
        _require_positive(amount)
        self._registry.get_config(symbol)

        position = self.get(user, symbol)
        repaid = min(amount, position.debt_amount)

        pool = self._registry.get_pool(symbol)
        # Pool totals may have been reset by a re-configuration.
        self._registry.adjust_pool(symbol, borrowed_delta=-min(repaid, pool.total_borrowed))
        self._put(user, symbol, replace(position, debt_amount=position.debt_amount - repaid))
        return repaid
