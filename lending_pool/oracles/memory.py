"""Store-backed price oracle with admin-set prices and a freshness window."""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from ..errors import (
    AlreadyInitialized,
    InvalidAmount,
    NotInitialized,
    PriceNotSet,
    PriceStale,
    Unauthorized,
)
from ..interfaces.state_store import StateStore
from ..units import SCALE

logger = logging.getLogger(__name__)

_ADMIN_KEY = ("oracle", "admin")


class InMemoryPriceOracle:
    """Prices are 7-decimal fixed-point USD; ages are measured in clock seconds."""

    def __init__(self, store: StateStore, clock: Callable[[], int]) -> None:
        self._store = store
        self._clock = clock

    def initialize(self, admin: str) -> None:
        if self._store.has(_ADMIN_KEY):
            raise AlreadyInitialized("Price oracle already initialized")
        self._store.set(_ADMIN_KEY, admin)

    def get_admin(self) -> str:
        admin = self._store.get(_ADMIN_KEY)
        if admin is None:
            raise NotInitialized("Price oracle not initialized")
        return admin

    def _require_admin(self, caller: str) -> None:
        if caller != self.get_admin():
            raise Unauthorized(f"{caller} is not the oracle admin")

    def update_admin(self, caller: str, new_admin: str) -> None:
        self._require_admin(caller)
        self._store.set(_ADMIN_KEY, new_admin)
        logger.info("Oracle admin changed to %s", new_admin)

    def set_price(self, caller: str, symbol: str, price: int) -> None:
        self.batch_set_prices(caller, {symbol: price})

    def batch_set_prices(self, caller: str, prices: Mapping[str, int]) -> None:
        """Set several prices at once; nothing is written if any price is invalid."""
        self._require_admin(caller)
        for price in prices.values():
            if price <= 0:
                raise InvalidAmount(price)

        now = self._clock()
        with self._store.transaction():
            for symbol, price in prices.items():
                self._store.set(("oracle", "price", symbol), price)
                self._store.set(("oracle", "updated", symbol), now)
        for symbol, price in sorted(prices.items()):
            logger.info("Price set: %s = %d", symbol, price)

    def get_price(self, symbol: str) -> int:
        price = self._store.get(("oracle", "price", symbol))
        if price is None:
            raise PriceNotSet(symbol)
        return price

    def get_last_updated(self, symbol: str) -> int:
        return self._store.get(("oracle", "updated", symbol), 0)

    def is_price_fresh(self, symbol: str, max_age: int) -> bool:
        last_updated = self.get_last_updated(symbol)
        if last_updated == 0:
            return False
        return self._clock() - last_updated <= max_age

    def get_price_checked(self, symbol: str, max_age: int) -> int:
        if not self.is_price_fresh(symbol, max_age):
            raise PriceStale(symbol, max_age)
        return self.get_price(symbol)

    def to_usd_value(self, symbol: str, amount: int) -> int:
        return amount * self.get_price(symbol) // SCALE

    def from_usd_value(self, symbol: str, usd_value: int) -> int:
        return usd_value * SCALE // self.get_price(symbol)
