"""Store-backed receipt-token ledger (one instance per underlying asset)."""
from __future__ import annotations

import logging

from ..errors import InsufficientBalance, InvalidAmount, Unauthorized
from ..interfaces.state_store import StateStore
from ..units import SCALE

logger = logging.getLogger(__name__)


class InMemoryReceiptTokenLedger:
    """Fungible balances of the receipt token for ``underlying``.

    Only ``lending_pool`` may mint, burn or move the exchange rate. The
    exchange rate is the underlying value of one share (``1e7`` == 1:1).
    """

    def __init__(self, store: StateStore, underlying: str, lending_pool: str, decimals: int = 7) -> None:
        self._store = store
        self.underlying = underlying
        self.lending_pool = lending_pool
        self.symbol = f"s{underlying}"
        self.decimals = decimals

    def _key(self, *parts: str) -> tuple[str, ...]:
        return ("receipt", self.underlying, *parts)

    def _require_pool(self, caller: str) -> None:
        if caller != self.lending_pool:
            raise Unauthorized(f"{caller} may not mint or burn {self.symbol}")

    def mint(self, caller: str, to: str, amount: int) -> None:
        self._require_pool(caller)
        if amount <= 0:
            raise InvalidAmount(amount)
        self._store.set(self._key("balance", to), self.balance(to) + amount)
        self._store.set(self._key("total_supply"), self.total_supply() + amount)

    def burn(self, caller: str, from_: str, amount: int) -> None:
        self._require_pool(caller)
        if amount <= 0:
            raise InvalidAmount(amount)
        balance = self.balance(from_)
        if balance < amount:
            raise InsufficientBalance(
                f"{from_} holds {balance} {self.symbol}, cannot burn {amount}"
            )
        self._store.set(self._key("balance", from_), balance - amount)
        self._store.set(self._key("total_supply"), self.total_supply() - amount)

    def balance(self, who: str) -> int:
        return self._store.get(self._key("balance", who), 0)

    def total_supply(self) -> int:
        return self._store.get(self._key("total_supply"), 0)

    def exchange_rate(self) -> int:
        return self._store.get(self._key("exchange_rate"), SCALE)

    def update_exchange_rate(self, caller: str, new_rate: int) -> None:
        self._require_pool(caller)
        if new_rate <= 0:
            raise InvalidAmount(new_rate)
        self._store.set(self._key("exchange_rate"), new_rate)
        logger.info("%s exchange rate set to %d", self.symbol, new_rate)

    def s_token_to_underlying(self, shares: int) -> int:
        return shares * self.exchange_rate() // SCALE

    def underlying_to_s_token(self, amount: int) -> int:
        return amount * SCALE // self.exchange_rate()
