"""Receipt-token bridge — mints and burns pool shares on the token ledger."""
from __future__ import annotations

import logging
from collections.abc import Callable

from .errors import AmountTooSmall
from .interfaces.receipt_ledger import ReceiptTokenLedger
from .units import SCALE

logger = logging.getLogger(__name__)


class ReceiptTokenBridge:
    """Issues mint/burn requests as the lending pool identity.

    One receipt-token ledger per underlying asset, resolved through
    ``ledger_for``. Deposits mint ``amount * 1e7 / exchange_rate`` shares.
    Withdrawals burn the holder's shares in proportion to the principal
    withdrawn, so a full withdrawal always clears the balance whatever the
    rate did in between.
    """

    def __init__(self, pool_id: str, ledger_for: Callable[[str], ReceiptTokenLedger]) -> None:
        self.pool_id = pool_id
        self._ledger_for = ledger_for

    def shares_for(self, symbol: str, amount: int) -> int:
        return amount * SCALE // self._ledger_for(symbol).exchange_rate()

    def to_underlying(self, symbol: str, shares: int) -> int:
        return shares * self._ledger_for(symbol).exchange_rate() // SCALE

    def mint(self, symbol: str, user: str, amount: int) -> int:
        shares = self.shares_for(symbol, amount)
        if shares <= 0:
            raise AmountTooSmall(symbol, amount)
        self._ledger_for(symbol).mint(self.pool_id, user, shares)
        logger.debug("Minted %d receipt shares of %s to %s", shares, symbol, user)
        return shares

    def burn(self, symbol: str, user: str, amount: int, supplied_amount: int) -> int:
        """Burn the share of ``user``'s balance backing ``amount`` of ``supplied_amount``."""
        ledger = self._ledger_for(symbol)
        shares = ledger.balance(user) * amount // supplied_amount
        # Dust withdrawals may round to zero shares; the remainder goes with the last one.
        if shares > 0:
            ledger.burn(self.pool_id, user, shares)
        logger.debug("Burned %d receipt shares of %s from %s", shares, symbol, user)
        return shares

    def balance_of(self, symbol: str, user: str) -> int:
        return self._ledger_for(symbol).balance(user)
