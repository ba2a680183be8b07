"""Receipt-token ledger protocol — pool share token abstraction."""
from typing import Protocol


class ReceiptTokenLedger(Protocol):
    """Abstract interface for the fungible receipt-token ledger.

    ``mint`` and ``burn`` only accept the lending pool identity as caller and
    raise ``Unauthorized`` otherwise.
    """

    def mint(self, caller: str, to: str, amount: int) -> None: ...

    def burn(self, caller: str, from_: str, amount: int) -> None: ...

    def balance(self, who: str) -> int: ...

    def exchange_rate(self) -> int: ...
