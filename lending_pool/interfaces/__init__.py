"""Protocol interfaces for the lending pool collaborators."""
from .price_oracle import PriceOracle
from .receipt_ledger import ReceiptTokenLedger
from .state_store import Key, StateStore

__all__ = ["Key", "PriceOracle", "ReceiptTokenLedger", "StateStore"]
