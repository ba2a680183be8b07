"""Receipt-token ledger implementations."""
from .receipt_ledger import InMemoryReceiptTokenLedger

__all__ = ["InMemoryReceiptTokenLedger"]
