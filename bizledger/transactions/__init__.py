"""Cross-collection ledger transactions."""

from bizledger.transactions.coordinator import SaleCoordinator

__all__ = ["SaleCoordinator"]
