"""
Ledger Exceptions

Every error a user action can trigger derives from LedgerError.
None of them is fatal: each is raised before any state changes,
so the caller can report it and let the user retry.
"""

from typing import Optional
from uuid import UUID


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class FormValidationError(LedgerError):
    """Input was rejected before reaching the ledger."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        # ValidationResult when the rejection came from LedgerValidator
        self.result = result


class RecordNotFoundError(LedgerError):
    """No record with the given id exists in the collection."""

    def __init__(self, collection: str, record_id: UUID):
        super().__init__(f"{collection} not found: {record_id}")
        self.collection = collection
        self.record_id = record_id


class ProductNotFoundError(RecordNotFoundError):
    """The product referenced by an operation does not exist."""

    def __init__(self, product_id: UUID):
        super().__init__("product", product_id)


class InsufficientStockError(LedgerError):
    """A sale asked for more units than the product has in stock."""

    def __init__(self, product_id: UUID, requested: int, available: int):
        super().__init__(
            f"Insufficient stock: requested {requested}, only {available} available"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ImmutableRecordError(LedgerError):
    """Records of this collection cannot be changed once created."""
    pass


class NothingToExportError(LedgerError):
    """The collection requested for export is empty."""

    def __init__(self, kind: str):
        super().__init__(f"No {kind} data to export")
        self.kind = kind


class PrinterNotConnectedError(LedgerError):
    """A print was requested but no printer is connected."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Please connect a printer first")
