"""Form validation."""

from bizledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
