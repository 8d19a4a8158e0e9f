"""Entity repositories over the persistent store."""

from bizledger.repositories.collections import (
    CollectionReader,
    CrudRepository,
    ExpenseRepository,
    ProductRepository,
    ReceiptRepository,
    SaleRepository,
    SettingsRepository,
    coerce_model,
)

__all__ = [
    "CollectionReader",
    "CrudRepository",
    "ExpenseRepository",
    "ProductRepository",
    "ReceiptRepository",
    "SaleRepository",
    "SettingsRepository",
    "coerce_model",
]
