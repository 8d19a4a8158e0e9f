"""CSV exports of the ledger."""

from bizledger.exports.csv_export import (
    EXPENSE_HEADERS,
    PRODUCT_HEADERS,
    SALES_HEADERS,
    CsvExport,
    ExportKind,
    build_export,
    to_csv,
)

__all__ = [
    "EXPENSE_HEADERS",
    "PRODUCT_HEADERS",
    "SALES_HEADERS",
    "CsvExport",
    "ExportKind",
    "build_export",
    "to_csv",
]
