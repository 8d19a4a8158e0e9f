"""
CSV Export

Write-only exports of the ledger collections. There is no import path:
the files are for spreadsheets and accountants, not for restoring data.

Columns:
- sales:    Date, Product, Quantity, Unit Price, Total, Payment Method
- expenses: Date, Category, Amount, Payment Method, Description
- products: Name, Cost Price, Selling Price, Stock, Category

Dates are ISO (YYYY-MM-DD). Fields holding a comma or quote are quoted by
the csv module, so a product called "Sugar, 1kg" stays in one column.
"""

import csv
import io
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from bizledger.models.ledger import Expense, Product, Sale


class ExportKind(str, Enum):
    SALES = "sales"
    EXPENSES = "expenses"
    PRODUCTS = "products"


SALES_HEADERS = ["Date", "Product", "Quantity", "Unit Price", "Total", "Payment Method"]
EXPENSE_HEADERS = ["Date", "Category", "Amount", "Payment Method", "Description"]
PRODUCT_HEADERS = ["Name", "Cost Price", "Selling Price", "Stock", "Category"]


@dataclass(frozen=True)
class CsvExport:
    kind: ExportKind
    filename: str
    content: str
    row_count: int

    def write_to(self, directory: Path) -> Path:
        """Write the export into directory and return the file path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_text(self.content, encoding="utf-8", newline="")
        return path


def _sale_row(sale: Sale) -> list:
    return [
        sale.created_at.date().isoformat(),
        sale.product_name,
        sale.quantity,
        sale.unit_price,
        sale.total_amount,
        sale.payment_method.value,
    ]


def _expense_row(expense: Expense) -> list:
    return [
        expense.created_at.date().isoformat(),
        expense.category.value,
        expense.amount,
        expense.payment_method.value,
        expense.description or "",
    ]


def _product_row(product: Product) -> list:
    return [
        product.name,
        product.cost_price,
        product.selling_price,
        product.stock,
        product.category or "",
    ]


_LAYOUTS: dict[ExportKind, tuple[list[str], Callable[..., list]]] = {
    ExportKind.SALES: (SALES_HEADERS, _sale_row),
    ExportKind.EXPENSES: (EXPENSE_HEADERS, _expense_row),
    ExportKind.PRODUCTS: (PRODUCT_HEADERS, _product_row),
}


def to_csv(kind: ExportKind, records: Sequence) -> str:
    """Header row followed by one row per record."""
    headers, row = _LAYOUTS[ExportKind(kind)]
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(row(record) for record in records)
    return buffer.getvalue()


def build_export(kind: ExportKind, records: Sequence) -> CsvExport:
    kind = ExportKind(kind)
    return CsvExport(
        kind=kind,
        filename=f"{kind.value}-export.csv",
        content=to_csv(kind, records),
        row_count=len(records),
    )
