"""Tests for CSV exports."""

import csv
import io
from decimal import Decimal

from bizledger.exports import (
    EXPENSE_HEADERS,
    PRODUCT_HEADERS,
    SALES_HEADERS,
    ExportKind,
    build_export,
    to_csv,
)
from bizledger.models import Expense, Product, Sale

from conftest import FIXED_NOW


def rows(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


class TestCsvExport:
    """Tests for the export layouts."""

    def test_sales_layout(self):
        """Test sales columns and ISO dates."""
        product = Product(name="Sugar, 1kg", cost_price=600, selling_price=1000, stock=1)
        sale = Sale(
            product_id=product.id,
            product_name=product.name,
            quantity=2,
            unit_price=Decimal("1000"),
            total_amount=Decimal("2000"),
            profit=Decimal("800"),
            created_at=FIXED_NOW,
        )
        table = rows(to_csv(ExportKind.SALES, [sale]))
        assert table[0] == SALES_HEADERS
        assert table[1] == ["2024-03-15", "Sugar, 1kg", "2", "1000", "2000", "cash"]

    def test_expenses_layout(self):
        """Test expense columns, with a blank description."""
        expense = Expense(category="Utilities", amount=Decimal("450"), created_at=FIXED_NOW)
        table = rows(to_csv("expenses", [expense]))
        assert table[0] == EXPENSE_HEADERS
        assert table[1] == ["2024-03-15", "Utilities", "450", "cash", ""]

    def test_products_layout(self):
        """Test product columns."""
        product = Product(name="Salt", cost_price=200, selling_price=300, stock=4)
        table = rows(to_csv(ExportKind.PRODUCTS, [product]))
        assert table[0] == PRODUCT_HEADERS
        assert table[1] == ["Salt", "200", "300", "4", ""]

    def test_build_export(self, tmp_path):
        """Test export metadata and writing to disk."""
        product = Product(name="Salt", cost_price=200, selling_price=300, stock=4)
        export = build_export(ExportKind.PRODUCTS, [product])
        assert export.filename == "products-export.csv"
        assert export.row_count == 1

        path = export.write_to(tmp_path / "out")
        assert path.read_text(encoding="utf-8") == export.content
