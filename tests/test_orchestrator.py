"""Integration tests for the BusinessLedger facade."""

import asyncio

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from bizledger.config import ProductDeletePolicy, get_settings
from bizledger.exceptions import (
    FormValidationError,
    InsufficientStockError,
    NothingToExportError,
    RecordNotFoundError,
)
from bizledger.models import AuditEventType, Language, Period
from bizledger.orchestrator import BusinessLedger, create_app_components
from bizledger.services.storage import InMemoryBackend, PersistentStore
from bizledger.validation import LedgerValidator

from conftest import FIXED_NOW, FakeClock


class TestInventoryAndSales:
    """End-to-end flows through the facade."""

    def test_add_product_rejects_invalid_form(self, ledger):
        """Test that validation errors stop the product from being added."""
        with pytest.raises(FormValidationError) as exc_info:
            ledger.add_product({"name": "", "cost_price": "600", "selling_price": "1000"})
        assert exc_info.value.result is not None
        assert exc_info.value.result.has_errors
        assert ledger.products.list() == []

    def test_add_product_with_warning(self, ledger):
        """Test that warnings do not block saving."""
        product = ledger.add_product(
            {"name": "Gift", "cost_price": "0", "selling_price": "100", "stock": ""}
        )
        assert product.stock == 0

    def test_sale_scenario(self, ledger, sugar):
        """Test the sell-then-oversell scenario through the facade."""
        sale = ledger.record_sale({"product_id": sugar.id, "quantity": 3})
        assert sale.total_amount == Decimal("3000")
        assert sale.profit == Decimal("1200")
        assert ledger.products.get(sugar.id).stock == 7

        with pytest.raises(InsufficientStockError):
            ledger.record_sale({"product_id": sugar.id, "quantity": 8})
        assert ledger.products.get(sugar.id).stock == 7
        assert len(ledger.sales) == 1

    def test_check_sale(self, ledger, sugar):
        """Test advisory sale validation looks the product up."""
        assert ledger.check_sale({"product_id": str(sugar.id), "quantity": 2}).is_valid
        assert not ledger.check_sale({"product_id": str(sugar.id), "quantity": 11}).is_valid
        assert not ledger.check_sale({"product_id": "not-a-uuid", "quantity": 1}).is_valid

    def test_low_stock_products(self, ledger, sugar):
        """Test the low stock list follows sales."""
        assert ledger.low_stock_products() == []
        ledger.record_sale({"product_id": sugar.id, "quantity": 5})
        assert [p.id for p in ledger.low_stock_products()] == [sugar.id]

    def test_delete_product_retains_sales(self, ledger, sugar):
        """Test the default delete policy."""
        ledger.record_sale({"product_id": sugar.id, "quantity": 1})
        assert ledger.delete_product(sugar.id)
        assert len(ledger.sales) == 1

    def test_products_remove_uses_delete_policy(self, store, audit_logger, clock):
        """Test that removing through ledger.products follows the cascade setting."""
        ledger = BusinessLedger(
            store,
            audit_logger=audit_logger,
            validator=LedgerValidator(5),
            delete_policy=ProductDeletePolicy.CASCADE_SALES,
            clock=clock,
        )
        product = ledger.add_product(
            {"name": "Salt", "cost_price": "200", "selling_price": "300", "stock": 4}
        )
        ledger.record_sale({"product_id": product.id, "quantity": 1})

        assert ledger.products.remove(product.id)

        assert ledger.products.list() == []
        assert ledger.sales.list() == []

    def test_update_product_is_validated(self, ledger, sugar):
        """Test that an edit is held to the same rules as a new product."""
        with pytest.raises(FormValidationError) as exc_info:
            ledger.update_product(sugar.id, {"selling_price": "0"})
        assert exc_info.value.result.has_errors
        assert ledger.products.get(sugar.id) == sugar

    def test_update_product_blank_category_clears_it(self, ledger, sugar):
        """Test that a blank category is stored as None, and other blanks are ignored."""
        updated = ledger.update_product(
            sugar.id, {"category": "  ", "name": "", "selling_price": "1200"}
        )
        assert updated.category is None
        assert updated.name == "Sugar 1kg"
        assert updated.selling_price == Decimal("1200")

    def test_update_unknown_product(self, ledger):
        """Test that editing a missing product raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            ledger.update_product(uuid4(), {"stock": 3})

    def test_record_expense(self, ledger):
        """Test expenses are validated then stored."""
        expense = ledger.record_expense({"category": "Rent", "amount": "800"})
        assert ledger.expenses.list() == [expense]
        with pytest.raises(FormValidationError):
            ledger.record_expense({"category": "Rent", "amount": "-5"})
        assert ledger.delete_expense(expense.id)


class TestReporting:
    """Tests for dashboard, analytics, receipts and exports."""

    def test_daily_analytics(self, ledger, sugar):
        """Test today's trend point and the grand totals."""
        ledger.record_sale({"product_id": sugar.id, "quantity": 2})
        ledger.record_expense({"category": "Utilities", "amount": "800"})

        report = ledger.analytics_report(Period.DAILY)

        assert report.trend[-1].revenue == Decimal("2000")
        assert report.trend[-1].expenses == Decimal("800")
        assert report.trend[-1].profit == Decimal("1200")
        assert report.summary.profit_margin == Decimal("60")
        assert report.top_products[0].product_name == "Sugar 1kg"

    def test_dashboard_uses_clock(self, ledger, sugar, clock):
        """Test that yesterday's sales are not today's."""
        ledger.record_sale({"product_id": sugar.id, "quantity": 1})
        clock.advance(days=1)
        ledger.record_sale({"product_id": sugar.id, "quantity": 2})

        summary = ledger.dashboard()

        assert summary.day == (FIXED_NOW + timedelta(days=1)).date()
        assert summary.todays_revenue == Decimal("2000")
        assert summary.yesterdays_revenue == Decimal("1000")

    def test_receipt_documents(self, ledger, sugar):
        """Test the receipt renderings are reachable by id."""
        ledger.update_settings(business_name="Corner Shop")
        _, receipt = ledger.checkout(
            {"product_id": sugar.id, "quantity": 1, "customer_phone": "0700111222"}
        )

        assert "CORNER SHOP" in ledger.receipt_text(receipt.id)
        assert "<html>" in ledger.receipt_html(receipt.id)
        assert ledger.receipt_share_link(receipt.id).startswith("https://wa.me/")
        assert ledger.search_receipts("0700") == [receipt]
        with pytest.raises(RecordNotFoundError):
            ledger.receipt_text(uuid4())

    def test_search_receipts_newest_first(self, ledger, sugar, clock):
        """Test that search results are ordered newest first."""
        _, older = ledger.checkout({"product_id": sugar.id, "quantity": 1})
        clock.advance(minutes=1)
        _, newer = ledger.checkout({"product_id": sugar.id, "quantity": 1})
        assert ledger.search_receipts("") == [newer, older]

    def test_export(self, ledger, sugar, audit_logger):
        """Test export content and audit."""
        export = ledger.export("products")
        assert export.row_count == 1
        assert "Sugar 1kg" in export.content
        assert audit_logger.recent(1)[0].event_type == AuditEventType.DATA_EXPORTED

    def test_empty_export(self, ledger):
        """Test that exporting an empty collection is refused."""
        with pytest.raises(NothingToExportError, match="No sales data to export"):
            ledger.export("sales")

    def test_insight_refresh(self, ledger, sugar):
        """Test the async refresh goes through the analytics report."""
        ledger.record_sale({"product_id": sugar.id, "quantity": 1})
        report = asyncio.run(ledger.insights.refresh(Period.DAILY))
        assert report.period == Period.DAILY
        assert "Sugar 1kg" in report.insights[Language.ENGLISH]


class TestPersistence:
    """Tests for durability and restart."""

    def test_restart_sees_committed_state(self, backend, clock):
        """Test that a new ledger over the same backend reloads everything."""
        first = BusinessLedger(
            PersistentStore(backend, retry_wait_seconds=0),
            validator=LedgerValidator(5),
            clock=clock,
        )
        product = first.add_product(
            {"name": "Salt", "cost_price": "200", "selling_price": "300", "stock": 4}
        )
        first.record_sale({"product_id": product.id, "quantity": 1})

        second = BusinessLedger(
            PersistentStore(backend, retry_wait_seconds=0),
            validator=LedgerValidator(5),
            clock=clock,
        )
        assert second.products.get(product.id).stock == 3
        assert len(second.sales) == 1

    def test_write_failure_then_flush(self, ledger, backend, sugar):
        """Test that failed writes are reported and retried by flush."""
        backend.failing = True
        ledger.record_sale({"product_id": sugar.id, "quantity": 1})
        assert not ledger.is_synced
        assert "sales" in ledger.unsynced_keys

        backend.failing = False
        assert ledger.flush()
        assert ledger.is_synced


class TestFactory:
    """Tests for create_app_components."""

    def test_reads_settings(self, monkeypatch, tmp_path):
        """Test that configuration reaches the wired components."""
        monkeypatch.setenv("BIZLEDGER_PRODUCT_DELETE_POLICY", "cascade_sales")
        monkeypatch.setenv("BIZLEDGER_STORAGE_DATA_DIR", str(tmp_path))
        get_settings.cache_clear()
        try:
            ledger = create_app_components(clock=FakeClock())
        finally:
            get_settings.cache_clear()

        product = ledger.add_product(
            {"name": "Salt", "cost_price": "200", "selling_price": "300", "stock": 4}
        )
        ledger.record_sale({"product_id": product.id, "quantity": 1})
        ledger.delete_product(product.id)

        assert len(ledger.sales) == 0
        assert (tmp_path / "products.json").exists()

    def test_explicit_backend(self):
        """Test that an explicit backend wins over the data directory."""
        backend = InMemoryBackend()
        ledger = create_app_components(backend=backend)
        assert ledger.business_settings().business_name == "My Business"
        assert "settings" in backend.keys()
