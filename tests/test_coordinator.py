"""Tests for the SaleCoordinator: sales, stock and deletions."""

import pytest
from decimal import Decimal
from uuid import uuid4

from bizledger.config import ProductDeletePolicy
from bizledger.exceptions import (
    FormValidationError,
    InsufficientStockError,
    ProductNotFoundError,
)
from bizledger.models import AuditEventType
from bizledger.repositories import (
    ProductRepository,
    ReceiptRepository,
    SaleRepository,
)
from bizledger.transactions import SaleCoordinator


def make_coordinator(store, audit_logger, clock, policy=ProductDeletePolicy.RETAIN_SALES):
    products = ProductRepository(store, audit_logger, clock)
    sales = SaleRepository(store, audit_logger, clock)
    receipts = ReceiptRepository(store, audit_logger, clock)
    coordinator = SaleCoordinator(
        store, products, sales, receipts,
        audit_logger=audit_logger, delete_policy=policy, clock=clock,
    )
    return coordinator, products, sales, receipts


@pytest.fixture
def parts(store, audit_logger, clock):
    return make_coordinator(store, audit_logger, clock)


@pytest.fixture
def p1(parts):
    _, products, _, _ = parts
    return products.add(
        {"name": "P1", "cost_price": "600", "selling_price": "1000", "stock": 10}
    )


class TestRecordSale:
    """Tests for recording sales."""

    def test_sale_decrements_stock(self, parts, p1, clock):
        """Test the basic sale: 3 of 10 at 1000 with cost 600."""
        coordinator, products, sales, _ = parts

        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 3})

        assert products.get(p1.id).stock == 7
        assert sale.total_amount == Decimal("3000")
        assert sale.profit == Decimal("1200")
        assert sale.unit_price == Decimal("1000")
        assert sale.product_name == "P1"
        assert sale.created_at == clock.now
        assert sales.list() == [sale]

    def test_oversell_is_rejected_without_changes(self, parts, p1):
        """Test that selling more than stock changes nothing."""
        coordinator, products, sales, _ = parts
        coordinator.record_sale({"product_id": p1.id, "quantity": 3})

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.record_sale({"product_id": p1.id, "quantity": 8})

        assert exc_info.value.requested == 8
        assert exc_info.value.available == 7
        assert products.get(p1.id).stock == 7
        assert len(sales) == 1

    def test_selling_exact_stock_reaches_zero(self, parts, p1):
        """Test that the last units can be sold."""
        coordinator, products, _, _ = parts
        coordinator.record_sale({"product_id": p1.id, "quantity": 10})
        assert products.get(p1.id).stock == 0

    def test_unknown_product(self, parts):
        """Test that a sale of an unknown product is rejected."""
        coordinator, _, sales, _ = parts
        with pytest.raises(ProductNotFoundError):
            coordinator.record_sale({"product_id": uuid4(), "quantity": 1})
        assert len(sales) == 0

    def test_zero_quantity(self, parts, p1):
        """Test that a zero-quantity request is a form error."""
        coordinator, _, _, _ = parts
        with pytest.raises(FormValidationError):
            coordinator.record_sale({"product_id": p1.id, "quantity": 0})

    def test_snapshot_survives_product_edit(self, parts, p1):
        """Test that editing a product does not rewrite past sales."""
        coordinator, products, sales, _ = parts
        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 1})
        products.update(p1.id, {"name": "P1 renamed", "selling_price": "1500"})

        stored = sales.get(sale.id)
        assert stored.product_name == "P1"
        assert stored.unit_price == Decimal("1000")

    def test_rejection_is_audited(self, parts, p1, audit_logger):
        """Test that a refused sale leaves a warning in the audit log."""
        coordinator, _, _, _ = parts
        with pytest.raises(InsufficientStockError):
            coordinator.record_sale({"product_id": p1.id, "quantity": 11})
        assert audit_logger.recent(1)[0].event_type == AuditEventType.SALE_REJECTED

    def test_write_failure_keeps_ledger_consistent(self, parts, p1, backend, store):
        """Test that a failed write still leaves stock and sales in step."""
        coordinator, products, sales, _ = parts
        backend.failing = True

        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 2})

        assert products.get(p1.id).stock == 8
        assert sales.list() == [sale]
        assert {"products", "sales"} <= store.unsynced_keys

        backend.failing = False
        assert store.flush()


class TestReceipts:
    """Tests for checkout and receipt issuing."""

    def test_checkout_links_sale_and_receipt(self, parts, p1):
        """Test that checkout records the sale and its receipt together."""
        coordinator, _, sales, receipts = parts

        sale, receipt = coordinator.checkout(
            {"product_id": p1.id, "quantity": 2, "customer_phone": "0772000000"}
        )

        assert sale.receipt_id == receipt.id
        assert receipt.sale_id == sale.id
        assert receipt.total == Decimal("2000")
        assert receipt.customer_phone == "0772000000"
        assert sales.get(sale.id).receipt_id == receipt.id
        assert receipts.list() == [receipt]

    def test_issue_receipt_is_idempotent(self, parts, p1):
        """Test that a sale never gets two receipts."""
        coordinator, _, sales, receipts = parts
        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 1})

        first = coordinator.issue_receipt(sale.id)
        second = coordinator.issue_receipt(sale.id)

        assert first == second
        assert len(receipts) == 1
        assert sales.get(sale.id).receipt_id == first.id


class TestDeletions:
    """Tests for deleting sales and products."""

    def test_delete_sale_restocks(self, parts, p1):
        """Test that deleting a sale returns its units to stock."""
        coordinator, products, sales, _ = parts
        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 4})

        assert coordinator.delete_sale(sale.id)

        assert products.get(p1.id).stock == 10
        assert len(sales) == 0

    def test_delete_sale_without_restock(self, parts, p1):
        """Test that restock can be skipped."""
        coordinator, products, _, _ = parts
        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 4})
        coordinator.delete_sale(sale.id, restock=False)
        assert products.get(p1.id).stock == 6

    def test_delete_unknown_sale(self, parts):
        """Test that deleting a missing sale returns False."""
        coordinator, _, _, _ = parts
        assert not coordinator.delete_sale(uuid4())

    def test_delete_sale_keeps_receipt(self, parts, p1):
        """Test that receipts outlive their sales."""
        coordinator, _, _, receipts = parts
        sale, receipt = coordinator.checkout({"product_id": p1.id, "quantity": 1})
        coordinator.delete_sale(sale.id)
        assert receipts.get(receipt.id) == receipt

    def test_retain_sales_policy(self, parts, p1):
        """Test that sales outlive their product by default."""
        coordinator, products, sales, _ = parts
        sale = coordinator.record_sale({"product_id": p1.id, "quantity": 1})

        assert coordinator.delete_product(p1.id)

        assert products.get(p1.id) is None
        assert sales.list() == [sale]

    def test_cascade_sales_policy(self, store, audit_logger, clock):
        """Test that the cascade policy removes the product's sales."""
        coordinator, products, sales, receipts = make_coordinator(
            store, audit_logger, clock, ProductDeletePolicy.CASCADE_SALES
        )
        keep = products.add({"name": "Keep", "cost_price": 1, "selling_price": 2, "stock": 5})
        drop = products.add({"name": "Drop", "cost_price": 1, "selling_price": 2, "stock": 5})
        kept_sale = coordinator.record_sale({"product_id": keep.id, "quantity": 1})
        _, receipt = coordinator.checkout({"product_id": drop.id, "quantity": 1})

        assert coordinator.delete_product(drop.id)

        assert sales.list() == [kept_sale]
        assert receipts.list() == [receipt]

    def test_repository_remove_applies_cascade(self, store, audit_logger, clock):
        """Test that removing through the product repository honours the policy."""
        coordinator, products, sales, _ = make_coordinator(
            store, audit_logger, clock, ProductDeletePolicy.CASCADE_SALES
        )
        product = products.add({"name": "P", "cost_price": 1, "selling_price": 2, "stock": 5})
        coordinator.record_sale({"product_id": product.id, "quantity": 1})

        assert products.remove(product.id)

        assert products.get(product.id) is None
        assert sales.list() == []
        event = audit_logger.recent(1)[0]
        assert event.event_type == AuditEventType.PRODUCT_DELETED
        assert event.details == {"policy": "cascade_sales", "removed_sales": 1}

    def test_repository_remove_unknown_product(self, parts):
        """Test that removing a missing product through the repository returns False."""
        _, products, _, _ = parts
        assert not products.remove(uuid4())

    def test_delete_unknown_product(self, parts):
        """Test that deleting a missing product returns False."""
        coordinator, _, _, _ = parts
        assert not coordinator.delete_product(uuid4())
