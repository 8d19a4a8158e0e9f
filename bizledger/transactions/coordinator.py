"""
Sale Transaction Coordinator

The only place where one user action changes more than one collection.

DESIGN DECISION: Every multi-collection change follows the same shape:
1. Read the current collections
2. Check every precondition (nothing has changed yet)
3. Compute ALL new collections in local variables
4. Commit them with one PersistentStore.set_many() call

Because the store swaps its mirror in one step, no reader can ever see
decremented stock without the matching sale, or the reverse.

GUARANTEES:
- A rejected sale leaves products and sales untouched
- Stock never goes below zero through this coordinator
- Sale.total_amount and Sale.profit are computed here, never by the caller
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

import structlog

from bizledger.audit import AuditLogger
from bizledger.config import ProductDeletePolicy
from bizledger.exceptions import InsufficientStockError, ProductNotFoundError
from bizledger.models.audit import AuditEventBuilder
from bizledger.models.ledger import Product, Receipt, Sale, SaleRequest
from bizledger.receipts import build_receipt
from bizledger.repositories import (
    ProductRepository,
    ReceiptRepository,
    SaleRepository,
    coerce_model,
)
from bizledger.repositories.collections import Clock
from bizledger.services.storage import PersistentStore


class SaleCoordinator:
    """Records and removes sales while keeping stock consistent."""

    def __init__(
        self,
        store: PersistentStore,
        products: ProductRepository,
        sales: SaleRepository,
        receipts: ReceiptRepository,
        audit_logger: Optional[AuditLogger] = None,
        delete_policy: ProductDeletePolicy = ProductDeletePolicy.RETAIN_SALES,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._products = products
        self._sales = sales
        self._receipts = receipts
        self._audit = audit_logger
        self._delete_policy = delete_policy
        self._clock = clock
        self._logger = structlog.get_logger(__name__)
        products.route_removal(self.delete_product)

    @property
    def delete_policy(self) -> ProductDeletePolicy:
        return self._delete_policy

    # =========================================================================
    # RECORDING
    # =========================================================================

    def record_sale(self, request: Union[SaleRequest, dict]) -> Sale:
        """
        Record a sale and take its quantity out of stock.

        Raises:
            FormValidationError: If the request is malformed
            ProductNotFoundError: If the product does not exist
            InsufficientStockError: If quantity exceeds current stock
        """
        sale, _ = self._record(request, issue_receipt=False)
        return sale

    def checkout(self, request: Union[SaleRequest, dict]) -> tuple[Sale, Receipt]:
        """Record a sale and issue its receipt in the same commit."""
        sale, receipt = self._record(request, issue_receipt=True)
        return sale, receipt

    def _record(
        self,
        request: Union[SaleRequest, dict],
        issue_receipt: bool,
    ) -> tuple[Sale, Optional[Receipt]]:
        request = coerce_model(SaleRequest, request)

        # Step 1-2: resolve and check, before any mutation
        products = self._products.list()
        index = self._index_of(products, request.product_id)
        if index is None:
            self._reject(request, "product not found")
            raise ProductNotFoundError(request.product_id)

        product = products[index]
        if request.quantity > product.stock:
            self._reject(request, "insufficient stock")
            raise InsufficientStockError(
                product.id, requested=request.quantity, available=product.stock
            )

        # Step 3: build the sale from snapshots of the product
        now = self._clock()
        sale = Sale(
            product_id=product.id,
            product_name=product.name,
            quantity=request.quantity,
            unit_price=product.selling_price,
            total_amount=request.quantity * product.selling_price,
            profit=request.quantity * (product.selling_price - product.cost_price),
            payment_method=request.payment_method,
            mobile_money_provider=request.mobile_money_provider,
            mobile_money_reference=request.mobile_money_reference,
            customer_phone=request.customer_phone,
            created_at=now,
        )

        receipt = None
        changes = {}
        if issue_receipt:
            receipt = build_receipt(sale)
            sale = sale.model_copy(update={"receipt_id": receipt.id})
            changes[self._receipts.key] = self._receipts.list() + [receipt]

        # Step 4: compute both collections, then commit once
        products[index] = product.model_copy(
            update={"stock": product.stock - request.quantity, "updated_at": now}
        )
        changes[self._products.key] = products
        changes[self._sales.key] = self._sales.list() + [sale]
        self._commit(changes)

        self._log(
            AuditEventBuilder.sale_recorded(
                sale.id,
                sale.product_name,
                sale.quantity,
                sale.total_amount,
                products[index].stock,
            )
        )
        if receipt is not None:
            self._log(AuditEventBuilder.receipt_issued(receipt.id, sale.id))
        return sale, receipt

    def issue_receipt(self, sale_id: UUID) -> Receipt:
        """
        Create the receipt for a sale and attach it.

        A sale gets at most one receipt: if it already has one, that
        receipt is returned and nothing is written.

        Raises:
            RecordNotFoundError: If the sale does not exist
        """
        sale = self._sales.require(sale_id)
        if sale.receipt_id is not None:
            existing = self._receipts.get(sale.receipt_id)
            if existing is not None:
                return existing

        receipt = build_receipt(sale)
        sales = [
            s.model_copy(update={"receipt_id": receipt.id}) if s.id == sale_id else s
            for s in self._sales.list()
        ]
        self._commit({
            self._receipts.key: self._receipts.list() + [receipt],
            self._sales.key: sales,
        })
        self._log(AuditEventBuilder.receipt_issued(receipt.id, sale_id))
        return receipt

    # =========================================================================
    # REMOVAL
    # =========================================================================

    def delete_sale(self, sale_id: UUID, restock: bool = True) -> bool:
        """
        Remove a sale, returning its quantity to stock when asked.

        Stock is only returned if the product still exists. The sale's
        receipt, if any, stays in the receipt history.

        Returns:
            True if the sale existed
        """
        sales = self._sales.list()
        sale = next((s for s in sales if s.id == sale_id), None)
        if sale is None:
            return False

        changes = {self._sales.key: [s for s in sales if s.id != sale_id]}
        restocked = False
        if restock:
            products = self._products.list()
            index = self._index_of(products, sale.product_id)
            if index is not None:
                product = products[index]
                products[index] = product.model_copy(
                    update={
                        "stock": product.stock + sale.quantity,
                        "updated_at": self._clock(),
                    }
                )
                changes[self._products.key] = products
                restocked = True

        self._commit(changes)
        self._log(AuditEventBuilder.sale_deleted(sale_id, restocked))
        return True

    def delete_product(self, product_id: UUID) -> bool:
        """
        Remove a product according to the configured delete policy.

        RETAIN_SALES: sales stay as historical fact. Their product_name and
        unit_price snapshots keep them complete; product_id just dangles.

        CASCADE_SALES: sales of the product are removed in the same commit.

        Receipts are never removed.

        Returns:
            True if the product existed
        """
        products = self._products.list()
        remaining = [p for p in products if p.id != product_id]
        if len(remaining) == len(products):
            return False

        changes = {self._products.key: remaining}
        removed_sales = 0
        if self._delete_policy == ProductDeletePolicy.CASCADE_SALES:
            sales = self._sales.list()
            kept = [s for s in sales if s.product_id != product_id]
            removed_sales = len(sales) - len(kept)
            changes[self._sales.key] = kept

        self._commit(changes)
        self._log(
            AuditEventBuilder.product_deleted(
                product_id, self._delete_policy.value, removed_sales
            )
        )
        return True

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _index_of(products: list[Product], product_id: UUID) -> Optional[int]:
        for index, product in enumerate(products):
            if product.id == product_id:
                return index
        return None

    def _commit(self, changes: dict) -> bool:
        ok = self._store.set_many(changes)
        if not ok:
            self._logger.error(
                "ledger_not_persisted",
                unsynced_keys=sorted(self._store.unsynced_keys),
            )
            self._log(
                AuditEventBuilder.storage_write_failed(list(self._store.unsynced_keys))
            )
        return ok

    def _reject(self, request: SaleRequest, reason: str) -> None:
        self._log(
            AuditEventBuilder.sale_rejected(request.product_id, request.quantity, reason)
        )

    def _log(self, event) -> None:
        if self._audit:
            self._audit.log(event)
