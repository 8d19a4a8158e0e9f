"""
Main Orchestrator for BizLedger

This module ties together all the components and defines the
entry points the UI calls:
1. Inventory (validate → add/update/delete product)
2. Sales (record or checkout → stock decremented in the same commit)
3. Expenses (validate → record/delete)
4. Reporting (dashboard, analytics, receipts, CSV exports)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Forms are validated before they reach a repository
- Stock and sales only change together, through the SaleCoordinator
- Every mutation is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from bizledger.analytics import AnalyticsAggregator
from bizledger.audit import AuditLogger
from bizledger.config import ProductDeletePolicy, get_settings
from bizledger.exceptions import FormValidationError, NothingToExportError
from bizledger.exports import CsvExport, ExportKind, build_export
from bizledger.models import (
    AnalyticsReport,
    AuditEvent,
    AuditEventBuilder,
    BusinessSettings,
    DashboardSummary,
    Expense,
    Period,
    Product,
    Receipt,
    Sale,
    SaleRequest,
    ValidationResult,
)
from bizledger.receipts import (
    render_html,
    render_share_message,
    render_text,
    search_receipts,
    share_link,
)
from bizledger.repositories import (
    ExpenseRepository,
    ProductRepository,
    ReceiptRepository,
    SaleRepository,
    SettingsRepository,
)
from bizledger.repositories.collections import Clock
from bizledger.services.devices import InsightRefresher, PrinterService
from bizledger.services.storage import (
    JsonFileBackend,
    KeyValueBackend,
    PersistentStore,
)
from bizledger.transactions import SaleCoordinator
from bizledger.validation import LedgerValidator


FormInput = Union[BaseModel, Mapping[str, Any]]


def _as_form(data: FormInput) -> dict[str, Any]:
    """Plain dict of the form with blank fields left out."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_none=True)
    return {k: v for k, v in data.items() if v is not None and v != ""}


_PRODUCT_FORM_FIELDS = {"name", "cost_price", "selling_price", "stock", "category"}


def _as_changes(data: FormInput) -> dict[str, Any]:
    """Fields an edit form sets. A blank category becomes None so it is cleared."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_unset=True)
    changes = _as_form(data)
    if "category" in data and not str(data["category"] or "").strip():
        changes["category"] = None
    return changes


class BusinessLedger:
    """
    Facade over the ledger for one business.

    Owns no state of its own: everything lives in the PersistentStore and
    is reached through the repositories.
    """

    def __init__(
        self,
        store: PersistentStore,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        aggregator: Optional[AnalyticsAggregator] = None,
        coordinator: Optional[SaleCoordinator] = None,
        delete_policy: ProductDeletePolicy = ProductDeletePolicy.RETAIN_SALES,
        printer_scan_seconds: float = 3.0,
        insight_refresh_seconds: float = 1.5,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._clock = clock
        self._logger = structlog.get_logger(__name__)

        self.products = ProductRepository(store, self._audit, clock)
        self.sales = SaleRepository(store, self._audit, clock)
        self.expenses = ExpenseRepository(store, self._audit, clock)
        self.receipts = ReceiptRepository(store, self._audit, clock)
        self.settings = SettingsRepository(store, self._audit, clock)

        self._validator = validator or LedgerValidator()
        self._aggregator = aggregator or AnalyticsAggregator()
        self._coordinator = coordinator or SaleCoordinator(
            store,
            self.products,
            self.sales,
            self.receipts,
            audit_logger=self._audit,
            delete_policy=delete_policy,
            clock=clock,
        )
        self.printer = PrinterService(self.settings, self._audit, printer_scan_seconds)
        self.insights = InsightRefresher(self.analytics_report, insight_refresh_seconds)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    # =========================================================================
    # INVENTORY
    # =========================================================================

    def validate_product(self, form: FormInput) -> ValidationResult:
        return self._validator.validate_product(_as_form(form))

    def add_product(self, form: FormInput) -> Product:
        """
        Validate and add a product.

        Raises:
            FormValidationError: If the form has errors (warnings pass)
        """
        form = _as_form(form)
        self._require_valid(self._validator.validate_product(form))
        return self.products.add(form)

    def update_product(self, product_id: UUID, changes: FormInput) -> Product:
        """
        Validate an edit against the product it produces, then save it.

        Blank fields keep their current value, except category, which a
        blank clears.

        Raises:
            RecordNotFoundError: If the product does not exist
            FormValidationError: If the edited product has errors
        """
        current = self.products.require(product_id)
        changes = _as_changes(changes)
        edited = {
            **current.model_dump(mode="json", include=_PRODUCT_FORM_FIELDS),
            **changes,
        }
        self._require_valid(self._validator.validate_product(edited))
        return self.products.update(product_id, changes)

    def delete_product(self, product_id: UUID) -> bool:
        """Delete a product, applying the coordinator's delete policy to its sales."""
        return self._coordinator.delete_product(product_id)

    def low_stock_products(self) -> list[Product]:
        return self.products.low_stock(self._aggregator.low_stock_threshold)

    # =========================================================================
    # SALES
    # =========================================================================

    def check_sale(self, form: Mapping[str, Any]) -> ValidationResult:
        """Advisory validation of a sale form, for display before submitting."""
        product = None
        raw_id = form.get("product_id")
        if raw_id:
            try:
                product = self.products.get(UUID(str(raw_id)))
            except ValueError:
                product = None
        return self._validator.validate_sale(form, product)

    def record_sale(self, request: Union[SaleRequest, dict]) -> Sale:
        return self._coordinator.record_sale(request)

    def checkout(self, request: Union[SaleRequest, dict]) -> tuple[Sale, Receipt]:
        return self._coordinator.checkout(request)

    def issue_receipt(self, sale_id: UUID) -> Receipt:
        return self._coordinator.issue_receipt(sale_id)

    def delete_sale(self, sale_id: UUID, restock: bool = True) -> bool:
        return self._coordinator.delete_sale(sale_id, restock=restock)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def validate_expense(self, form: FormInput) -> ValidationResult:
        return self._validator.validate_expense(_as_form(form))

    def record_expense(self, form: FormInput) -> Expense:
        """
        Validate and record an expense.

        Raises:
            FormValidationError: If the form has errors
        """
        form = _as_form(form)
        self._require_valid(self._validator.validate_expense(form))
        return self.expenses.add(form)

    def delete_expense(self, expense_id: UUID) -> bool:
        return self.expenses.remove(expense_id)

    # =========================================================================
    # REPORTING
    # =========================================================================

    def dashboard(self, now: Optional[datetime] = None) -> DashboardSummary:
        return self._aggregator.dashboard(
            self.products.list(),
            self.sales.list(),
            self.expenses.list(),
            now or self._clock(),
        )

    def analytics_report(
        self,
        period: Period = Period.WEEKLY,
        now: Optional[datetime] = None,
    ) -> AnalyticsReport:
        return self._aggregator.report(
            self.products.list(),
            self.sales.list(),
            self.expenses.list(),
            Period(period),
            now or self._clock(),
        )

    def search_receipts(self, term: str = "") -> list[Receipt]:
        """Receipts matching term, newest first."""
        matches = search_receipts(self.receipts.list(), term)
        return sorted(matches, key=lambda r: r.created_at, reverse=True)

    def receipt_text(self, receipt_id: UUID) -> str:
        return render_text(self.receipts.require(receipt_id), self.settings.get())

    def receipt_html(self, receipt_id: UUID) -> str:
        return render_html(self.receipts.require(receipt_id), self.settings.get())

    def receipt_share_message(self, receipt_id: UUID) -> str:
        return render_share_message(self.receipts.require(receipt_id), self.settings.get())

    def receipt_share_link(self, receipt_id: UUID) -> str:
        return share_link(self.receipts.require(receipt_id), self.settings.get())

    def export(self, kind: Union[ExportKind, str]) -> CsvExport:
        """
        Build a CSV export of one collection.

        Raises:
            NothingToExportError: If the collection is empty
        """
        kind = ExportKind(kind)
        records = {
            ExportKind.SALES: self.sales.list,
            ExportKind.EXPENSES: self.expenses.list,
            ExportKind.PRODUCTS: self.products.list,
        }[kind]()
        if not records:
            raise NothingToExportError(kind.value)
        export = build_export(kind, records)
        self._audit.log(AuditEventBuilder.data_exported(kind.value, export.row_count))
        return export

    def recent_activity(self, limit: int = 50) -> list[AuditEvent]:
        return self._audit.recent(limit)

    # =========================================================================
    # SETTINGS AND SYNC
    # =========================================================================

    def business_settings(self) -> BusinessSettings:
        return self.settings.get()

    def update_settings(self, **changes: Any) -> BusinessSettings:
        return self.settings.update(**changes)

    @property
    def is_synced(self) -> bool:
        return self._store.is_synced

    @property
    def unsynced_keys(self) -> frozenset[str]:
        return self._store.unsynced_keys

    def flush(self) -> bool:
        """Retry every write that failed earlier. True once all are durable."""
        ok = self._store.flush()
        if ok:
            self._logger.info("store_flushed")
        return ok

    def _require_valid(self, result: ValidationResult) -> None:
        if not result.is_valid:
            raise FormValidationError(
                self._validator.get_user_friendly_summary(result), result
            )


def create_app_components(
    data_dir: Optional[Path] = None,
    backend: Optional[KeyValueBackend] = None,
    clock: Clock = datetime.now,
) -> BusinessLedger:
    """
    Factory function to create all application components.

    Args:
        data_dir: Directory for the JSON files. Defaults to the configured one.
        backend: Explicit storage backend, e.g. InMemoryBackend for tests.
                 Takes precedence over data_dir.
        clock: Source of "now" for every timestamp.

    Returns:
        A wired BusinessLedger
    """
    settings = get_settings()
    storage_settings = settings.storage
    app_settings = settings.app

    if backend is None:
        backend = JsonFileBackend(data_dir or storage_settings.data_dir)

    store = PersistentStore(
        backend,
        retry_attempts=storage_settings.write_retry_attempts,
        retry_wait_seconds=storage_settings.write_retry_wait_seconds,
    )
    audit_logger = AuditLogger(
        store if storage_settings.persist_audit_log else None,
        retention=storage_settings.audit_retention,
    )
    aggregator = AnalyticsAggregator(
        matching=app_settings.bucket_matching,
        top_limit=app_settings.top_products_limit,
        low_stock_threshold=app_settings.low_stock_threshold,
        recent_limit=app_settings.recent_transactions_limit,
    )
    return BusinessLedger(
        store,
        audit_logger=audit_logger,
        validator=LedgerValidator(app_settings.low_stock_threshold),
        aggregator=aggregator,
        delete_policy=app_settings.product_delete_policy,
        printer_scan_seconds=app_settings.printer_scan_seconds,
        insight_refresh_seconds=app_settings.insight_refresh_seconds,
        clock=clock,
    )
