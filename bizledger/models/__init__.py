"""
Data Models Package

This package contains all Pydantic models used by BizLedger.
Every record the ledger stores must conform to these schemas.
"""

from bizledger.models.ledger import (
    BusinessSettings,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Language,
    MobileMoneyProvider,
    PaymentMethod,
    Product,
    ProductDraft,
    ProductUpdate,
    Receipt,
    ReceiptLineItem,
    Sale,
    SaleRequest,
)
from bizledger.models.analytics import (
    AnalyticsReport,
    Bucket,
    DashboardSummary,
    Period,
    SummaryKPIs,
    TopProduct,
    TrendPoint,
)
from bizledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from bizledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger models
    "BusinessSettings",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "Language",
    "MobileMoneyProvider",
    "PaymentMethod",
    "Product",
    "ProductDraft",
    "ProductUpdate",
    "Receipt",
    "ReceiptLineItem",
    "Sale",
    "SaleRequest",
    # Analytics models
    "AnalyticsReport",
    "Bucket",
    "DashboardSummary",
    "Period",
    "SummaryKPIs",
    "TopProduct",
    "TrendPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
