"""
Audit Models for BizLedger

Every change to the ledger is logged for audit purposes.
This provides:
1. Complete traceability of stock movements and money
2. Debugging information when things go wrong
3. Ability to reconstruct what happened to a product

DESIGN DECISION: Audit logs are append-only. We never modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Inventory
    PRODUCT_CREATED = "product_created"
    PRODUCT_UPDATED = "product_updated"
    PRODUCT_DELETED = "product_deleted"

    # Sales
    SALE_RECORDED = "sale_recorded"
    SALE_REJECTED = "sale_rejected"
    SALE_DELETED = "sale_deleted"
    RECEIPT_ISSUED = "receipt_issued"

    # Expenses
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_DELETED = "expense_deleted"

    # Settings and devices
    SETTINGS_UPDATED = "settings_updated"
    PRINTER_CONNECTED = "printer_connected"
    PRINTER_DISCONNECTED = "printer_disconnected"
    DATA_EXPORTED = "data_exported"

    # System events
    STORAGE_WRITE_FAILED = "storage_write_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger change creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'product', 'sale', 'expense')"
    )
    entity_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.product_created(product.id, product.name, product.stock)
        event = AuditEventBuilder.expense_deleted(expense.id)
    """

    @staticmethod
    def product_created(product_id: UUID, name: str, stock: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRODUCT_CREATED,
            entity_type="product",
            entity_id=product_id,
            description=f"Product added: {name}",
            details={"name": name, "stock": stock},
        )

    @staticmethod
    def product_updated(product_id: UUID, changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRODUCT_UPDATED,
            entity_type="product",
            entity_id=product_id,
            description=f"Product updated: {', '.join(sorted(changes))}",
            details={k: str(v) for k, v in changes.items()},
        )

    @staticmethod
    def product_deleted(
        product_id: UUID,
        policy: str,
        removed_sales: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRODUCT_DELETED,
            entity_type="product",
            entity_id=product_id,
            description=f"Product deleted ({policy}, {removed_sales} sales removed)",
            details={"policy": policy, "removed_sales": removed_sales},
        )

    @staticmethod
    def sale_recorded(
        sale_id: UUID,
        product_name: str,
        quantity: int,
        total_amount: Decimal,
        remaining_stock: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_RECORDED,
            entity_type="sale",
            entity_id=sale_id,
            description=f"Sale recorded: {quantity} x {product_name}",
            details={
                "product_name": product_name,
                "quantity": quantity,
                "total_amount": str(total_amount),
                "remaining_stock": remaining_stock,
            },
        )

    @staticmethod
    def sale_rejected(product_id: UUID, quantity: int, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="product",
            entity_id=product_id,
            description=f"Sale rejected: {reason}",
            details={"quantity": quantity, "reason": reason},
        )

    @staticmethod
    def sale_deleted(sale_id: UUID, restocked: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_DELETED,
            entity_type="sale",
            entity_id=sale_id,
            description="Sale deleted" + (" and stock returned" if restocked else ""),
            details={"restocked": restocked},
        )

    @staticmethod
    def receipt_issued(receipt_id: UUID, sale_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_ISSUED,
            entity_type="receipt",
            entity_id=receipt_id,
            description="Receipt issued",
            details={"sale_id": str(sale_id)},
        )

    @staticmethod
    def expense_recorded(
        expense_id: UUID,
        category: str,
        amount: Decimal,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense recorded: {category} {amount}",
            details={"category": category, "amount": str(amount)},
        )

    @staticmethod
    def expense_deleted(expense_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
        )

    @staticmethod
    def settings_updated(changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            description=f"Settings updated: {', '.join(sorted(changes))}",
            details={k: str(v) for k, v in changes.items()},
        )

    @staticmethod
    def printer_connected(printer_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRINTER_CONNECTED,
            entity_type="printer",
            description=f"Connected to {printer_name}",
            details={"printer_name": printer_name},
        )

    @staticmethod
    def printer_disconnected() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRINTER_DISCONNECTED,
            entity_type="printer",
            description="Printer disconnected",
        )

    @staticmethod
    def data_exported(kind: str, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            description=f"Exported {row_count} {kind} rows",
            details={"kind": kind, "row_count": row_count},
        )

    @staticmethod
    def storage_write_failed(keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Changes kept in memory but not yet saved",
            details={"unsynced_keys": sorted(keys)},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
