"""
Entity Repositories

Typed CRUD over the ledger collections. Each repository owns one key in
the PersistentStore and enforces its record type's invariants on the way in.

Collections and what they allow:
- products:  add, update, remove (remove is routed to
             SaleCoordinator.delete_product, which applies the delete policy)
- expenses:  add, remove (immutable once created)
- receipts:  add (append-only)
- sales:     read-only here; the coordinator is the only writer

list() always returns the full collection in insertion order.
Sorting and filtering are left to the caller.
"""

from datetime import datetime
from typing import Any, Callable, ClassVar, Generic, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError

from bizledger.audit import AuditLogger
from bizledger.exceptions import (
    FormValidationError,
    ImmutableRecordError,
    LedgerError,
    RecordNotFoundError,
)
from bizledger.models.audit import AuditEventBuilder
from bizledger.models.ledger import (
    BusinessSettings,
    Expense,
    ExpenseDraft,
    Product,
    ProductDraft,
    ProductUpdate,
    Receipt,
    Sale,
)
from bizledger.services.storage import PersistentStore


RecordT = TypeVar("RecordT", bound=BaseModel)

Clock = Callable[[], datetime]


def coerce_model(model: type[BaseModel], data: Union[BaseModel, dict]) -> Any:
    """
    Validate raw input into model.

    pydantic's ValidationError is turned into FormValidationError so callers
    handle a single exception type for rejected input.
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise FormValidationError(messages)


def commit(
    store: PersistentStore,
    audit_logger: Optional[AuditLogger],
    key: str,
    value: Any,
) -> bool:
    """Write one key; a failed durable write is audited as storage_write_failed."""
    ok = store.set(key, value)
    if not ok and audit_logger:
        audit_logger.log(
            AuditEventBuilder.storage_write_failed(list(store.unsynced_keys))
        )
    return ok


class CollectionReader(Generic[RecordT]):
    """Read access to one stored collection."""

    key: ClassVar[str]
    record_type: ClassVar[type[BaseModel]]
    entity_name: ClassVar[str]

    def __init__(
        self,
        store: PersistentStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._audit = audit_logger
        self._clock = clock
        store.register(self.key, list[self.record_type], list)

    def get(self, record_id: UUID) -> Optional[RecordT]:
        """Find a record by id, None if absent."""
        for record in self._store.get(self.key, []):
            if record.id == record_id:
                return record
        return None

    def require(self, record_id: UUID) -> RecordT:
        """Find a record by id or raise RecordNotFoundError."""
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.entity_name, record_id)
        return record

    def __len__(self) -> int:
        return len(self._store.get(self.key, []))

    def _commit(self, records: list) -> bool:
        return commit(self._store, self._audit, self.key, records)

    def _log(self, event) -> None:
        if self._audit:
            self._audit.log(event)

    # Defined last: the method name shadows the builtin in this class body.
    def list(self) -> "list[RecordT]":
        """Return the whole collection in insertion order."""
        return list(self._store.get(self.key, []))


class CrudRepository(CollectionReader[RecordT]):
    """Adds add/update/remove on top of CollectionReader."""

    draft_type: ClassVar[type[BaseModel]]
    update_type: ClassVar[Optional[type[BaseModel]]] = None

    def add(self, draft: Union[BaseModel, dict]) -> RecordT:
        """
        Create a record from caller-provided fields.

        Generates the id, stamps timestamps, appends and persists.

        Raises:
            FormValidationError: If the fields do not satisfy the draft schema
        """
        draft = coerce_model(self.draft_type, draft)
        record = self._new_record(draft, self._clock())
        records = self.list()
        records.append(record)
        self._commit(records)
        self._after_add(record)
        return record

    def update(self, record_id: UUID, changes: Union[BaseModel, dict]) -> RecordT:
        """
        Merge changes into an existing record and persist.

        Raises:
            ImmutableRecordError: If this collection does not allow updates
            RecordNotFoundError: If no record has record_id
            FormValidationError: If the merged record is invalid
        """
        if self.update_type is None:
            raise ImmutableRecordError(
                f"{self.entity_name.capitalize()} records cannot be changed"
            )
        update = coerce_model(self.update_type, changes)
        fields = self._changed_fields(update)

        records = self.list()
        for index, record in enumerate(records):
            if record.id == record_id:
                merged = coerce_model(
                    self.record_type,
                    {**record.model_dump(), **fields, "updated_at": self._clock()},
                )
                records[index] = merged
                self._commit(records)
                self._after_update(merged, fields)
                return merged

        raise RecordNotFoundError(self.entity_name, record_id)

    def remove(self, record_id: UUID) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was removed, False if the id was unknown
        """
        records = self.list()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self._commit(remaining)
        self._after_remove(record_id)
        return True

    def _new_record(self, draft: BaseModel, now: datetime) -> RecordT:
        return self.record_type(**draft.model_dump(), created_at=now)

    def _changed_fields(self, update: BaseModel) -> dict[str, Any]:
        return update.model_dump(exclude_unset=True)

    def _after_add(self, record: RecordT) -> None:
        pass

    def _after_update(self, record: RecordT, fields: dict[str, Any]) -> None:
        pass

    def _after_remove(self, record_id: UUID) -> None:
        pass


class ProductRepository(CrudRepository[Product]):
    key = "products"
    record_type = Product
    entity_name = "product"
    draft_type = ProductDraft
    update_type = ProductUpdate

    # Fields that may be cleared by passing None
    _NULLABLE = frozenset({"category"})

    def __init__(
        self,
        store: PersistentStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        super().__init__(store, audit_logger, clock)
        self._remove_handler: Optional[Callable[[UUID], bool]] = None

    def route_removal(self, handler: Callable[[UUID], bool]) -> None:
        """Send remove() to handler, which decides what happens to the product's sales."""
        self._remove_handler = handler

    def remove(self, record_id: UUID) -> bool:
        """
        Delete a product through the registered removal handler.

        Raises:
            LedgerError: If no SaleCoordinator has taken over removal
        """
        if self._remove_handler is None:
            raise LedgerError(
                "Products are removed through SaleCoordinator.delete_product"
            )
        return self._remove_handler(record_id)

    def low_stock(self, threshold: int) -> list[Product]:
        """Products at or below threshold, in insertion order."""
        return [p for p in self.list() if p.is_low_stock(threshold)]

    def _new_record(self, draft: BaseModel, now: datetime) -> Product:
        return Product(**draft.model_dump(), created_at=now, updated_at=now)

    def _changed_fields(self, update: BaseModel) -> dict[str, Any]:
        return {
            name: value
            for name, value in update.model_dump(exclude_unset=True).items()
            if value is not None or name in self._NULLABLE
        }

    def _after_add(self, record: Product) -> None:
        self._log(AuditEventBuilder.product_created(record.id, record.name, record.stock))

    def _after_update(self, record: Product, fields: dict[str, Any]) -> None:
        self._log(AuditEventBuilder.product_updated(record.id, fields))


class ExpenseRepository(CrudRepository[Expense]):
    key = "expenses"
    record_type = Expense
    entity_name = "expense"
    draft_type = ExpenseDraft

    def _after_add(self, record: Expense) -> None:
        self._log(
            AuditEventBuilder.expense_recorded(
                record.id, record.category.value, record.amount
            )
        )

    def _after_remove(self, record_id: UUID) -> None:
        self._log(AuditEventBuilder.expense_deleted(record_id))


class ReceiptRepository(CrudRepository[Receipt]):
    """Append-only store of receipt snapshots."""

    key = "receipts"
    record_type = Receipt
    entity_name = "receipt"
    draft_type = Receipt

    def remove(self, record_id: UUID) -> bool:
        raise ImmutableRecordError("Receipts are append-only")

    def _new_record(self, draft: BaseModel, now: datetime) -> Receipt:
        # Receipts arrive fully built by the receipt formatter
        return draft

    def _after_add(self, record: Receipt) -> None:
        self._log(AuditEventBuilder.receipt_issued(record.id, record.sale_id))


class SaleRepository(CollectionReader[Sale]):
    """Read side of the sales collection."""

    key = "sales"
    record_type = Sale
    entity_name = "sale"


class SettingsRepository:
    """The BusinessSettings singleton. Created on first access, never deleted."""

    key = "settings"

    def __init__(
        self,
        store: PersistentStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._audit = audit_logger
        self._clock = clock
        store.register(self.key, BusinessSettings, BusinessSettings)

    def get(self) -> BusinessSettings:
        return self._store.get(self.key)

    def update(self, **changes: Any) -> BusinessSettings:
        """
        Apply changes to the settings record.

        Raises:
            FormValidationError: If the result is not a valid settings record
        """
        current = self.get()
        updated = coerce_model(
            BusinessSettings,
            {**current.model_dump(), **changes, "updated_at": self._clock()},
        )
        commit(self._store, self._audit, self.key, updated)
        if self._audit:
            self._audit.log(AuditEventBuilder.settings_updated(changes))
        return updated
