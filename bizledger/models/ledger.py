"""
Core Data Models for BizLedger

These models define the strict schemas for every record the ledger keeps.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through JSON storage without losing dates or decimals

DESIGN DECISION: Stored records are frozen. A change to a product produces
a replacement record, so nothing outside the repositories can mutate the
in-memory mirror behind the store's back.

DESIGN DECISION: Money is Decimal. Sale.total_amount must equal
quantity * unit_price exactly and floats cannot promise that.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """How a sale was paid or an expense was settled."""
    CASH = "cash"
    MOBILE_MONEY = "mobile-money"
    BANK_TRANSFER = "bank-transfer"


class MobileMoneyProvider(str, Enum):
    """Supported mobile-money networks."""
    MTN = "MTN"
    AIRTEL = "Airtel"


class ExpenseCategory(str, Enum):
    """
    Expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent categorization and enables reliable reporting.
    """
    RENT = "Rent"
    UTILITIES = "Utilities"
    INVENTORY = "Inventory"
    TRANSPORTATION = "Transportation"
    MARKETING = "Marketing"
    EQUIPMENT = "Equipment"
    STAFF_SALARIES = "Staff Salaries"
    OTHER = "Other"


class Language(str, Enum):
    """Interface and insight languages."""
    ENGLISH = "en"
    LUGANDA = "lg"


Money = Annotated[Decimal, Field(ge=0)]


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class _MobileMoneyFields(BaseModel):
    """Mobile-money details shared by sales and expenses."""

    payment_method: PaymentMethod = PaymentMethod.CASH
    mobile_money_provider: Optional[MobileMoneyProvider] = None
    mobile_money_reference: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Transaction reference from the provider"
    )

    @field_validator("mobile_money_reference", mode="before")
    @classmethod
    def blank_reference(cls, v):
        return _blank_to_none(v) if isinstance(v, str) else v

    @model_validator(mode="after")
    def mobile_money_only(self):
        """Provider and reference only make sense for mobile-money payments."""
        if self.payment_method != PaymentMethod.MOBILE_MONEY and (
            self.mobile_money_provider or self.mobile_money_reference
        ):
            raise ValueError(
                "Mobile money details require the mobile-money payment method"
            )
        return self


# =============================================================================
# PRODUCTS
# =============================================================================

class ProductDraft(BaseModel):
    """Caller-provided fields for a new product."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    cost_price: Money
    selling_price: Money
    stock: int = Field(default=0, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, v):
        return _blank_to_none(v) if isinstance(v, str) else v


class ProductUpdate(BaseModel):
    """Partial update of a product. Only fields that were set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    cost_price: Optional[Money] = None
    selling_price: Optional[Money] = None
    stock: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, max_length=100)

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, v):
        return _blank_to_none(v) if isinstance(v, str) else v


class Product(BaseModel):
    """
    A product held in inventory.

    Stock is only ever negative as a symptom of a bug; the coordinator
    refuses any sale that would take it below zero.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    cost_price: Money
    selling_price: Money
    stock: int
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def unit_margin(self) -> Decimal:
        return self.selling_price - self.cost_price

    def is_low_stock(self, threshold: int) -> bool:
        return self.stock <= threshold


# =============================================================================
# SALES
# =============================================================================

class SaleRequest(_MobileMoneyFields):
    """What the cashier asks for when recording a sale."""
    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: UUID
    quantity: int = Field(..., gt=0)
    customer_phone: Optional[str] = Field(default=None, max_length=30)

    @field_validator("customer_phone", mode="before")
    @classmethod
    def blank_phone(cls, v):
        return _blank_to_none(v) if isinstance(v, str) else v


class Sale(_MobileMoneyFields):
    """
    A completed sale.

    product_name and unit_price are SNAPSHOTS taken at sale time. They keep
    the sale accurate after the product is edited or deleted, and they are
    never refreshed from the live product.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    product_id: UUID
    product_name: str
    quantity: int = Field(..., gt=0)
    unit_price: Money
    total_amount: Money
    profit: Decimal
    customer_phone: Optional[str] = None
    receipt_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def total_matches_quantity(self) -> "Sale":
        if self.total_amount != self.quantity * self.unit_price:
            raise ValueError("Sale total must equal quantity x unit price")
        return self


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseDraft(_MobileMoneyFields):
    """Caller-provided fields for a new expense."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category: ExpenseCategory
    amount: Money
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return _blank_to_none(v) if isinstance(v, str) else v


class Expense(_MobileMoneyFields):
    """A recorded business expense. Immutable; deletable."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    category: ExpenseCategory
    amount: Money
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# RECEIPTS
# =============================================================================

class ReceiptLineItem(BaseModel):
    """One itemized line on a receipt."""
    model_config = ConfigDict(frozen=True)

    product_name: str
    quantity: int = Field(..., gt=0)
    unit_price: Money
    line_total: Money

    @model_validator(mode="after")
    def line_total_matches(self) -> "ReceiptLineItem":
        if self.line_total != self.quantity * self.unit_price:
            raise ValueError("Line total must equal quantity x unit price")
        return self


class Receipt(BaseModel):
    """
    Immutable snapshot of a completed sale, kept for reprint and export.

    Created once per sale and never changed afterwards.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    sale_id: UUID
    customer_phone: Optional[str] = None
    items: tuple[ReceiptLineItem, ...] = Field(..., min_length=1)
    subtotal: Money
    total: Money
    payment_method: PaymentMethod
    created_at: datetime

    @property
    def short_id(self) -> str:
        return str(self.id)[:8]


# =============================================================================
# SETTINGS
# =============================================================================

class BusinessSettings(BaseModel):
    """Singleton settings record. Created with defaults, updated in place."""
    model_config = ConfigDict(str_strip_whitespace=True)

    business_name: str = Field(default="My Business", min_length=1, max_length=120)
    logo_url: Optional[str] = None
    currency: str = Field(default="UGX", min_length=3, max_length=3)
    language: Language = Language.ENGLISH
    printer_connected: bool = False
    printer_name: Optional[str] = None
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def printer_state(self) -> "BusinessSettings":
        if self.printer_connected and not self.printer_name:
            raise ValueError("A connected printer needs a name")
        return self
