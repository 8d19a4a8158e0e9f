"""
Analytics Models

Outputs of the analytics aggregator. Everything here is derived data:
it is recomputed from the ledger on demand and never stored.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from bizledger.models.ledger import Language, Product, Sale


class Period(str, Enum):
    """Granularity of a trend chart."""
    DAILY = "daily"      # 7 calendar days ending today
    WEEKLY = "weekly"    # 4 seven-day windows ending today
    MONTHLY = "monthly"  # 6 calendar months ending this month


class Bucket(BaseModel):
    """A time interval, inclusive on both ends."""

    label: str
    anchor: date
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class TrendPoint(BaseModel):
    """Revenue, expenses and profit for one bucket."""

    label: str
    start: date
    end: date
    revenue: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    sale_count: int = 0
    expense_count: int = 0


class TopProduct(BaseModel):
    product_id: UUID
    product_name: str
    quantity: int
    revenue: Decimal


class SummaryKPIs(BaseModel):
    """Grand totals over the whole ledger. Independent of the period."""

    total_revenue: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    profit_margin: Decimal = Field(
        default=Decimal("0"),
        description="net_profit / total_revenue * 100, 0 when there is no revenue"
    )
    gross_profit: Decimal = Field(
        default=Decimal("0"),
        description="Sum of per-sale profit (selling price minus cost)"
    )


class AnalyticsReport(BaseModel):
    period: Period
    trend: list[TrendPoint]
    top_products: list[TopProduct]
    summary: SummaryKPIs
    insights: dict[Language, str]


class DashboardSummary(BaseModel):
    """Figures shown on the home screen."""

    day: date
    todays_revenue: Decimal
    todays_profit: Decimal
    todays_transactions: int
    yesterdays_revenue: Decimal
    revenue_change_percent: Decimal
    todays_expenses: Decimal
    total_products: int
    low_stock_products: list[Product]
    recent_sales: list[Sale]
    top_product: Optional[str] = None
