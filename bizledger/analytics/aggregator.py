"""
Analytics Aggregator

DESIGN DECISION: Analytics are a PURE function of
(products, sales, expenses, period, now). Nothing is cached or stored,
so a chart can never disagree with the ledger it was drawn from.

Buckets:
- daily:   the 7 calendar days ending today, labeled Mon..Sun
- weekly:  4 seven-day windows, each ending on an anchor date
           (today, today-7, today-14, today-21), labeled "Week N" with
           N = ceil(anchor.day / 7)
- monthly: the 6 calendar months ending this month, labeled Jan..Dec

With BucketMatching.RANGE a record falls in the bucket whose interval holds
its calendar day. BucketMatching.ANCHOR_DAY reproduces the legacy charts,
which only counted records dated exactly on each bucket's anchor day.

Grand totals (SummaryKPIs) never depend on the period.
"""

from calendar import monthrange
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from bizledger.analytics.insights import generate_insights
from bizledger.config import BucketMatching
from bizledger.models.analytics import (
    AnalyticsReport,
    Bucket,
    DashboardSummary,
    Period,
    SummaryKPIs,
    TopProduct,
    TrendPoint,
)
from bizledger.models.ledger import Expense, Product, Sale


WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
UNKNOWN_PRODUCT = "Unknown Product"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


# =============================================================================
# BUCKETS
# =============================================================================

def _month_start(today: date, months_back: int) -> date:
    index = today.year * 12 + (today.month - 1) - months_back
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def build_buckets(period: Period, today: date) -> list[Bucket]:
    """Buckets for period, oldest first, the last one containing today."""
    buckets = []
    if period == Period.DAILY:
        for days_back in range(6, -1, -1):
            day = today - timedelta(days=days_back)
            buckets.append(
                Bucket(label=WEEKDAY_LABELS[day.weekday()], anchor=day, start=day, end=day)
            )
    elif period == Period.WEEKLY:
        for weeks_back in range(3, -1, -1):
            anchor = today - timedelta(days=7 * weeks_back)
            buckets.append(
                Bucket(
                    label=f"Week {(anchor.day + 6) // 7}",
                    anchor=anchor,
                    start=anchor - timedelta(days=6),
                    end=anchor,
                )
            )
    elif period == Period.MONTHLY:
        for months_back in range(5, -1, -1):
            start = _month_start(today, months_back)
            end = start.replace(day=monthrange(start.year, start.month)[1])
            buckets.append(
                Bucket(label=MONTH_LABELS[start.month - 1], anchor=start, start=start, end=end)
            )
    else:
        raise ValueError(f"Unknown period: {period}")
    return buckets


def _in_bucket(bucket: Bucket, moment: datetime, matching: BucketMatching) -> bool:
    day = moment.date()
    if matching == BucketMatching.ANCHOR_DAY:
        return day == bucket.anchor
    return bucket.contains(day)


# =============================================================================
# SERIES AND RANKINGS
# =============================================================================

def trend_series(
    sales: Sequence[Sale],
    expenses: Sequence[Expense],
    period: Period,
    now: datetime,
    matching: BucketMatching = BucketMatching.RANGE,
) -> list[TrendPoint]:
    """Revenue, expenses and profit per bucket."""
    points = []
    for bucket in build_buckets(period, now.date()):
        bucket_sales = [s for s in sales if _in_bucket(bucket, s.created_at, matching)]
        bucket_expenses = [
            e for e in expenses if _in_bucket(bucket, e.created_at, matching)
        ]
        revenue = sum((s.total_amount for s in bucket_sales), _ZERO)
        expense_total = sum((e.amount for e in bucket_expenses), _ZERO)
        points.append(
            TrendPoint(
                label=bucket.label,
                start=bucket.start,
                end=bucket.end,
                revenue=revenue,
                expenses=expense_total,
                profit=revenue - expense_total,
                sale_count=len(bucket_sales),
                expense_count=len(bucket_expenses),
            )
        )
    return points


def top_selling_products(
    products: Sequence[Product],
    sales: Sequence[Sale],
    limit: int = 5,
) -> list[TopProduct]:
    """
    Products ranked by units sold, at most limit entries.

    Names come from the current product list; sales of deleted products
    show UNKNOWN_PRODUCT. Ties keep the order in which each product was
    first sold (sorted() is stable).
    """
    names = {p.id: p.name for p in products}
    quantities: dict = {}
    revenues: dict = {}
    for sale in sales:
        quantities[sale.product_id] = quantities.get(sale.product_id, 0) + sale.quantity
        revenues[sale.product_id] = revenues.get(sale.product_id, _ZERO) + sale.total_amount

    ranked = sorted(quantities.items(), key=lambda item: item[1], reverse=True)
    return [
        TopProduct(
            product_id=product_id,
            product_name=names.get(product_id, UNKNOWN_PRODUCT),
            quantity=quantity,
            revenue=revenues[product_id],
        )
        for product_id, quantity in ranked[:limit]
    ]


def profit_margin(net_profit: Decimal, revenue: Decimal) -> Decimal:
    """net_profit as a percentage of revenue; 0 when there is no revenue."""
    if revenue == 0:
        return _ZERO
    return net_profit / revenue * _HUNDRED


def summarize(sales: Iterable[Sale], expenses: Iterable[Expense]) -> SummaryKPIs:
    sales = list(sales)
    total_revenue = sum((s.total_amount for s in sales), _ZERO)
    total_expenses = sum((e.amount for e in expenses), _ZERO)
    net_profit = total_revenue - total_expenses
    return SummaryKPIs(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=net_profit,
        profit_margin=profit_margin(net_profit, total_revenue),
        gross_profit=sum((s.profit for s in sales), _ZERO),
    )


# =============================================================================
# AGGREGATOR
# =============================================================================

class AnalyticsAggregator:
    """
    Bundles the analytics functions with their configuration.

    GUARANTEES:
    - Reads its inputs, never mutates them
    - Every total is the plain sum of the records it covers
    """

    def __init__(
        self,
        matching: BucketMatching = BucketMatching.RANGE,
        top_limit: int = 5,
        low_stock_threshold: int = 5,
        recent_limit: int = 5,
    ):
        self._matching = matching
        self._top_limit = top_limit
        self._low_stock_threshold = low_stock_threshold
        self._recent_limit = recent_limit

    @property
    def low_stock_threshold(self) -> int:
        return self._low_stock_threshold

    def report(
        self,
        products: Sequence[Product],
        sales: Sequence[Sale],
        expenses: Sequence[Expense],
        period: Period,
        now: datetime,
    ) -> AnalyticsReport:
        top = top_selling_products(products, sales, self._top_limit)
        summary = summarize(sales, expenses)
        return AnalyticsReport(
            period=period,
            trend=trend_series(sales, expenses, period, now, self._matching),
            top_products=top,
            summary=summary,
            insights=generate_insights(
                summary.profit_margin, top[0].product_name if top else None
            ),
        )

    def dashboard(
        self,
        products: Sequence[Product],
        sales: Sequence[Sale],
        expenses: Sequence[Expense],
        now: datetime,
    ) -> DashboardSummary:
        """Today-at-a-glance figures for the home screen."""
        today = now.date()
        yesterday = today - timedelta(days=1)

        todays_sales = [s for s in sales if s.created_at.date() == today]
        todays_revenue = sum((s.total_amount for s in todays_sales), _ZERO)
        yesterdays_revenue = sum(
            (s.total_amount for s in sales if s.created_at.date() == yesterday), _ZERO
        )
        recent = sorted(sales, key=lambda s: s.created_at, reverse=True)
        top = top_selling_products(products, sales, 1)

        return DashboardSummary(
            day=today,
            todays_revenue=todays_revenue,
            todays_profit=sum((s.profit for s in todays_sales), _ZERO),
            todays_transactions=len(todays_sales),
            yesterdays_revenue=yesterdays_revenue,
            revenue_change_percent=_percent_change(todays_revenue, yesterdays_revenue),
            todays_expenses=sum(
                (e.amount for e in expenses if e.created_at.date() == today), _ZERO
            ),
            total_products=len(products),
            low_stock_products=[
                p for p in products if p.is_low_stock(self._low_stock_threshold)
            ],
            recent_sales=recent[: self._recent_limit],
            top_product=top[0].product_name if top else None,
        )


def _percent_change(current: Decimal, previous: Decimal) -> Decimal:
    if previous == 0:
        return _ZERO
    return ((current - previous) / previous * _HUNDRED).quantize(Decimal("1"))


def find_point(trend: Sequence[TrendPoint], day: date) -> Optional[TrendPoint]:
    """The trend point whose interval holds day, if any."""
    for point in trend:
        if point.start <= day <= point.end:
            return point
    return None
