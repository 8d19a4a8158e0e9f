"""Analytics over the ledger."""

from bizledger.analytics.aggregator import (
    UNKNOWN_PRODUCT,
    AnalyticsAggregator,
    build_buckets,
    find_point,
    profit_margin,
    summarize,
    top_selling_products,
    trend_series,
)
from bizledger.analytics.insights import generate_insight, generate_insights

__all__ = [
    "UNKNOWN_PRODUCT",
    "AnalyticsAggregator",
    "build_buckets",
    "find_point",
    "generate_insight",
    "generate_insights",
    "profit_margin",
    "summarize",
    "top_selling_products",
    "trend_series",
]
