"""Metric extractors for product scoring.

Each extractor maps a product (and its analytics) to a sub-score in [0, 1].
Missing analytics or product fields count as zero so that a partially loaded
record still gets a conservative score instead of an error.
"""

from datetime import datetime, timezone
from typing import Optional

from src.ranking.config import (
    DEFAULT_COST_RATIO,
    DEFAULT_OPTIMAL_STOCK,
    FRESHNESS_WINDOW_DAYS,
    LOW_STOCK_SCORE,
    LOW_STOCK_THRESHOLD,
    OVERSTOCK_SCORE,
)
from src.ranking.models import AnalyticsSnapshot, ProductRecord

SECONDS_PER_DAY = 86400


def _value(number: Optional[float]) -> float:
    return float(number) if number else 0.0


def as_utc(moment: datetime) -> datetime:
    # Catalog exports may carry naive timestamps; treat them as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def days_between(start: Optional[datetime], now: datetime) -> float:
    """Days elapsed from ``start`` to ``now``; 0 when ``start`` is unknown."""
    if start is None:
        return 0.0
    delta = as_utc(now) - as_utc(start)
    return delta.total_seconds() / SECONDS_PER_DAY


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def analytics_of(product: ProductRecord) -> AnalyticsSnapshot:
    return product.analytics or AnalyticsSnapshot()


def sales_velocity(product: ProductRecord, now: datetime) -> float:
    """Sales per active day, scaled so 0.1 sales/day saturates the signal."""
    analytics = analytics_of(product)
    started = analytics.created_at or product.created_at
    days_active = max(1.0, days_between(started, now))
    return min(1.0, (_value(analytics.sales_count) / days_active) * 10)


def rating_quality(product: ProductRecord) -> float:
    rating_score = _value(product.average_rating) / 5
    count_bonus = min(0.2, _value(product.review_count) / 50)
    return min(1.0, rating_score + count_bonus)


def engagement_rate(product: ProductRecord) -> float:
    """Weighted cart and purchase actions per view."""
    analytics = analytics_of(product)
    views = max(1.0, _value(analytics.views))
    actions = _value(analytics.cart_additions) * 2 + _value(analytics.purchases) * 5
    return min(1.0, actions / views)


def profit_margin(product: ProductRecord, cost_ratio: float = DEFAULT_COST_RATIO) -> float:
    price = _value(product.price)
    if price <= 0:
        return 0.0
    cost = product.cost if product.cost is not None else price * cost_ratio
    return min(1.0, (price - cost) / price)


def stock_score(product: ProductRecord, optimal_stock: int = DEFAULT_OPTIMAL_STOCK) -> float:
    stock = product.stock_quantity or 0
    if stock <= 0:
        return 0.0
    if stock < LOW_STOCK_THRESHOLD:
        return LOW_STOCK_SCORE
    if stock > optimal_stock:
        return OVERSTOCK_SCORE
    return min(1.0, stock / optimal_stock)


def freshness_score(product: ProductRecord, now: datetime) -> float:
    if product.created_at is None:
        return 0.0
    days_old = days_between(product.created_at, now)
    return clamp((FRESHNESS_WINDOW_DAYS - days_old) / FRESHNESS_WINDOW_DAYS)
