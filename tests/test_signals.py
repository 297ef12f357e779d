"""Tests for the metric extractors.

Each extractor maps a product to a sub-score; missing data must count as
zero rather than raise.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.ranking import signals
from src.ranking.models import AnalyticsSnapshot, ProductRecord

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_sales_velocity_saturates():
    """Three sales over ten days is well above 0.1/day and saturates at 1."""
    product = ProductRecord(
        id="p1",
        analytics=AnalyticsSnapshot(sales_count=3, created_at=NOW - timedelta(days=10)),
    )
    assert signals.sales_velocity(product, NOW) == 1.0


def test_sales_velocity_scales_with_days_active():
    product = ProductRecord(
        id="p1",
        analytics=AnalyticsSnapshot(sales_count=1, created_at=NOW - timedelta(days=100)),
    )
    assert signals.sales_velocity(product, NOW) == pytest.approx(0.1)


def test_sales_velocity_falls_back_to_product_creation_date():
    product = ProductRecord(
        id="p1",
        created_at=NOW - timedelta(days=50),
        analytics=AnalyticsSnapshot(sales_count=1),
    )
    assert signals.sales_velocity(product, NOW) == pytest.approx(0.2)


def test_sales_velocity_counts_at_least_one_day():
    """A product created today is treated as one day old."""
    product = ProductRecord(
        id="p1",
        analytics=AnalyticsSnapshot(sales_count=0.05, created_at=NOW),
    )
    assert signals.sales_velocity(product, NOW) == pytest.approx(0.5)


def test_missing_analytics_count_as_zero():
    product = ProductRecord(id="p1")

    assert signals.sales_velocity(product, NOW) == 0.0
    assert signals.engagement_rate(product) == 0.0
    assert signals.rating_quality(product) == 0.0
    assert signals.profit_margin(product) == 0.0
    assert signals.stock_score(product) == 0.0
    assert signals.freshness_score(product, NOW) == 0.0


def test_rating_quality_review_bonus_is_capped():
    few_reviews = ProductRecord(id="p1", average_rating=4, review_count=5)
    many_reviews = ProductRecord(id="p2", average_rating=3, review_count=500)
    top_rated = ProductRecord(id="p3", average_rating=5, review_count=100)

    assert signals.rating_quality(few_reviews) == pytest.approx(0.9)
    assert signals.rating_quality(many_reviews) == pytest.approx(0.8)
    assert signals.rating_quality(top_rated) == 1.0


def test_engagement_rate_weights_purchases_over_carts():
    product = ProductRecord(
        id="p1",
        analytics=AnalyticsSnapshot(views=100, cart_additions=10, purchases=4),
    )
    assert signals.engagement_rate(product) == pytest.approx(0.4)


def test_engagement_rate_without_views_is_bounded():
    product = ProductRecord(id="p1", analytics=AnalyticsSnapshot(cart_additions=3))
    assert signals.engagement_rate(product) == 1.0


def test_profit_margin_uses_cost_ratio_when_cost_missing():
    product = ProductRecord(id="p1", price=100)

    assert signals.profit_margin(product) == pytest.approx(0.4)
    assert signals.profit_margin(product, cost_ratio=0.75) == pytest.approx(0.25)


def test_profit_margin_with_explicit_cost():
    product = ProductRecord(id="p1", price=100, cost=30)
    assert signals.profit_margin(product) == pytest.approx(0.7)


def test_profit_margin_can_be_negative_before_clamping():
    product = ProductRecord(id="p1", price=100, cost=150)
    assert signals.profit_margin(product) < 0


@pytest.mark.parametrize(
    "stock, expected",
    [(0, 0.0), (3, 0.3), (25, 0.5), (50, 1.0), (60, 0.7)],
)
def test_stock_score_bands(stock, expected):
    product = ProductRecord(id="p1", stock_quantity=stock)
    assert signals.stock_score(product) == pytest.approx(expected)


def test_freshness_decays_over_window():
    assert signals.freshness_score(ProductRecord(id="a", created_at=NOW), NOW) == 1.0
    assert signals.freshness_score(
        ProductRecord(id="b", created_at=NOW - timedelta(days=45)), NOW
    ) == pytest.approx(0.5)
    assert signals.freshness_score(
        ProductRecord(id="c", created_at=NOW - timedelta(days=200)), NOW
    ) == 0.0


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2024, 12, 22)
    product = ProductRecord(id="p1", created_at=naive)

    assert signals.days_between(naive, NOW) == pytest.approx(10.0)
    assert signals.freshness_score(product, NOW) == pytest.approx(80 / 90)
