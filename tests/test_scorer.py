"""Tests for the weighted product scorer."""

import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.ranking.config import ScoringWeights
from src.ranking.models import (
    AnalyticsSnapshot,
    Campaign,
    ContextType,
    ProductRecord,
    ScoringContext,
)
from src.ranking.scorer import (
    calculate_algorithm_score,
    score_product,
    tier_for,
    with_score,
)

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def context():
    return ScoringContext(now=NOW)


@pytest.fixture
def plain_product():
    """Product with no sales, a 4-star rating, default cost and half stock."""
    return ProductRecord(
        id="p1",
        price=100,
        stock_quantity=25,
        average_rating=4,
        review_count=0,
        created_at=NOW,
        category_slug="elektronik",
        seller_id="seller-1",
    )


@pytest.fixture
def perfect_product():
    return ProductRecord(
        id="p2",
        price=100,
        cost=0,
        stock_quantity=50,
        average_rating=5,
        review_count=100,
        created_at=NOW,
        category_slug="elektronik",
        seller_id="seller-1",
        is_featured=True,
        analytics=AnalyticsSnapshot(
            views=10,
            cart_additions=10,
            purchases=10,
            sales_count=50,
            created_at=NOW - timedelta(days=5),
        ),
    )


def test_weighted_sum_of_sub_scores(plain_product, context):
    # 0.20*0.8 + 0.15*0.4 + 0.10*0.5 + 0.10*1.0
    breakdown = score_product(plain_product, context)

    assert breakdown.weighted_total == pytest.approx(0.37)
    assert breakdown.score == 0.37
    assert breakdown.campaign_boost == 0.0
    assert breakdown.context_boost == 0.0
    assert breakdown.tier == "regular"


def test_empty_product_scores_zero(context):
    breakdown = score_product(ProductRecord(id="empty"), context)

    assert breakdown.score == 0.0
    assert breakdown.tier == "regular"


def test_scoring_is_pure(plain_product, context):
    first = calculate_algorithm_score(plain_product, context)
    second = calculate_algorithm_score(plain_product, context)

    assert first == second
    assert plain_product.algorithm_score is None


def test_concurrent_scoring_agrees(plain_product, context):
    expected = score_product(plain_product, context)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: score_product(plain_product, context), range(64)))

    assert all(result == expected for result in results)
    assert plain_product.score_breakdown is None


def test_with_score_returns_copy(plain_product, context):
    scored = with_score(plain_product, context)

    assert scored is not plain_product
    assert scored.algorithm_score == 0.37
    assert scored.score_breakdown is not None
    assert plain_product.algorithm_score is None
    assert plain_product.score_breakdown is None


def test_featured_product_gets_campaign_boost(plain_product, context):
    featured = plain_product.model_copy(update={"is_featured": True})

    assert calculate_algorithm_score(featured, context) == pytest.approx(0.42)


def test_campaign_membership_gets_campaign_boost(plain_product):
    context = ScoringContext(
        now=NOW,
        campaigns=[Campaign(id="c1", product_ids=["p1"])],
    )
    breakdown = score_product(plain_product, context)

    assert breakdown.campaign_boost == 1.0
    assert breakdown.score == pytest.approx(0.42)


def test_inactive_campaign_is_ignored(plain_product):
    context = ScoringContext(
        now=NOW,
        campaigns=[Campaign(id="c1", product_ids=["p1"], is_active=False)],
    )
    assert score_product(plain_product, context).campaign_boost == 0.0


def test_ownership_boost(plain_product):
    context = ScoringContext(now=NOW, user_id="seller-1")
    assert calculate_algorithm_score(plain_product, context) == pytest.approx(0.47)


def test_category_relevance_boost_only_in_category_context(plain_product):
    category_context = ScoringContext(
        now=NOW, type=ContextType.CATEGORY, category="elektronik"
    )
    general_context = ScoringContext(now=NOW, category="elektronik")

    assert calculate_algorithm_score(plain_product, category_context) == pytest.approx(0.42)
    assert calculate_algorithm_score(plain_product, general_context) == pytest.approx(0.37)


def test_boosts_can_push_score_above_one(perfect_product):
    context = ScoringContext(
        now=NOW,
        type=ContextType.CATEGORY,
        category="elektronik",
        user_id="seller-1",
    )
    breakdown = score_product(perfect_product, context)

    assert breakdown.weighted_total == pytest.approx(0.95)
    assert breakdown.score == pytest.approx(1.15)
    assert breakdown.score > 1.0
    assert breakdown.tier == "premium"


def test_sub_scores_are_clamped(context):
    loss_maker = ProductRecord(id="p3", price=100, cost=250)
    breakdown = score_product(loss_maker, context)

    assert breakdown.profit_margin == 0.0
    assert breakdown.score >= 0.0


def test_score_is_rounded_to_two_decimals(context):
    product = ProductRecord(id="p4", average_rating=3.33, review_count=1)
    score = calculate_algorithm_score(product, context)

    assert score == round(score, 2)


def test_custom_weights(plain_product, context):
    weights = ScoringWeights(
        sales_velocity=0,
        rating_quality=1,
        engagement_rate=0,
        profit_margin=0,
        stock_score=0,
        freshness_score=0,
        campaign_boost=0,
    )
    assert calculate_algorithm_score(plain_product, context, weights) == pytest.approx(0.8)


@pytest.mark.parametrize(
    "score, tier",
    [(0.9, "premium"), (0.75, "premium"), (0.5, "featured"), (0.49, "regular")],
)
def test_tier_bands(score, tier):
    assert tier_for(score) == tier
