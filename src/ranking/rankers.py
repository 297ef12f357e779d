"""Rankers producing ordered product subsets per browsing intent.

Every ranker returns new product copies; input records are never modified.
Sorting relies on Python's stable sort, so products with equal keys keep
their input order.
"""

import logging
from functools import cmp_to_key
from typing import List, Optional

import numpy as np

from src.ranking.config import (
    DISCOUNT_THRESHOLD,
    DISCOUNT_TOLERANCE,
    RECOMMENDED_LIMIT,
    TRENDING_LIMIT,
    TRENDING_VIEW_MULTIPLIER,
    ScoringWeights,
)
from src.ranking.models import ProductRecord, ScoringContext
from src.ranking.scorer import with_score
from src.ranking.signals import analytics_of, as_utc

# Configure module logger
logger = logging.getLogger(__name__)


def _views(product: ProductRecord) -> float:
    return float(analytics_of(product).views or 0)


def _cart_additions(product: ProductRecord) -> float:
    return float(analytics_of(product).cart_additions or 0)


def _total_sold(product: ProductRecord) -> float:
    return float(analytics_of(product).total_sold or 0)


def score_pool(
    pool: List[ProductRecord],
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> List[ProductRecord]:
    """Attach scores to every product, keeping pool order."""
    return [with_score(product, context, weights) for product in pool]


def sort_by_score(products: List[ProductRecord]) -> List[ProductRecord]:
    return sorted(products, key=lambda p: p.algorithm_score or 0.0, reverse=True)


def get_recommended_products(
    pool: List[ProductRecord],
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
    limit: int = RECOMMENDED_LIMIT,
) -> List[ProductRecord]:
    """Globally best products for the context.

    Ties keep the pool order.
    """
    if not pool:
        return []

    ranked = sort_by_score(score_pool(pool, context, weights))
    logger.debug(
        "Ranked recommended products",
        extra={"pool_size": len(pool), "limit": limit},
    )
    return ranked[:limit]


def get_trending_products(
    pool: List[ProductRecord],
    limit: int = TRENDING_LIMIT,
) -> List[ProductRecord]:
    """Products whose views exceed 1.5x the pool average.

    Qualifying products are ordered by ``views + cart_additions * 2``.
    """
    if not pool:
        return []

    avg_views = float(np.mean([_views(product) for product in pool]))
    threshold = avg_views * TRENDING_VIEW_MULTIPLIER

    trending = [product for product in pool if _views(product) > threshold]
    trending.sort(
        key=lambda p: _views(p) + _cart_additions(p) * 2,
        reverse=True,
    )
    return trending[:limit]


def _compare_discounted(a: ProductRecord, b: ProductRecord) -> int:
    discount_gap = (b.discount_percentage or 0) - (a.discount_percentage or 0)
    if abs(discount_gap) > DISCOUNT_TOLERANCE:
        return 1 if discount_gap > 0 else -1
    score_gap = (b.algorithm_score or 0.0) - (a.algorithm_score or 0.0)
    if score_gap > 0:
        return 1
    if score_gap < 0:
        return -1
    return 0


def get_discounted_products(
    pool: List[ProductRecord],
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> List[ProductRecord]:
    """Products discounted above 20%.

    Ordered by discount, except that discounts within 5 points of each other
    are ordered by score instead.
    """
    discounted = [
        product
        for product in pool
        if (product.discount_percentage or 0) > DISCOUNT_THRESHOLD
    ]
    scored = score_pool(discounted, context, weights)
    return sorted(scored, key=cmp_to_key(_compare_discounted))


def get_new_arrivals(pool: List[ProductRecord]) -> List[ProductRecord]:
    """Newest first; undated products go last."""
    dated = [p for p in pool if p.created_at is not None]
    undated = [p for p in pool if p.created_at is None]
    dated.sort(key=lambda p: as_utc(p.created_at), reverse=True)
    return dated + undated


def get_bestsellers(pool: List[ProductRecord]) -> List[ProductRecord]:
    sold = [product for product in pool if _total_sold(product) > 0]
    sold.sort(key=_total_sold, reverse=True)
    return sold


def filter_by_category(
    pool: List[ProductRecord],
    category: Optional[str],
    subcategory: Optional[str] = None,
) -> List[ProductRecord]:
    """Products in ``category`` (and ``subcategory`` when given).

    A slug matching a product's subcategory also counts as a category match.
    """
    if not category and not subcategory:
        return list(pool)

    matches = []
    for product in pool:
        if subcategory:
            if product.subcategory_slug != subcategory:
                continue
            if category and product.category_slug != category:
                continue
        elif category not in (product.category_slug, product.subcategory_slug):
            continue
        matches.append(product)
    return matches


def get_category_products(
    pool: List[ProductRecord],
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> List[ProductRecord]:
    """Category-filtered subset ordered by score; the whole pool without a category."""
    subset = filter_by_category(pool, context.category, context.subcategory)
    return sort_by_score(score_pool(subset, context, weights))
