"""Weighted product scorer.

Combines the metric extractors with a weight vector and adds context boosts.
The scorer is a pure function of ``(product, context, weights)``: the
reference time comes from the context, so repeated or parallel calls with the
same inputs return the same score.
"""

from typing import Optional

from src.ranking import signals
from src.ranking.config import (
    CATEGORY_RELEVANCE_BOOST,
    OWNERSHIP_BOOST,
    ScoringWeights,
)
from src.ranking.models import ContextType, ProductRecord, ScoreBreakdown, ScoringContext

DEFAULT_WEIGHTS = ScoringWeights()

# Tier bands, checked from the top
TIER_BANDS = (
    (0.75, "premium"),
    (0.5, "featured"),
)
DEFAULT_TIER = "regular"


def tier_for(score: float) -> str:
    for threshold, label in TIER_BANDS:
        if score >= threshold:
            return label
    return DEFAULT_TIER


def campaign_boost(product: ProductRecord, context: ScoringContext) -> float:
    """1 for featured products or members of an active campaign, else 0."""
    if product.is_featured:
        return 1.0
    if product.id in context.campaign_product_ids():
        return 1.0
    return 0.0


def context_boost(product: ProductRecord, context: ScoringContext) -> float:
    boost = 0.0
    if context.user_id and product.seller_id == context.user_id:
        boost += OWNERSHIP_BOOST
    if (
        context.type == ContextType.CATEGORY
        and context.category
        and product.category_slug == context.category
    ):
        boost += CATEGORY_RELEVANCE_BOOST
    return boost


def score_product(
    product: ProductRecord,
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> ScoreBreakdown:
    """Score one product and return the full breakdown.

    Sub-scores are clamped to [0, 1] before weighting. The boosts are added
    after the weighted sum, so the final score may exceed 1.

    Args:
        product: Product to score.
        context: Scoring context (user, category, reference time, campaigns).
        weights: Weight vector; defaults to ``ScoringWeights()``.

    Returns:
        ScoreBreakdown with the rounded final score and its tier.
    """
    weights = weights or DEFAULT_WEIGHTS
    now = context.now

    sub_scores = {
        "sales_velocity": signals.clamp(signals.sales_velocity(product, now)),
        "rating_quality": signals.clamp(signals.rating_quality(product)),
        "engagement_rate": signals.clamp(signals.engagement_rate(product)),
        "profit_margin": signals.clamp(
            signals.profit_margin(product, context.cost_ratio)
        ),
        "stock_score": signals.clamp(
            signals.stock_score(product, context.optimal_stock)
        ),
        "freshness_score": signals.clamp(signals.freshness_score(product, now)),
    }

    weighted_total = sum(
        value * getattr(weights, name) for name, value in sub_scores.items()
    )
    campaign = campaign_boost(product, context)
    boost = context_boost(product, context)

    score = round(weighted_total + campaign * weights.campaign_boost + boost, 2)

    return ScoreBreakdown(
        **sub_scores,
        weighted_total=weighted_total,
        campaign_boost=campaign,
        context_boost=boost,
        score=score,
        tier=tier_for(score),
    )


def calculate_algorithm_score(
    product: ProductRecord,
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> float:
    return score_product(product, context, weights).score


def with_score(
    product: ProductRecord,
    context: ScoringContext,
    weights: Optional[ScoringWeights] = None,
) -> ProductRecord:
    """Return a copy of ``product`` carrying its score and breakdown."""
    breakdown = score_product(product, context, weights)
    return product.model_copy(
        update={"algorithm_score": breakdown.score, "score_breakdown": breakdown}
    )
