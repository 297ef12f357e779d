"""Progressive feed composition.

Turns a candidate pool into pages of carousel sections. Each of the six
carousel types owns a selection rule; pages rotate through the types in a
fixed order across the whole section sequence, and each section takes a
window of its type's candidates, topped up from a shuffled fallback pool when
the candidates run short.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional

import numpy as np

from src.ranking import rankers
from src.ranking.config import TRENDING_LIMIT, PaginationConfig, ScoringWeights
from src.ranking.exceptions import EmptyPoolError
from src.ranking.models import CarouselSection, ProductRecord, ScoringContext
from src.ranking.preferences import personalize_products

# Configure module logger
logger = logging.getLogger(__name__)


class CarouselType(str, Enum):
    FEATURED = "featured"
    TRENDING = "trending"
    DISCOUNTED = "discounted"
    NEW = "new"
    BESTSELLER = "bestseller"
    CATEGORY_SPECIAL = "category_special"


# Selection rule: (scored pool, context, weights, category affinity) -> ordered candidates
Selector = Callable[
    [List[ProductRecord], ScoringContext, ScoringWeights, Optional[Dict[str, int]]],
    List[ProductRecord],
]


class CarouselDefinition(NamedTuple):
    title: str
    subtitle: str
    icon: str
    theme: str
    select: Selector


def _select_featured(pool, context, weights, affinity):
    recommended = rankers.get_recommended_products(pool, context, weights)
    if affinity is not None and context.user_id:
        return personalize_products(recommended, affinity)
    return recommended


def _select_trending(pool, context, weights, affinity):
    return rankers.get_trending_products(pool, limit=TRENDING_LIMIT)


def _select_discounted(pool, context, weights, affinity):
    return rankers.get_discounted_products(pool, context, weights)


def _select_new(pool, context, weights, affinity):
    return rankers.get_new_arrivals(pool)


def _select_bestseller(pool, context, weights, affinity):
    return rankers.get_bestsellers(pool)


def _select_category_special(pool, context, weights, affinity):
    return rankers.get_category_products(pool, context, weights)


CAROUSEL_DEFINITIONS: Dict[CarouselType, CarouselDefinition] = {
    CarouselType.FEATURED: CarouselDefinition(
        "Recommended for You", "Picked by our ranking", "sparkles", "purple",
        _select_featured,
    ),
    CarouselType.TRENDING: CarouselDefinition(
        "Trending Now", "Getting the most attention", "arrow-trending-up", "orange",
        _select_trending,
    ),
    CarouselType.DISCOUNTED: CarouselDefinition(
        "Big Discounts", "More than 20% off", "gift", "red",
        _select_discounted,
    ),
    CarouselType.NEW: CarouselDefinition(
        "New Arrivals", "Just added to the catalog", "clock", "emerald",
        _select_new,
    ),
    CarouselType.BESTSELLER: CarouselDefinition(
        "Best Sellers", "What everyone is buying", "fire", "amber",
        _select_bestseller,
    ),
    CarouselType.CATEGORY_SPECIAL: CarouselDefinition(
        "Category Picks", "Top products in this category", "tag", "blue",
        _select_category_special,
    ),
}

ROTATION: List[CarouselType] = list(CarouselType)


class FeedState:
    """Candidate pools prepared once for a browsing context."""

    def __init__(
        self,
        context: ScoringContext,
        pool_size: int,
        candidates: Dict[CarouselType, List[ProductRecord]],
        fallback: List[ProductRecord],
    ):
        self.context = context
        self.pool_size = pool_size
        self.candidates = candidates
        self.fallback = fallback


class FeedComposer:
    """Builds carousel sections page by page.

    Args:
        weights: Scoring weights used by the score-based selectors.
        pagination: Section sizing.
        rng: Random source for the fallback shuffle. Pass a seeded
            ``numpy.random.Generator`` for reproducible gap fills.
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        pagination: Optional[PaginationConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.weights = weights or ScoringWeights()
        self.pagination = pagination or PaginationConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

    def prepare(
        self,
        pool: List[ProductRecord],
        context: ScoringContext,
        affinity: Optional[Dict[str, int]] = None,
    ) -> FeedState:
        """Rank the pool for every carousel type and shuffle the fallback.

        Args:
            pool: Candidate products.
            context: Scoring context.
            affinity: Category event counts of ``context.user_id``, read from
                the preference store by the caller. Personalizes the
                featured shelf when given.

        Raises:
            EmptyPoolError: If the pool has no products.
        """
        unique: Dict[str, ProductRecord] = {}
        for product in pool:
            unique.setdefault(product.id, product)
        products = list(unique.values())

        if not products:
            raise EmptyPoolError(
                context=context.model_dump(
                    mode="json", include={"type", "category", "subcategory", "search"}
                )
            )

        scored = rankers.score_pool(products, context, self.weights)
        candidates = {
            carousel_type: definition.select(scored, context, self.weights, affinity)
            for carousel_type, definition in CAROUSEL_DEFINITIONS.items()
        }
        order = self.rng.permutation(len(scored))
        fallback = [scored[int(idx)] for idx in order]

        logger.info(
            "Prepared feed state",
            extra={
                "pool_size": len(products),
                "candidate_counts": {t.value: len(c) for t, c in candidates.items()},
            },
        )
        return FeedState(context, len(products), candidates, fallback)

    def section_type(self, page: int, index: int) -> CarouselType:
        """Carousel type of section ``index`` on ``page`` (1-based pages)."""
        per_load = self.pagination.carousels_per_load
        return ROTATION[((page - 1) * per_load + index) % len(ROTATION)]

    def _fill(
        self,
        candidates: List[ProductRecord],
        start: int,
        fallback: List[ProductRecord],
    ) -> List[ProductRecord]:
        size = self.pagination.products_per_carousel
        products: List[ProductRecord] = []
        seen = set()

        if candidates:
            offset = start % len(candidates)
            for step in range(min(size, len(candidates))):
                product = candidates[(offset + step) % len(candidates)]
                if product.id not in seen:
                    seen.add(product.id)
                    products.append(product)

        for product in fallback:
            if len(products) >= size:
                break
            if product.id not in seen:
                seen.add(product.id)
                products.append(product)

        return products

    def compose_page(self, state: FeedState, page: int) -> List[CarouselSection]:
        """Compose the sections of one page.

        Args:
            state: Prepared candidate pools.
            page: 1-based page number.

        Returns:
            ``carousels_per_load`` sections, each holding at most
            ``products_per_carousel`` unique products.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        per_carousel = self.pagination.products_per_carousel
        start_index = (page - 1) * self.pagination.products_per_page

        sections = []
        for index in range(self.pagination.carousels_per_load):
            carousel_type = self.section_type(page, index)
            definition = CAROUSEL_DEFINITIONS[carousel_type]
            products = self._fill(
                state.candidates[carousel_type],
                start_index + index * per_carousel,
                state.fallback,
            )
            sections.append(
                CarouselSection(
                    id=f"{carousel_type.value}-p{page}-{index}",
                    type=carousel_type.value,
                    title=definition.title,
                    subtitle=definition.subtitle,
                    icon=definition.icon,
                    theme=definition.theme,
                    page=page,
                    products=products,
                )
            )

        logger.debug(
            "Composed feed page",
            extra={"page": page, "sections": [s.type for s in sections]},
        )
        return sections
