"""Feed service orchestrating catalog fetches, scoring and composition.

This is the only async layer. It fetches the candidate pool and campaigns
from the catalog, degrades to empty values when those fetches fail, builds
the scoring context, and hands the pure work to the composer and rankers.
"""

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

import numpy as np

from src.ranking.catalog import CatalogSource
from src.ranking.composer import FeedComposer, FeedState
from src.ranking.config import (
    DEFAULT_COST_RATIO,
    DEFAULT_MAX_SESSIONS,
    PaginationConfig,
    RECOMMENDED_LIMIT,
    ScoringWeights,
    TRENDING_LIMIT,
)
from src.ranking.exceptions import FeedCompositionError, FeedRankException, SessionNotFoundError
from src.ranking.models import (
    Campaign,
    ComposeFeedRequest,
    ComposeFeedResponse,
    FeedContextRequest,
    FeedWarning,
    LoadMoreResponse,
    PreferenceEvent,
    ProductRecord,
    RankedProductsResponse,
    ScoringContext,
)
from src.ranking.pagination import PaginationController, compute_has_next_page
from src.ranking.preferences import PreferenceTracker, personalize_products
from src.ranking.rankers import get_recommended_products, get_trending_products
from src.ranking.signals import analytics_of

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_CAMPAIGN_TIMEOUT_SECONDS = 2.0

CAMPAIGNS_UNAVAILABLE = "campaigns_unavailable"
CATALOG_UNAVAILABLE = "catalog_unavailable"
PREFERENCES_UNAVAILABLE = "preferences_unavailable"


def compute_market_averages(pool: List[ProductRecord]) -> Dict[str, float]:
    """Average views, revenue and order value over the candidate pool."""
    if not pool:
        return {"avg_views": 0.0, "avg_revenue": 0.0, "avg_order_value": 0.0}

    snapshots = [analytics_of(product) for product in pool]
    views = np.array([s.views or 0 for s in snapshots], dtype=float)
    revenue = np.array([s.revenue or 0 for s in snapshots], dtype=float)
    purchases = np.array([s.purchases or 0 for s in snapshots], dtype=float)

    total_purchases = purchases.sum()
    avg_order_value = revenue.sum() / total_purchases if total_purchases > 0 else 0.0

    return {
        "avg_views": float(views.mean()),
        "avg_revenue": float(revenue.mean()),
        "avg_order_value": float(avg_order_value),
    }


class FeedSession:
    """Pagination state of one browsing session."""

    def __init__(self, controller: PaginationController, context: FeedContextRequest):
        self.controller = controller
        self.context = context
        self.warnings: List[FeedWarning] = []


class FeedService:
    """Entry point used by the API and the CLI.

    Args:
        catalog: Source of products and campaigns.
        tracker: Preference tracker for personalization.
        weights: Scoring weights.
        pagination: Section sizing.
        campaign_timeout: Seconds to wait for campaigns before giving up.
        seed: Seed for the fallback shuffle. ``None`` shuffles differently
            on every composition pass.
        cost_ratio: Cost assumed as a share of price when a product has no
            cost.
        max_sessions: Sessions kept in memory. The least recently used
            session is dropped beyond this.
    """

    def __init__(
        self,
        catalog: CatalogSource,
        tracker: Optional[PreferenceTracker] = None,
        weights: Optional[ScoringWeights] = None,
        pagination: Optional[PaginationConfig] = None,
        campaign_timeout: float = DEFAULT_CAMPAIGN_TIMEOUT_SECONDS,
        seed: Optional[int] = None,
        cost_ratio: float = DEFAULT_COST_RATIO,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ):
        self.catalog = catalog
        self.tracker = tracker or PreferenceTracker()
        self.weights = weights or ScoringWeights()
        self.pagination = pagination or PaginationConfig()
        self.campaign_timeout = campaign_timeout
        self.seed = seed
        self.cost_ratio = cost_ratio
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, FeedSession]" = OrderedDict()
        self._sessions_lock = threading.Lock()

    def new_composer(self) -> FeedComposer:
        return FeedComposer(
            weights=self.weights,
            pagination=self.pagination,
            rng=np.random.default_rng(self.seed),
        )

    async def fetch_campaigns(self, warnings: List[FeedWarning]) -> List[Campaign]:
        """Fetch campaigns, substituting an empty list on error or timeout."""
        try:
            campaigns = await asyncio.wait_for(
                self.catalog.fetch_campaigns(), timeout=self.campaign_timeout
            )
            return [campaign for campaign in campaigns if campaign.is_active]
        except asyncio.TimeoutError:
            reason = f"timed out after {self.campaign_timeout}s"
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"

        logger.warning(
            "Campaign fetch failed, continuing without campaigns",
            extra={"reason": reason},
        )
        warnings.append(
            FeedWarning(
                code=CAMPAIGNS_UNAVAILABLE,
                message=f"Campaigns unavailable ({reason}); campaign boosts skipped.",
            )
        )
        return []

    async def fetch_pool(
        self,
        context: FeedContextRequest,
        warnings: List[FeedWarning],
    ) -> List[ProductRecord]:
        """Fetch the candidate pool, substituting an empty pool on error."""
        try:
            return await self.catalog.fetch_products(context)
        except Exception as e:
            logger.warning(
                "Catalog fetch failed, using an empty pool",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            warnings.append(
                FeedWarning(
                    code=CATALOG_UNAVAILABLE,
                    message=f"Catalog unavailable ({type(e).__name__}: {e}).",
                )
            )
            return []

    def build_context(
        self,
        request: FeedContextRequest,
        pool: List[ProductRecord],
        campaigns: List[Campaign],
    ) -> ScoringContext:
        return ScoringContext(
            type=request.type,
            user_id=request.user_id,
            category=request.category,
            subcategory=request.subcategory,
            search=request.search,
            cost_ratio=self.cost_ratio,
            campaigns=campaigns,
            **compute_market_averages(pool),
        )

    async def load_context(
        self, request: FeedContextRequest
    ) -> Tuple[List[ProductRecord], ScoringContext, List[FeedWarning]]:
        warnings: List[FeedWarning] = []
        pool, campaigns = await asyncio.gather(
            self.fetch_pool(request, warnings),
            self.fetch_campaigns(warnings),
        )
        return pool, self.build_context(request, pool, campaigns), warnings

    async def fetch_affinity(
        self,
        user_id: Optional[str],
        warnings: List[FeedWarning],
    ) -> Optional[Dict[str, int]]:
        """Read the user's category affinity off the event loop.

        Returns ``None`` without a user, or when the store read fails.
        """
        if not user_id:
            return None
        try:
            return await asyncio.to_thread(self.tracker.get_category_affinity, user_id)
        except Exception as e:
            logger.warning(
                "Preference read failed, continuing without personalization",
                extra={"user_id": user_id, "error": str(e), "error_type": type(e).__name__},
            )
            warnings.append(
                FeedWarning(
                    code=PREFERENCES_UNAVAILABLE,
                    message=f"Preferences unavailable ({type(e).__name__}: {e}).",
                )
            )
            return None

    async def prepare_state(
        self, request: FeedContextRequest
    ) -> Tuple[FeedComposer, FeedState, List[FeedWarning]]:
        pool, context, warnings = await self.load_context(request)
        affinity = await self.fetch_affinity(request.user_id, warnings)
        composer = self.new_composer()
        return composer, composer.prepare(pool, context, affinity), warnings

    async def compose_feed(self, request: ComposeFeedRequest) -> ComposeFeedResponse:
        """Compose one page of sections for a browsing context.

        Stateless: the same request always composes the same page, so a
        failed page can simply be requested again.

        Raises:
            EmptyPoolError: If there are no candidate products.
            FeedCompositionError: If composition fails unexpectedly.
        """
        start_time = time.time()
        composer, state, warnings = await self.prepare_state(request.context)

        try:
            sections = composer.compose_page(state, request.page)
        except FeedRankException:
            raise
        except Exception as e:
            logger.error(
                "Feed composition failed",
                extra={"page": request.page, "error": str(e)},
                exc_info=True,
            )
            raise FeedCompositionError(request.page, e) from e

        has_next_page = compute_has_next_page(
            request.page, state.pool_size, self.pagination
        )
        logger.info(
            "Feed composed",
            extra={
                "page": request.page,
                "pool_size": state.pool_size,
                "num_sections": len(sections),
                "has_next_page": has_next_page,
                "num_warnings": len(warnings),
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return ComposeFeedResponse(
            sections=sections,
            page=request.page,
            has_next_page=has_next_page,
            warnings=warnings,
        )

    async def load_more(
        self, session_id: str, request: FeedContextRequest
    ) -> LoadMoreResponse:
        """Load the next page of a session's feed.

        A new session, or a changed browsing context, fetches the pool again
        and restarts pagination.
        """
        with self._sessions_lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)

        if session is None or session.context != request:
            composer, state, warnings = await self.prepare_state(request)
            with self._sessions_lock:
                session = self._sessions.get(session_id)
                if session is None or session.context != request:
                    session = FeedSession(PaginationController(composer, state), request)
                    session.warnings = warnings
                    self._sessions[session_id] = session
                    self._sessions.move_to_end(session_id)
                    logger.info(
                        "Started feed session",
                        extra={"session_id": session_id, "pool_size": state.pool_size},
                    )
                    self._evict_sessions()

        controller = session.controller
        sections = controller.load_more()
        return LoadMoreResponse(
            session_id=session_id,
            sections=sections,
            page=controller.page,
            has_next_page=controller.has_next_page,
            warnings=session.warnings,
            loaded=bool(sections),
            status=controller.status.value,
            total_sections=len(controller.sections),
        )

    def _evict_sessions(self) -> None:
        # Caller holds _sessions_lock
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(
                "Evicted idle feed session",
                extra={"session_id": evicted_id, "max_sessions": self.max_sessions},
            )

    def end_session(self, session_id: str) -> None:
        with self._sessions_lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(session_id)

    def session_count(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

    async def recommended(
        self, request: FeedContextRequest, limit: int = RECOMMENDED_LIMIT
    ) -> RankedProductsResponse:
        pool, context, warnings = await self.load_context(request)
        products = get_recommended_products(pool, context, self.weights, limit=limit)
        return RankedProductsResponse(products=products, warnings=warnings)

    async def trending(
        self, request: FeedContextRequest, limit: int = TRENDING_LIMIT
    ) -> RankedProductsResponse:
        warnings: List[FeedWarning] = []
        pool = await self.fetch_pool(request, warnings)
        return RankedProductsResponse(
            products=get_trending_products(pool, limit=limit), warnings=warnings
        )

    async def personalized(
        self, user_id: str, request: FeedContextRequest, limit: int = RECOMMENDED_LIMIT
    ) -> RankedProductsResponse:
        """Recommended products re-ranked by the user's category affinity."""
        request = request.model_copy(update={"user_id": user_id})
        ranked = await self.recommended(request, limit=limit)
        warnings = list(ranked.warnings)
        affinity = await self.fetch_affinity(user_id, warnings)
        products = personalize_products(ranked.products, affinity or {})
        return RankedProductsResponse(products=products, warnings=warnings)

    def record_event(self, user_id: str, event: PreferenceEvent) -> int:
        """Append an interaction to the user's log and return the log length."""
        self.tracker.update_user_profile(user_id, event)
        return len(self.tracker.get_user_preferences(user_id))

    def algorithm_summary(self) -> Dict:
        return {
            "weights": self.weights.as_dict(),
            "pagination": self.pagination.model_dump(),
            "active_users": self.tracker.store.user_count(),
            "active_sessions": self.session_count(),
        }
