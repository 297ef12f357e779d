"""Feed endpoints for the FeedRank API.

Stateless page composition, session-based progressive loading, preference
event intake, and read-only ranker views.
"""

import logging
import time
from typing import Dict, Optional

from fastapi import APIRouter, Query

from src.api.metrics import metrics_service
from src.ranking.catalog import CsvCatalog
from src.ranking.config import get_settings
from src.ranking.exceptions import FeedRankException
from src.ranking.models import (
    ComposeFeedRequest,
    ComposeFeedResponse,
    ContextType,
    FeedContextRequest,
    LoadMoreResponse,
    PreferenceEvent,
    RankedProductsResponse,
)
from src.ranking.preferences import (
    FilePreferenceStore,
    InMemoryPreferenceStore,
    PreferenceTracker,
)
from src.ranking.service import FeedService

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/feed",
    tags=["feed"],
)

# Cached service instance
_service_cache: Optional[FeedService] = None


def create_service_from_settings() -> FeedService:
    """Build a feed service from ``FEED_*`` settings."""
    settings = get_settings()
    if settings.preference_dir:
        store = FilePreferenceStore(settings.preference_dir, limit=settings.preference_limit)
    else:
        store = InMemoryPreferenceStore(limit=settings.preference_limit)

    logger.info(
        "Creating feed service",
        extra={
            "catalog_path": settings.catalog_path,
            "campaign_timeout_seconds": settings.campaign_timeout_seconds,
            "max_sessions": settings.max_sessions,
        },
    )
    return FeedService(
        catalog=CsvCatalog(settings.catalog_path),
        tracker=PreferenceTracker(store),
        campaign_timeout=settings.campaign_timeout_seconds,
        seed=settings.random_seed,
        cost_ratio=settings.cost_ratio,
        max_sessions=settings.max_sessions,
    )


def get_service() -> FeedService:
    """Return the cached feed service, creating it on first use."""
    global _service_cache

    if _service_cache is None:
        _service_cache = create_service_from_settings()
    return _service_cache


def _context_from_query(
    category: Optional[str],
    subcategory: Optional[str],
    search: Optional[str],
    user_id: Optional[str] = None,
) -> FeedContextRequest:
    if subcategory:
        context_type = ContextType.SUBCATEGORY
    elif category:
        context_type = ContextType.CATEGORY
    else:
        context_type = ContextType.GENERAL
    return FeedContextRequest(
        type=context_type,
        user_id=user_id,
        category=category,
        subcategory=subcategory,
        search=search,
    )


@router.post("/compose", response_model=ComposeFeedResponse)
async def compose_feed(request: ComposeFeedRequest) -> ComposeFeedResponse:
    """Compose one page of carousel sections.

    Example:
        POST /feed/compose {"context": {"type": "general"}, "page": 2}
    """
    start_time = time.time()
    try:
        response = await get_service().compose_feed(request)
    except FeedRankException:
        metrics_service.record_failure()
        raise

    metrics_service.record_composition(
        (time.time() - start_time) * 1000, degraded=bool(response.warnings)
    )
    return response


@router.post("/sessions/{session_id}/load-more", response_model=LoadMoreResponse)
async def load_more(
    session_id: str,
    context: Optional[FeedContextRequest] = None,
) -> LoadMoreResponse:
    """Load the next page for a browsing session.

    Repeated calls after the feed is exhausted return ``loaded: false``
    without new sections.
    """
    start_time = time.time()
    try:
        response = await get_service().load_more(session_id, context or FeedContextRequest())
    except FeedRankException:
        metrics_service.record_failure()
        raise

    if response.loaded:
        metrics_service.record_composition(
            (time.time() - start_time) * 1000, degraded=bool(response.warnings)
        )
    return response


@router.delete("/sessions/{session_id}")
def end_session(session_id: str) -> Dict[str, str]:
    get_service().end_session(session_id)
    return {"status": "deleted", "session_id": session_id}


@router.post("/events/{user_id}")
def record_event(user_id: str, event: PreferenceEvent) -> Dict:
    """Record an interaction used for personalization."""
    log_length = get_service().record_event(user_id, event)
    return {"status": "recorded", "user_id": user_id, "events": log_length}


@router.get("/recommended", response_model=RankedProductsResponse)
async def recommended(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    search: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
) -> RankedProductsResponse:
    context = _context_from_query(category, subcategory, search, user_id)
    return await get_service().recommended(context, limit=limit)


@router.get("/trending", response_model=RankedProductsResponse)
async def trending(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
) -> RankedProductsResponse:
    context = _context_from_query(category, subcategory, search)
    return await get_service().trending(context, limit=limit)


@router.get("/personalized/{user_id}", response_model=RankedProductsResponse)
async def personalized(
    user_id: str,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
) -> RankedProductsResponse:
    context = _context_from_query(category, subcategory, search)
    return await get_service().personalized(user_id, context, limit=limit)


@router.get("/algorithm")
def algorithm() -> Dict:
    """Active weights, pagination sizes and tracked user count."""
    return get_service().algorithm_summary()
