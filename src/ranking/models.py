"""Data models for scoring and feed composition.

Products, analytics and campaigns arrive from the catalog as read-only
records. Scores and sections are produced per request and never written back.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.ranking.config import DEFAULT_COST_RATIO, DEFAULT_OPTIMAL_STOCK


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsSnapshot(BaseModel):
    """Behavioral counters for a product. Missing counters read as zero."""

    views: Optional[float] = None
    cart_additions: Optional[float] = None
    purchases: Optional[float] = None
    sales_count: Optional[float] = None
    total_sold: Optional[float] = None
    revenue: Optional[float] = None
    created_at: Optional[datetime] = None


class ScoreBreakdown(BaseModel):
    """Explainable result of scoring one product."""

    sales_velocity: float
    rating_quality: float
    engagement_rate: float
    profit_margin: float
    stock_score: float
    freshness_score: float
    weighted_total: float
    campaign_boost: float
    context_boost: float
    score: float
    tier: str


class ProductRecord(BaseModel):
    """Catalog item as delivered by the storage collaborator.

    ``algorithm_score``, ``personalized_score`` and ``score_breakdown`` are
    display-time fields filled on copies by the rankers.
    """

    id: str
    name: str = ""
    price: Optional[float] = None
    cost: Optional[float] = None
    discount_percentage: Optional[float] = None
    stock_quantity: Optional[int] = None
    created_at: Optional[datetime] = None
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    category_slug: Optional[str] = None
    subcategory_slug: Optional[str] = None
    seller_id: Optional[str] = None
    is_featured: bool = False
    analytics: Optional[AnalyticsSnapshot] = None

    algorithm_score: Optional[float] = None
    personalized_score: Optional[float] = None
    score_breakdown: Optional[ScoreBreakdown] = None


class Campaign(BaseModel):
    """Active promotion. Only membership is used, to grant the campaign boost."""

    id: str
    title: str = ""
    priority_score: float = 0.0
    product_ids: List[str] = Field(default_factory=list)
    is_active: bool = True


class ContextType(str, Enum):
    GENERAL = "general"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"


class ScoringContext(BaseModel):
    """Parameters shaping one scoring pass.

    ``now`` pins the reference time so that scoring stays a pure function of
    its inputs.
    """

    type: ContextType = ContextType.GENERAL
    user_id: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    search: Optional[str] = None
    avg_views: float = 0.0
    avg_revenue: float = 0.0
    avg_order_value: float = 0.0
    optimal_stock: int = Field(default=DEFAULT_OPTIMAL_STOCK, ge=1)
    cost_ratio: float = Field(default=DEFAULT_COST_RATIO, ge=0.0, le=1.0)
    campaigns: List[Campaign] = Field(default_factory=list)
    now: datetime = Field(default_factory=utc_now)

    def campaign_product_ids(self) -> set:
        return {
            product_id
            for campaign in self.campaigns
            if campaign.is_active
            for product_id in campaign.product_ids
        }


class PreferenceEventType(str, Enum):
    VIEW = "view"
    CART = "cart"
    PURCHASE = "purchase"
    FAVORITE = "favorite"
    SEARCH = "search"


class PreferenceEvent(BaseModel):
    """One user interaction recorded in the preference log."""

    category_slug: Optional[str] = None
    type: PreferenceEventType = PreferenceEventType.VIEW
    product_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class CarouselSection(BaseModel):
    """A labeled shelf of products ready for rendering."""

    id: str
    type: str
    title: str
    subtitle: str
    icon: str
    theme: str
    page: int
    products: List[ProductRecord] = Field(default_factory=list)


class FeedWarning(BaseModel):
    """Partial degradation reported alongside a successful composition."""

    code: str
    message: str


class FeedContextRequest(BaseModel):
    """Browsing context supplied by the caller."""

    type: ContextType = ContextType.GENERAL
    user_id: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    search: Optional[str] = None


class ComposeFeedRequest(BaseModel):
    context: FeedContextRequest = Field(default_factory=FeedContextRequest)
    page: int = Field(default=1, ge=1)


class ComposeFeedResponse(BaseModel):
    sections: List[CarouselSection] = Field(default_factory=list)
    page: int
    has_next_page: bool
    warnings: List[FeedWarning] = Field(default_factory=list)


class LoadMoreResponse(ComposeFeedResponse):
    """Result of a session load. ``loaded`` is false for ignored triggers."""

    session_id: str
    loaded: bool = True
    status: str
    total_sections: int = 0


class RankedProductsResponse(BaseModel):
    products: List[ProductRecord] = Field(default_factory=list)
    warnings: List[FeedWarning] = Field(default_factory=list)
