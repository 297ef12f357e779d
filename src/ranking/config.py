"""Configuration for the ranking engine.

Scoring weights and pagination sizes are plain pydantic models so callers can
override them per request. Process-wide settings are read from ``FEED_*``
environment variables.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Scoring constants
DEFAULT_COST_RATIO = 0.6
DEFAULT_OPTIMAL_STOCK = 50
LOW_STOCK_THRESHOLD = 5
LOW_STOCK_SCORE = 0.3
OVERSTOCK_SCORE = 0.7
FRESHNESS_WINDOW_DAYS = 90
OWNERSHIP_BOOST = 0.10
CATEGORY_RELEVANCE_BOOST = 0.05
PERSONALIZATION_FACTOR = 0.1

# Session constants
DEFAULT_MAX_SESSIONS = 1000

# Ranker constants
RECOMMENDED_LIMIT = 20
TRENDING_LIMIT = 20
TRENDING_VIEW_MULTIPLIER = 1.5
DISCOUNT_THRESHOLD = 20
DISCOUNT_TOLERANCE = 5

# Preference log
DEFAULT_PREFERENCE_LIMIT = 100

# Pagination defaults
PRODUCTS_PER_CAROUSEL = 8
CAROUSELS_PER_LOAD = 3


class ScoringWeights(BaseModel):
    """Weight vector for the base score.

    The defaults sum to 1.0. Ownership and category boosts are added on top
    of the weighted sum, so a final score above 1 is expected.
    """

    sales_velocity: float = Field(default=0.25, ge=0.0)
    rating_quality: float = Field(default=0.20, ge=0.0)
    engagement_rate: float = Field(default=0.15, ge=0.0)
    profit_margin: float = Field(default=0.15, ge=0.0)
    stock_score: float = Field(default=0.10, ge=0.0)
    freshness_score: float = Field(default=0.10, ge=0.0)
    campaign_boost: float = Field(default=0.05, ge=0.0)

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


class PaginationConfig(BaseModel):
    """Section sizing for the progressive feed."""

    products_per_carousel: int = Field(default=PRODUCTS_PER_CAROUSEL, ge=1)
    carousels_per_load: int = Field(default=CAROUSELS_PER_LOAD, ge=1)

    @property
    def products_per_page(self) -> int:
        return self.products_per_carousel * self.carousels_per_load


class FeedSettings(BaseSettings):
    """Process settings, overridable with ``FEED_`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    catalog_path: str = "data/catalog.csv"
    campaign_timeout_seconds: float = Field(default=2.0, gt=0)
    random_seed: Optional[int] = None
    preference_limit: int = Field(default=DEFAULT_PREFERENCE_LIMIT, ge=1)
    preference_dir: Optional[str] = None
    cost_ratio: float = Field(default=DEFAULT_COST_RATIO, ge=0.0, le=1.0)
    max_sessions: int = Field(default=DEFAULT_MAX_SESSIONS, ge=1)
    log_level: str = "INFO"


def get_settings() -> FeedSettings:
    """Read settings from the current environment."""
    return FeedSettings()
