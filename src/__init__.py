"""FeedRank: personalized product ranking and progressive feed composition.

This package scores storefront products along hand-weighted signals and
composes the ranked pools into fixed-size carousel sections for an
infinite-scroll feed.

Modules:
    api: FastAPI application and REST API endpoints
    ranking: Scoring, ranking, preference tracking and feed composition
"""

__version__ = "0.1.0"
