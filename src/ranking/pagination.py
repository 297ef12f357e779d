"""Pagination controller for the progressive feed.

One controller belongs to one browsing session. It tracks the current page,
whether more pages exist, and a busy flag so that overlapping triggers (a
scroll event arriving while a page is still being composed) are ignored.
"""

import logging
import math
import threading
from enum import Enum
from typing import List, Optional

from src.ranking.composer import FeedComposer, FeedState
from src.ranking.config import PaginationConfig
from src.ranking.exceptions import FeedCompositionError, FeedRankException
from src.ranking.models import CarouselSection

# Configure module logger
logger = logging.getLogger(__name__)

# Distance from the end of the rendered feed that counts as "near the bottom"
DEFAULT_SCROLL_THRESHOLD = 100.0


class PaginationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    HAS_MORE = "has_more"
    EXHAUSTED = "exhausted"


def compute_has_next_page(page: int, pool_size: int, config: PaginationConfig) -> bool:
    """True while fewer sections were served than the pool can fill."""
    total_sections = math.ceil(pool_size / config.products_per_carousel)
    return page * config.carousels_per_load < total_sections


class PaginationController:
    """Drives page loads for one session.

    ``load_more`` is a no-op while a load is in flight or once the feed is
    exhausted. A failed load leaves page and sections untouched and returns
    the controller to ``HAS_MORE`` so the same page can be retried.
    """

    def __init__(
        self,
        composer: FeedComposer,
        state: Optional[FeedState] = None,
    ):
        self.composer = composer
        self.config = composer.pagination
        self._lock = threading.Lock()
        self._generation = 0
        self.state: Optional[FeedState] = None
        self.page = 0
        self.has_next_page = False
        self.status = PaginationStatus.IDLE
        self.sections: List[CarouselSection] = []
        self.last_error: Optional[FeedRankException] = None
        if state is not None:
            self.reset(state)

    def reset(self, state: FeedState) -> None:
        """Replace the candidate pool and start again from page 0."""
        with self._lock:
            self._generation += 1
            self.state = state
            self.page = 0
            self.has_next_page = state.pool_size > 0
            self.status = PaginationStatus.IDLE
            self.sections = []
            self.last_error = None

    @property
    def is_loading(self) -> bool:
        return self.status == PaginationStatus.LOADING

    def load_more(self) -> List[CarouselSection]:
        """Compose and append the next page.

        Returns:
            The newly composed sections, or an empty list when the call was
            ignored (no state, already loading, or exhausted).

        Raises:
            FeedRankException: If composition fails. The controller is left
                retryable.
        """
        with self._lock:
            if self.state is None or self.status in (
                PaginationStatus.LOADING,
                PaginationStatus.EXHAUSTED,
            ):
                return []
            self.status = PaginationStatus.LOADING
            generation = self._generation
            state = self.state
            next_page = self.page + 1

        try:
            sections = self.composer.compose_page(state, next_page)
        except Exception as e:
            error = e if isinstance(e, FeedRankException) else FeedCompositionError(next_page, e)
            with self._lock:
                if generation == self._generation:
                    self.status = PaginationStatus.HAS_MORE
                    self.last_error = error
            logger.error(
                "Feed page composition failed",
                extra={
                    "page": next_page,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            if error is e:
                raise
            raise error from e

        with self._lock:
            if generation != self._generation:
                # Pool was replaced while composing; drop the stale page.
                return []
            self.page = next_page
            self.sections = self.sections + sections
            self.has_next_page = compute_has_next_page(
                self.page, state.pool_size, self.config
            )
            self.status = (
                PaginationStatus.HAS_MORE
                if self.has_next_page
                else PaginationStatus.EXHAUSTED
            )
            self.last_error = None

        logger.info(
            "Loaded feed page",
            extra={
                "page": next_page,
                "total_sections": len(self.sections),
                "has_next_page": self.has_next_page,
            },
        )
        return sections

    def on_scroll(
        self,
        distance_to_end: float,
        threshold: float = DEFAULT_SCROLL_THRESHOLD,
    ) -> List[CarouselSection]:
        """Load the next page when the viewport is within ``threshold`` of the end."""
        if distance_to_end > threshold:
            return []
        return self.load_more()
