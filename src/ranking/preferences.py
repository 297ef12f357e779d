"""User preference tracking.

Interaction events are kept in a bounded per-user log (newest first, oldest
evicted once the limit is reached) behind the ``UserPreferenceStore``
interface. The tracker summarizes the log into category counts and uses them
to re-rank products for display without touching their algorithm score.
"""

import hashlib
import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import joblib

from src.ranking.config import DEFAULT_PREFERENCE_LIMIT, PERSONALIZATION_FACTOR
from src.ranking.models import PreferenceEvent, ProductRecord

# Configure module logger
logger = logging.getLogger(__name__)

PREFERENCE_FILE_SUFFIX = ".prefs.joblib"


class UserPreferenceStore(Protocol):
    """Key-value store holding one bounded event log per user."""

    def append(self, user_id: str, event: PreferenceEvent) -> None:
        ...

    def read(self, user_id: str) -> List[PreferenceEvent]:
        ...

    def user_count(self) -> int:
        ...


class InMemoryPreferenceStore:
    """Thread-safe in-process store.

    ``append`` pushes to the front and truncates to ``limit`` under a lock,
    so concurrent events from the same user are never lost.
    """

    def __init__(self, limit: int = DEFAULT_PREFERENCE_LIMIT):
        self.limit = limit
        self._logs: Dict[str, List[PreferenceEvent]] = {}
        self._lock = threading.Lock()

    def append(self, user_id: str, event: PreferenceEvent) -> None:
        with self._lock:
            log = [event] + self._logs.get(user_id, [])
            self._logs[user_id] = log[: self.limit]

    def read(self, user_id: str) -> List[PreferenceEvent]:
        with self._lock:
            return list(self._logs.get(user_id, []))

    def user_count(self) -> int:
        with self._lock:
            return len(self._logs)

    def clear(self) -> None:
        """Drop all logs (useful for testing)."""
        with self._lock:
            self._logs.clear()


class FilePreferenceStore:
    """Store keeping each user's log in a joblib file under ``directory``."""

    def __init__(self, directory: str, limit: int = DEFAULT_PREFERENCE_LIMIT):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.limit = limit
        self._lock = threading.Lock()
        logger.info(f"Using file preference store at {self.directory}")

    def _path_for(self, user_id: str) -> Path:
        # One file per distinct id; a digest keeps names filesystem-safe.
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}{PREFERENCE_FILE_SUFFIX}"

    def _load(self, path: Path) -> List[PreferenceEvent]:
        if not path.exists():
            return []
        records = joblib.load(path)
        return [PreferenceEvent(**record) for record in records]

    def append(self, user_id: str, event: PreferenceEvent) -> None:
        path = self._path_for(user_id)
        with self._lock:
            log = [event] + self._load(path)
            joblib.dump([e.model_dump() for e in log[: self.limit]], path)

    def read(self, user_id: str) -> List[PreferenceEvent]:
        with self._lock:
            return self._load(self._path_for(user_id))

    def user_count(self) -> int:
        with self._lock:
            return len(list(self.directory.glob(f"*{PREFERENCE_FILE_SUFFIX}")))


def personalize_products(
    pool: List[ProductRecord],
    affinity: Dict[str, int],
) -> List[ProductRecord]:
    """Copies of ``pool`` with ``personalized_score`` set, highest first.

    Pure counterpart of ``PreferenceTracker.get_personalized_products`` for
    callers that already hold the category affinity.
    """
    personalized = [
        product.model_copy(
            update={
                "personalized_score": (product.algorithm_score or 0.0)
                + affinity.get(product.category_slug or "", 0)
                * PERSONALIZATION_FACTOR
            }
        )
        for product in pool
    ]
    personalized.sort(key=lambda p: p.personalized_score, reverse=True)
    return personalized


class PreferenceTracker:
    """Records interactions and derives personalized rankings from them."""

    def __init__(self, store: Optional[UserPreferenceStore] = None):
        self.store = store if store is not None else InMemoryPreferenceStore()

    def update_user_profile(self, user_id: str, event: PreferenceEvent) -> None:
        self.store.append(user_id, event)
        logger.debug(
            "Recorded preference event",
            extra={
                "user_id": user_id,
                "event_type": event.type.value,
                "category_slug": event.category_slug,
            },
        )

    def get_user_preferences(self, user_id: str) -> List[PreferenceEvent]:
        return self.store.read(user_id)

    def get_category_affinity(self, user_id: str) -> Dict[str, int]:
        """Count of logged events per category slug."""
        counts = Counter(
            event.category_slug
            for event in self.store.read(user_id)
            if event.category_slug
        )
        return dict(counts)

    def get_personalized_products(
        self,
        pool: List[ProductRecord],
        user_id: Optional[str],
    ) -> List[ProductRecord]:
        """Re-rank ``pool`` by algorithm score plus category affinity.

        Each copy gets ``personalized_score = algorithm_score + frequency * 0.1``.
        Without a user the pool is returned unchanged.

        Args:
            pool: Products, usually already scored by a ranker.
            user_id: User whose log drives the boost.

        Returns:
            New list sorted by personalized score, highest first.
        """
        if not user_id or not pool:
            return list(pool)
        return personalize_products(pool, self.get_category_affinity(user_id))
