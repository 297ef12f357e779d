"""Catalog sources feeding the ranking engine.

The catalog is an external collaborator: it owns product and campaign
records and hands them over read-only. ``InMemoryCatalog`` serves a fixed
list; ``CsvCatalog`` loads a CSV export with pandas.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import pandas as pd

from src.ranking.models import (
    AnalyticsSnapshot,
    Campaign,
    FeedContextRequest,
    ProductRecord,
)
from src.ranking.rankers import filter_by_category

# Configure module logger
logger = logging.getLogger(__name__)

# CSV columns mapped onto the embedded analytics snapshot
ANALYTICS_COLUMNS = {
    "views": "views",
    "cart_additions": "cart_additions",
    "purchases": "purchases",
    "sales_count": "sales_count",
    "total_sold": "total_sold",
    "revenue": "revenue",
    "analytics_created_at": "created_at",
}
REQUIRED_COLUMNS = {"id"}


class CatalogSource(Protocol):
    """Read-only access to the candidate pool and active campaigns."""

    async def fetch_products(self, context: FeedContextRequest) -> List[ProductRecord]:
        ...

    async def fetch_campaigns(self) -> List[Campaign]:
        ...


def filter_for_context(
    products: List[ProductRecord],
    context: FeedContextRequest,
) -> List[ProductRecord]:
    """Narrow the catalog to the browsing context (category and search term)."""
    pool = filter_by_category(products, context.category, context.subcategory)
    if context.search:
        term = context.search.strip().lower()
        pool = [product for product in pool if term in product.name.lower()]
    return pool


class InMemoryCatalog:
    """Catalog backed by lists held in memory."""

    def __init__(
        self,
        products: List[ProductRecord],
        campaigns: Optional[List[Campaign]] = None,
    ):
        self.products = list(products)
        self.campaigns = list(campaigns or [])

    async def fetch_products(self, context: FeedContextRequest) -> List[ProductRecord]:
        return filter_for_context(self.products, context)

    async def fetch_campaigns(self) -> List[Campaign]:
        return list(self.campaigns)


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _row_to_product(row: Dict[str, Any]) -> ProductRecord:
    analytics = {
        field: _clean(row.get(column))
        for column, field in ANALYTICS_COLUMNS.items()
        if column in row
    }
    fields = {
        key: _clean(value)
        for key, value in row.items()
        if key not in ANALYTICS_COLUMNS and _clean(value) is not None
    }
    fields["id"] = str(fields["id"])
    for text_field in ("seller_id", "name", "category_slug", "subcategory_slug"):
        if text_field in fields:
            fields[text_field] = str(fields[text_field])
    if "is_featured" in fields:
        fields["is_featured"] = _as_bool(fields["is_featured"])
    for count_field in ("stock_quantity", "review_count"):
        if count_field in fields:
            fields[count_field] = int(fields[count_field])

    if any(value is not None for value in analytics.values()):
        fields["analytics"] = AnalyticsSnapshot(**analytics)
    return ProductRecord(**fields)


def load_catalog_csv(csv_path: str) -> List[ProductRecord]:
    """Load product records from a CSV export.

    Columns named like ``ProductRecord`` fields populate the product; the
    analytics columns (``views``, ``cart_additions``, ``purchases``,
    ``sales_count``, ``total_sold``, ``revenue``, ``analytics_created_at``)
    populate its analytics snapshot. Empty cells become missing values.

    Args:
        csv_path: Path to the CSV file.

    Returns:
        List of product records in file order.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If the ``id`` column is missing.
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"Catalog CSV not found: {csv_path}")

    logger.info(f"Loading catalog from {csv_path}")
    df = pd.read_csv(csv_file)

    if not REQUIRED_COLUMNS.issubset(df.columns):
        missing = REQUIRED_COLUMNS - set(df.columns)
        raise ValueError(f"Catalog CSV missing required columns: {missing}")

    for column in ("created_at", "analytics_created_at"):
        if column in df.columns:
            df[column] = pd.to_datetime(
                df[column], utc=True, errors="coerce", format="ISO8601"
            )

    df = df.astype(object).where(pd.notna(df), None)
    products = [_row_to_product(row) for row in df.to_dict(orient="records")]

    logger.info(f"Loaded {len(products)} products")
    return products


class CsvCatalog:
    """Catalog loaded lazily from a CSV export and cached in memory."""

    def __init__(self, csv_path: str, campaigns: Optional[List[Campaign]] = None):
        self.csv_path = csv_path
        self.campaigns = list(campaigns or [])
        self._products: Optional[List[ProductRecord]] = None

    async def fetch_products(self, context: FeedContextRequest) -> List[ProductRecord]:
        if self._products is None:
            self._products = await asyncio.to_thread(load_catalog_csv, self.csv_path)
        return filter_for_context(self._products, context)

    async def fetch_campaigns(self) -> List[Campaign]:
        return list(self.campaigns)
