"""Tests for catalog sources and CSV loading."""

import asyncio
import sys
from pathlib import Path

import pandas as pd
import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from scripts.generate_fake_data import generate_fake_catalog
from src.ranking.catalog import (
    CsvCatalog,
    InMemoryCatalog,
    filter_for_context,
    load_catalog_csv,
)
from src.ranking.models import ContextType, FeedContextRequest, ProductRecord


@pytest.fixture
def catalog_csv(tmp_path):
    df = pd.DataFrame([
        {
            "id": "p1",
            "name": "Wool Coat",
            "price": 1200.0,
            "cost": None,
            "stock_quantity": 12,
            "created_at": "2024-12-01T10:00:00Z",
            "average_rating": 4.5,
            "review_count": 8,
            "category_slug": "giyim",
            "subcategory_slug": "mont-kaban",
            "seller_id": 7,
            "is_featured": True,
            "views": 300,
            "cart_additions": 12,
            "purchases": None,
            "analytics_created_at": "2024-12-02T00:00:00Z",
        },
        {
            "id": "p2",
            "name": "Phone",
            "price": 9000.0,
            "cost": 7000.0,
            "stock_quantity": None,
            "created_at": None,
            "average_rating": None,
            "review_count": None,
            "category_slug": "elektronik",
            "subcategory_slug": "telefon",
            "seller_id": 8,
            "is_featured": False,
            "views": None,
            "cart_additions": None,
            "purchases": None,
            "analytics_created_at": None,
        },
    ])
    csv_path = tmp_path / "catalog.csv"
    df.to_csv(csv_path, index=False)
    return csv_path


def test_load_catalog_csv(catalog_csv):
    products = load_catalog_csv(str(catalog_csv))

    assert [p.id for p in products] == ["p1", "p2"]

    coat = products[0]
    assert coat.cost is None
    assert coat.stock_quantity == 12
    assert coat.seller_id == "7"
    assert coat.is_featured is True
    assert coat.created_at.year == 2024
    assert coat.analytics.views == 300
    assert coat.analytics.purchases is None
    assert coat.analytics.created_at is not None

    phone = products[1]
    assert phone.cost == 7000.0
    assert phone.stock_quantity is None
    assert phone.created_at is None
    assert phone.is_featured is False
    assert phone.analytics is None


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_catalog_csv(str(tmp_path / "missing.csv"))


def test_missing_id_column_raises(tmp_path):
    csv_path = tmp_path / "bad.csv"
    pd.DataFrame([{"name": "No id"}]).to_csv(csv_path, index=False)

    with pytest.raises(ValueError, match="id"):
        load_catalog_csv(str(csv_path))


def test_generated_catalog_loads(tmp_path):
    df = generate_fake_catalog(num_products=25, seed=3)
    csv_path = tmp_path / "catalog.csv"
    df.to_csv(csv_path, index=False)

    products = load_catalog_csv(str(csv_path))

    assert len(products) == 25
    assert len({p.id for p in products}) == 25
    assert all(p.analytics is not None for p in products)


def test_generate_fake_catalog_rejects_bad_counts():
    with pytest.raises(ValueError):
        generate_fake_catalog(num_products=0)


def test_filter_for_context_by_search():
    products = [
        ProductRecord(id="a", name="Wool Coat", category_slug="giyim"),
        ProductRecord(id="b", name="Rain coat", category_slug="giyim"),
        ProductRecord(id="c", name="Phone", category_slug="elektronik"),
    ]
    context = FeedContextRequest(search="  COAT ")

    assert [p.id for p in filter_for_context(products, context)] == ["a", "b"]


def test_csv_catalog_filters_by_category(catalog_csv):
    catalog = CsvCatalog(str(catalog_csv))
    context = FeedContextRequest(type=ContextType.CATEGORY, category="elektronik")

    products = asyncio.run(catalog.fetch_products(context))

    assert [p.id for p in products] == ["p2"]
    assert asyncio.run(catalog.fetch_campaigns()) == []


def test_in_memory_catalog_returns_copies_of_lists():
    products = [ProductRecord(id="a")]
    catalog = InMemoryCatalog(products)
    products.append(ProductRecord(id="b"))

    fetched = asyncio.run(catalog.fetch_products(FeedContextRequest()))
    assert [p.id for p in fetched] == ["a"]
