"""Tests for the FastAPI application endpoints.

This module contains integration tests for the FeedRank API endpoints,
including health checks, feed composition and session loading.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import src.api.routes.feed as feed_module
from src.api.main import app
from src.api.metrics import metrics_service
from src.ranking.catalog import InMemoryCatalog
from src.ranking.models import AnalyticsSnapshot, ProductRecord
from src.ranking.service import FeedService

# Create test client
client = TestClient(app)

NOW = datetime.now(timezone.utc)


def make_pool(size):
    return [
        ProductRecord(
            id=f"p{i}",
            name=f"Product {i}",
            price=100 + i,
            discount_percentage=(i * 9) % 45,
            stock_quantity=i,
            created_at=NOW - timedelta(days=i),
            average_rating=(i % 5) + 0.5,
            category_slug="giyim" if i % 2 else "elektronik",
            seller_id=f"s{i % 3}",
            analytics=AnalyticsSnapshot(views=i * 5, cart_additions=i % 5, total_sold=i % 4),
        )
        for i in range(size)
    ]


@pytest.fixture(autouse=True)
def feed_service():
    """Serve the API from an in-memory catalog of 30 products."""
    service = FeedService(InMemoryCatalog(make_pool(30)), seed=11)
    feed_module._service_cache = service
    metrics_service.reset()
    yield service
    feed_module._service_cache = None


def test_ping_endpoint():
    """Test that the /ping endpoint returns correct status and JSON."""
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_compose_endpoint():
    response = client.post("/feed/compose", json={"context": {"type": "general"}, "page": 1})

    assert response.status_code == 200
    data = response.json()

    assert data["page"] == 1
    assert data["has_next_page"] is True
    assert data["warnings"] == []
    assert [s["type"] for s in data["sections"]] == ["featured", "trending", "discounted"]

    for section in data["sections"]:
        assert {"id", "title", "subtitle", "icon", "theme", "page", "products"} <= set(section)
        assert len(section["products"]) <= 8


def test_compose_endpoint_defaults_to_first_page():
    response = client.post("/feed/compose", json={})

    assert response.status_code == 200
    assert response.json()["page"] == 1


def test_compose_endpoint_second_page_rotates():
    response = client.post("/feed/compose", json={"page": 2})

    assert response.status_code == 200
    data = response.json()
    assert [s["type"] for s in data["sections"]] == ["new", "bestseller", "category_special"]
    assert data["has_next_page"] is False


def test_compose_endpoint_rejects_page_zero():
    response = client.post("/feed/compose", json={"page": 0})

    assert response.status_code == 422


def test_load_more_session_flow():
    first = client.post("/feed/sessions/abc/load-more")
    second = client.post("/feed/sessions/abc/load-more", json={"type": "general"})
    third = client.post("/feed/sessions/abc/load-more")

    assert first.status_code == 200
    assert first.json()["page"] == 1
    assert first.json()["loaded"] is True
    assert second.json()["page"] == 2
    assert second.json()["status"] == "exhausted"
    assert third.json()["loaded"] is False
    assert third.json()["sections"] == []

    deleted = client.delete("/feed/sessions/abc")
    assert deleted.status_code == 200
    assert deleted.json() == {"status": "deleted", "session_id": "abc"}


def test_record_event_endpoint():
    payload = {"category_slug": "giyim", "type": "cart", "product_id": "p1"}

    first = client.post("/feed/events/u1", json=payload)
    second = client.post("/feed/events/u1", json=payload)

    assert first.status_code == 200
    assert first.json() == {"status": "recorded", "user_id": "u1", "events": 1}
    assert second.json()["events"] == 2


def test_personalized_endpoint():
    for _ in range(10):
        client.post("/feed/events/u2", json={"category_slug": "giyim"})

    response = client.get("/feed/personalized/u2?limit=20")

    assert response.status_code == 200
    products = response.json()["products"]
    assert len(products) == 20
    assert products[0]["category_slug"] == "giyim"
    assert products[0]["personalized_score"] is not None


def test_recommended_endpoint_with_category():
    response = client.get("/feed/recommended?category=elektronik&limit=50")

    assert response.status_code == 200
    products = response.json()["products"]
    assert len(products) == 15
    assert all(p["category_slug"] == "elektronik" for p in products)
    assert all(p["score_breakdown"] is not None for p in products)


def test_trending_endpoint():
    response = client.get("/feed/trending")

    assert response.status_code == 200
    products = response.json()["products"]
    assert len(products) > 0
    # Views 0..145 average 72.5, so the threshold is 108.75
    assert all(p["analytics"]["views"] > 108.75 for p in products)


def test_algorithm_endpoint():
    response = client.get("/feed/algorithm")

    assert response.status_code == 200
    data = response.json()
    assert set(data["weights"]) == {
        "sales_velocity",
        "rating_quality",
        "engagement_rate",
        "profit_margin",
        "stock_score",
        "freshness_score",
        "campaign_boost",
    }
    assert data["pagination"]["products_per_carousel"] == 8


def test_metrics_endpoint_counts_compositions():
    client.post("/feed/compose", json={})
    client.post("/feed/compose", json={"page": 2})

    response = client.get("/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["composition_count"] == 2
    assert data["failure_count"] == 0


def test_request_id_header_is_echoed():
    response = client.get("/ping", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
