"""Generate a fake product catalog for development.

Writes a CSV in the layout read by ``src.ranking.catalog.load_catalog_csv``:
product columns plus flattened analytics columns.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        df = generate_fake_catalog(num_products=200)
"""

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_PRODUCTS = 120
DEFAULT_NUM_SELLERS = 12
DEFAULT_DAYS_BACK = 180
DEFAULT_CATEGORIES = {
    "elektronik": ["telefon", "bilgisayar", "kulaklik"],
    "giyim": ["mont-kaban", "tisort", "ayakkabi"],
    "ev-yasam": ["mutfak", "dekorasyon"],
    "kitap-kirtasiye": ["roman", "defter"],
}


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_sellers: int = DEFAULT_NUM_SELLERS,
    days_back: int = DEFAULT_DAYS_BACK,
    now: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate synthetic catalog rows.

    Args:
        num_products: Number of products. Must be positive.
        num_sellers: Number of distinct sellers. Must be positive.
        days_back: Oldest product age in days.
        now: Reference time; defaults to the current UTC time.
        seed: Random seed for reproducible catalogs.

    Returns:
        DataFrame with one row per product, newest first.

    Raises:
        ValueError: If any count is non-positive.
    """
    if num_products <= 0 or num_sellers <= 0 or days_back <= 0:
        raise ValueError("num_products, num_sellers and days_back must be positive")

    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    categories: List[str] = list(DEFAULT_CATEGORIES)

    rows = []
    for product_id in range(1, num_products + 1):
        category = rng.choice(categories)
        subcategory = rng.choice(DEFAULT_CATEGORIES[category])
        created_at = now - timedelta(
            days=rng.randrange(days_back), seconds=rng.randrange(86400)
        )
        price = round(rng.uniform(20, 5000), 2)
        views = rng.randint(0, 2000)
        cart_additions = rng.randint(0, max(1, views // 10))
        purchases = rng.randint(0, max(1, cart_additions // 2))

        rows.append({
            "id": f"p{product_id:04d}",
            "name": f"{subcategory.replace('-', ' ').title()} {product_id}",
            "price": price,
            "cost": round(price * rng.uniform(0.4, 0.9), 2) if rng.random() < 0.5 else None,
            "discount_percentage": rng.choice([0, 0, 0, 10, 15, 25, 30, 40, 50]),
            "stock_quantity": rng.choice([0, 2, 8, 20, 45, 80, 150]),
            "created_at": created_at.isoformat(timespec="seconds"),
            "average_rating": round(rng.uniform(1, 5), 1),
            "review_count": rng.randint(0, 120),
            "category_slug": category,
            "subcategory_slug": subcategory,
            "seller_id": f"s{rng.randint(1, num_sellers):03d}",
            "is_featured": rng.random() < 0.1,
            "views": views,
            "cart_additions": cart_additions,
            "purchases": purchases,
            "sales_count": purchases,
            "total_sold": purchases,
            "revenue": round(purchases * price, 2),
            "analytics_created_at": created_at.isoformat(timespec="seconds"),
        })

    df = pd.DataFrame(rows)
    return df.sort_values("created_at", ascending=False).reset_index(drop=True)


def main() -> None:
    """Generate a default catalog into data/catalog.csv and print a summary."""
    print(f"Generating {DEFAULT_NUM_PRODUCTS} fake products...")

    try:
        df = generate_fake_catalog()
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    output_path = data_dir / "catalog.csv"
    df.to_csv(output_path, index=False)

    print(f"\nCatalog generated successfully!")
    print(f"Saved to: {output_path}")
    print(f"\nData preview:")
    print(df.head(10))
    print(f"\nData summary:")
    print(f"  Products: {len(df)}")
    print(f"  Sellers: {df['seller_id'].nunique()}")
    print(f"  Categories: {df['category_slug'].nunique()}")
    print(f"  Featured: {int(df['is_featured'].sum())}")


if __name__ == "__main__":
    main()
