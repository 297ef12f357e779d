"""CLI script for composing feed pages from a catalog CSV.

Useful for inspecting rankings and section rotation. Composes one or more
pages and prints each section with its products and scores.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.ranking.catalog import CsvCatalog
from src.ranking.exceptions import FeedRankException
from src.ranking.models import (
    ComposeFeedRequest,
    ComposeFeedResponse,
    ContextType,
    FeedContextRequest,
)
from src.ranking.service import FeedService

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def build_context(args: argparse.Namespace) -> FeedContextRequest:
    if args.subcategory:
        context_type = ContextType.SUBCATEGORY
    elif args.category:
        context_type = ContextType.CATEGORY
    else:
        context_type = ContextType.GENERAL
    return FeedContextRequest(
        type=context_type,
        user_id=args.user_id,
        category=args.category,
        subcategory=args.subcategory,
        search=args.search,
    )


async def compose_pages(
    service: FeedService,
    context: FeedContextRequest,
    pages: int,
) -> List[ComposeFeedResponse]:
    """Compose pages 1..pages, stopping early once the feed is exhausted."""
    responses = []
    for page in range(1, pages + 1):
        response = await service.compose_feed(
            ComposeFeedRequest(context=context, page=page)
        )
        responses.append(response)
        if not response.has_next_page:
            break
    return responses


def print_response(response: ComposeFeedResponse, explain: bool) -> None:
    print(f"\nPage {response.page} (has next page: {response.has_next_page})")
    for warning in response.warnings:
        print(f"  ! {warning.code}: {warning.message}")
    for section in response.sections:
        print(f"  [{section.type}] {section.title} - {len(section.products)} products")
        for product in section.products:
            line = f"    {product.id:<8} {product.name[:32]:<32} score={product.algorithm_score}"
            if explain and product.score_breakdown is not None:
                breakdown = product.score_breakdown
                line += (
                    f" tier={breakdown.tier}"
                    f" sv={breakdown.sales_velocity:.2f}"
                    f" rq={breakdown.rating_quality:.2f}"
                    f" er={breakdown.engagement_rate:.2f}"
                    f" pm={breakdown.profit_margin:.2f}"
                    f" st={breakdown.stock_score:.2f}"
                    f" fr={breakdown.freshness_score:.2f}"
                )
            print(line)


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Compose feed pages from a catalog CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/compose_cli.py --catalog data/catalog.csv
  python scripts/compose_cli.py --pages 3 --seed 7
  python scripts/compose_cli.py --category elektronik --explain
        """
    )

    parser.add_argument(
        "--catalog",
        type=str,
        default="data/catalog.csv",
        help="Catalog CSV file (default: data/catalog.csv)"
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Number of pages to compose (default: 1)"
    )
    parser.add_argument("--category", type=str, default=None, help="Category slug")
    parser.add_argument("--subcategory", type=str, default=None, help="Subcategory slug")
    parser.add_argument("--search", type=str, default=None, help="Search term")
    parser.add_argument("--user-id", type=str, default=None, help="Requesting user id")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the fallback shuffle (default: unseeded)"
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show score breakdown for each product"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    service = FeedService(catalog=CsvCatalog(args.catalog), seed=args.seed)

    try:
        responses = asyncio.run(compose_pages(service, build_context(args), args.pages))
    except FeedRankException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    for response in responses:
        print_response(response, args.explain)
    print()


if __name__ == "__main__":
    main()
