"""Manual price checker for a shopping list.

Runs every item through the same aggregation pipeline the API uses,
one item at a time with a courtesy delay between queries, and prints
the ranked prices per item plus the total of the cheapest prices.

Usage:
    python scripts/check_prices.py milk bread "free range eggs"
    python scripts/check_prices.py "oat milk" --source tesco
    python scripts/check_prices.py milk bread --delay 2 --limit 3
"""

import asyncio
import argparse
import logging
import sys
import os
from decimal import Decimal
from typing import List, Optional

# Add project root to path so we can import pricecrawler without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pricecrawler.config import settings
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.scrapers.register_adapters import register_all_adapters
from pricecrawler.services.cache_service import MemoryResultCache
from pricecrawler.services.price_service import (
    PriceCheck,
    PriceCheckService,
    PriceCheckStatus,
    total_best_price,
)


async def check_prices(
    items: List[str],
    source: Optional[str] = None,
    delay: Optional[float] = None,
    limit: int = 5,
) -> int:
    """Check prices for every item and display the results.

    Args:
        items: Product names in list order
        source: Optional single source slug (e.g., "walmart")
        delay: Seconds between queries (default: INTER_QUERY_DELAY_SECONDS)
        limit: Maximum number of quotes to display per item

    Returns:
        Process exit code
    """
    factory = register_all_adapters()

    if source:
        if not factory.has_adapter(source):
            print(f"\nError: Unknown source '{source}'")
            print("\nAvailable sources:")
            for slug in factory.get_registered_shops():
                print(f"   - {slug}")
            return 2
        adapters = [factory.create_adapter(source)]
    else:
        adapters = factory.create_enabled_adapters()

    print(f"\n{'='*70}")
    print(f"  Checking {len(items)} item(s) across {len(adapters)} source(s)")
    print(f"{'='*70}")
    print(f"  Sources: {', '.join(a.shop_slug for a in adapters)}")
    print(f"  Display Limit: {limit}")
    print(f"{'='*70}\n")

    aggregator = PriceAggregator(adapters, deadline=settings.QUERY_DEADLINE_SECONDS)
    service = PriceCheckService(
        aggregator,
        cache=MemoryResultCache(),
        inter_query_delay=settings.INTER_QUERY_DELAY_SECONDS,
    )

    try:
        checks = await service.check_prices(items, delay=delay)
    finally:
        for adapter in adapters:
            await adapter.cleanup()
        if any(a.adapter_type == "scraper" for a in adapters):
            from pricecrawler.scrapers.utils.browser_manager import get_browser_manager

            await get_browser_manager().stop()

    for i, check in enumerate(checks, 1):
        _print_check(i, check, limit)

    # Summary
    print(f"{'='*70}")
    print(f"  Summary")
    print(f"{'='*70}")
    for status in PriceCheckStatus:
        count = sum(1 for c in checks if c.status is status)
        if count:
            print(f"  {status.value}: {count}")
    print(f"  Total of best prices: {_format_price(total_best_price(checks), None)}")
    print(f"{'='*70}\n")

    return 0 if any(c.status is PriceCheckStatus.OK for c in checks) else 1


def _print_check(index: int, check: PriceCheck, limit: int) -> None:
    print(f"[{index}] {check.product_name}")

    if check.status is PriceCheckStatus.INVALID:
        print(f"    Skipped: {check.error}\n")
        return

    if check.status is PriceCheckStatus.FAILED:
        print("    All sources failed")
    elif check.status is PriceCheckStatus.NO_PRICES:
        print("    No prices found")

    for quote in check.quotes[:limit]:
        print(f"    {_format_price(quote.price, quote.currency):>10}  {quote.store}: {quote.title}")
        if quote.url:
            print(f"                {quote.url[:80]}")

    for failure in check.failures:
        print(f"    ! {failure.store}: {failure.kind.value} ({failure.message})")
    print()


def _format_price(price: Decimal, currency: Optional[str]) -> str:
    """Format price with currency symbol.

    Args:
        price: The price value
        currency: Currency code (e.g., "USD", "GBP"), None when unknown

    Returns:
        Formatted price string
    """
    if currency == "USD":
        return f"${price:,.2f}"
    elif currency == "GBP":
        return f"£{price:,.2f}"
    elif currency:
        return f"{price:,.2f} {currency}"
    else:
        return f"{price:,.2f}"


def main():
    """Parse arguments and run the price checks."""
    parser = argparse.ArgumentParser(
        description="Check prices for shopping list items across all sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/check_prices.py milk bread
  python scripts/check_prices.py "oat milk" --source tesco
  python scripts/check_prices.py milk bread --delay 2 --limit 3
        """,
    )

    parser.add_argument(
        "items",
        nargs="+",
        help="Product names to check, in list order",
    )

    parser.add_argument(
        "--source",
        help="Only query one source slug (e.g., 'walmart', 'tesco')",
    )

    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait between items (default: INTER_QUERY_DELAY_SECONDS)",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Maximum number of prices to display per item (default: 5)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if settings.DEBUG else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    sys.exit(asyncio.run(check_prices(args.items, args.source, args.delay, args.limit)))


if __name__ == "__main__":
    main()
