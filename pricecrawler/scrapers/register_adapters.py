"""Register all source adapters with the factory.

This module should be imported during application startup to register
all available adapters with the adapter factory.
"""

from functools import partial
from typing import Optional

import structlog

from pricecrawler.scrapers.adapters import (
    # API adapters
    AmazonAdapter,
    BestBuyAdapter,
    KrogerAdapter,
    TargetAdapter,
    WalmartAdapter,
    # Scraper adapters
    GROCERY_SHOPS,
    GroceryBrowserAdapter,
)
from pricecrawler.scrapers.factory import AdapterFactory, get_adapter_factory

logger = structlog.get_logger(__name__)


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> AdapterFactory:
    """Register all available adapters with the factory.

    This should be called during application startup. Registration order
    is the aggregator's tie-break order for equal prices.
    """
    factory = factory or get_adapter_factory()

    adapters = [
        # US retailer APIs
        ("walmart", WalmartAdapter),
        ("target", TargetAdapter),
        ("amazon", AmazonAdapter),
        ("kroger", KrogerAdapter),
        ("bestbuy", BestBuyAdapter),
    ]
    # UK grocery sites scraped with a browser
    for slug, selectors in GROCERY_SHOPS.items():
        adapters.append((slug, partial(GroceryBrowserAdapter, selectors)))

    for shop_slug, builder in adapters:
        try:
            factory.register_adapter(shop_slug, builder)
        except ValueError as e:
            logger.error(
                "adapter_registration_failed",
                shop_slug=shop_slug,
                error=str(e),
            )

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_shops()),
        shops=factory.get_registered_shops(),
    )
    return factory
