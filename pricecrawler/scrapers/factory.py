"""Factory for creating and configuring source adapter instances."""

from typing import Callable, Dict, List, Optional

import structlog

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAdapter, BaseScraperAdapter


logger = structlog.get_logger(__name__)

AdapterBuilder = Callable[..., BaseAdapter]


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Keeps registration order, which becomes the aggregator's adapter
    order and therefore the tie-break for equal prices.
    """

    def __init__(self, browser_manager=None):
        """Initialize the adapter factory.

        Args:
            browser_manager: Shared BrowserManager for scraper adapters;
                resolved lazily when None
        """
        self.browser_manager = browser_manager
        self._adapter_registry: Dict[str, AdapterBuilder] = {}

    def register_adapter(self, shop_slug: str, builder: AdapterBuilder) -> None:
        """Register an adapter class (or builder callable) for a shop.

        Args:
            shop_slug: Source slug identifier (e.g., "walmart")
            builder: Adapter class or callable accepting timeout/max_results
        """
        if isinstance(builder, type) and not issubclass(builder, BaseAdapter):
            raise ValueError(f"Adapter class must inherit from BaseAdapter: {builder}")
        if not callable(builder):
            raise ValueError(f"Adapter builder must be callable: {builder}")

        self._adapter_registry[shop_slug] = builder
        logger.debug("adapter_registered", shop_slug=shop_slug)

    def create_adapter(self, shop_slug: str) -> Optional[BaseAdapter]:
        """Create and configure an adapter instance.

        Args:
            shop_slug: Source slug identifier

        Returns:
            Configured adapter instance, or None if not registered
        """
        builder = self._adapter_registry.get(shop_slug)
        if not builder:
            logger.warning("adapter_not_found", shop_slug=shop_slug)
            return None

        adapter = builder(max_results=settings.MAX_RESULTS_PER_SOURCE)

        # Timeout depends on the adapter kind unless overridden per slug
        default_timeout = (
            settings.BROWSER_TIMEOUT_SECONDS
            if isinstance(adapter, BaseScraperAdapter)
            else settings.SOURCE_TIMEOUT_SECONDS
        )
        adapter.timeout = settings.timeout_for(shop_slug, default_timeout)

        if isinstance(adapter, BaseScraperAdapter) and self.browser_manager is not None:
            adapter.browser_manager = self.browser_manager

        logger.info(
            "adapter_created",
            shop_slug=shop_slug,
            adapter_type=adapter.adapter_type,
            timeout=adapter.timeout,
        )

        return adapter

    def create_enabled_adapters(self) -> List[BaseAdapter]:
        """Create every adapter listed in ENABLED_SOURCES.

        Falls back to all registered adapters when ENABLED_SOURCES is
        empty. Unknown slugs are logged and skipped.
        """
        slugs = settings.get_enabled_sources() or self.get_registered_shops()
        adapters = []
        for slug in slugs:
            adapter = self.create_adapter(slug)
            if adapter is not None:
                adapters.append(adapter)
        return adapters

    def get_registered_shops(self) -> List[str]:
        """Get list of registered source slugs in registration order."""
        return list(self._adapter_registry.keys())

    def has_adapter(self, shop_slug: str) -> bool:
        """Check if an adapter is registered for a source."""
        return shop_slug in self._adapter_registry


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance."""
    return adapter_factory
