"""Source adapters and the price aggregation pipeline.

This package provides:
- Base adapter classes and the normalized quote/outcome records
- Retailer-specific adapters (REST, OAuth REST and browser scraping)
- The concurrent aggregator and the price ranker
- Factory for creating and registering adapter instances
"""

from .base import (
    AggregateResult,
    BaseAdapter,
    BaseAPIAdapter,
    BaseScraperAdapter,
    FailureKind,
    PriceQuote,
    SourceFailure,
    SourceOutcome,
)
from .aggregator import PriceAggregator
from .ranker import rank_quotes
from .factory import AdapterFactory, adapter_factory, get_adapter_factory

__all__ = [
    # Base classes
    "BaseAdapter",
    "BaseAPIAdapter",
    "BaseScraperAdapter",
    # Data structures
    "PriceQuote",
    "FailureKind",
    "SourceFailure",
    "SourceOutcome",
    "AggregateResult",
    # Pipeline
    "PriceAggregator",
    "rank_quotes",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
]
