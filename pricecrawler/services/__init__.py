"""Services module for caching and price check orchestration.

Services sit between the HTTP/CLI surfaces and the aggregation pipeline.
"""

from pricecrawler.services.cache_service import (
    CacheEntry,
    MemoryResultCache,
    RedisResultCache,
    ResultCache,
    create_result_cache,
)
from pricecrawler.services.price_service import (
    PriceCheck,
    PriceCheckService,
    PriceCheckStatus,
    total_best_price,
)

__all__ = [
    "CacheEntry",
    "ResultCache",
    "MemoryResultCache",
    "RedisResultCache",
    "create_result_cache",
    "PriceCheck",
    "PriceCheckService",
    "PriceCheckStatus",
    "total_best_price",
]
