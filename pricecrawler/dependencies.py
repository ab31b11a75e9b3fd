"""FastAPI dependency injection providers.

The aggregator and price check service are built once in the
application lifespan and stored on ``app.state``. Tests replace them
with ``app.dependency_overrides``.
"""

from fastapi import Request

from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.services.price_service import PriceCheckService


def get_aggregator(request: Request) -> PriceAggregator:
    """Return the application's aggregator.

    Usage:
        @router.get("/sources")
        async def list_sources(aggregator: PriceAggregator = Depends(get_aggregator)):
            return aggregator.adapters
    """
    return request.app.state.aggregator


def get_price_service(request: Request) -> PriceCheckService:
    return request.app.state.price_service
