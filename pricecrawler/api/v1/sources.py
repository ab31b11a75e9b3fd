"""Registered price sources endpoint."""

from fastapi import APIRouter, Depends

from pricecrawler.dependencies import get_aggregator
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.schemas import ApiResponse, SourceInfo

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def list_sources(
    aggregator: PriceAggregator = Depends(get_aggregator),
):
    """List the sources queried for every price lookup, in tie-break order."""
    sources = [
        SourceInfo(
            slug=adapter.shop_slug,
            name=adapter.shop_name,
            adapter_type=adapter.adapter_type,
            timeout=adapter.timeout,
        )
        for adapter in aggregator.adapters
    ]
    return ApiResponse(data=sources)
