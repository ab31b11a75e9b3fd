"""Price lookup API endpoints."""

from fastapi import APIRouter, Depends, Query

from pricecrawler.dependencies import get_price_service
from pricecrawler.schemas import (
    ApiResponse,
    CacheClearResponse,
    PriceQuoteResponse,
    SourceFailureResponse,
)
from pricecrawler.services.price_service import PriceCheck, PriceCheckService

router = APIRouter()

NO_PRICES_MESSAGE = "No prices found"


def _to_response(check: PriceCheck) -> ApiResponse:
    """Build the envelope for a successful (possibly partial) lookup."""
    return ApiResponse(
        success=True,
        data=[
            PriceQuoteResponse.model_validate(quote)
            for quote in check.quotes
        ],
        failures=[SourceFailureResponse(**f.to_dict()) for f in check.failures],
        message=NO_PRICES_MESSAGE if not check.quotes else None,
    )


@router.delete("/cache", response_model=ApiResponse)
async def clear_price_cache(
    service: PriceCheckService = Depends(get_price_service),
):
    """Drop every cached price lookup."""
    removed = await service.clear_cache()
    return ApiResponse(data=CacheClearResponse(removed=removed))


@router.delete("/cache/{product_name:path}", response_model=ApiResponse)
async def invalidate_price_cache(
    product_name: str,
    service: PriceCheckService = Depends(get_price_service),
):
    """Forget the cached lookup for one product.

    Call this when a shopping list item's text is edited.
    """
    removed = await service.invalidate(product_name)
    return ApiResponse(data=CacheClearResponse(removed=int(removed)))


@router.get("", response_model=ApiResponse)
async def search_prices(
    product_name: str = Query(..., description="Product to search for"),
    service: PriceCheckService = Depends(get_price_service),
):
    """Query-string form of get_prices.

    Use it for names containing a slash ("1/2 gallon milk"), which the
    path form would route to a single source.
    """
    check = await service.check_price(product_name)
    return _to_response(check)


@router.get("/{product_name}", response_model=ApiResponse)
async def get_prices(
    product_name: str,
    service: PriceCheckService = Depends(get_price_service),
):
    """Search every configured source and return prices cheapest first.

    Partial failures still return 200 with ``failures`` populated. When
    every source fails the response is a 502 (see error_handlers).

    A name containing "/" is read as ``{source}/{product_name}``; use
    ``GET /prices?product_name=...`` for those.
    """
    check = await service.check_price(product_name)
    return _to_response(check)


@router.get("/{source}/{product_name:path}", response_model=ApiResponse)
async def get_source_prices(
    source: str,
    product_name: str,
    service: PriceCheckService = Depends(get_price_service),
):
    """Search a single source. Unknown sources return 404."""
    check = await service.check_source(source, product_name)
    return _to_response(check)
