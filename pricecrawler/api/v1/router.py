"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from pricecrawler.api.v1 import health, prices, sources

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(prices.router, prefix="/prices", tags=["prices"])
api_v1_router.include_router(sources.router, prefix="/sources", tags=["sources"])
