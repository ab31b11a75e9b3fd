"""Pydantic schemas for the price crawler API.

All request/response models are defined here for easy import.
"""

from pricecrawler.schemas.common import ApiResponse, SourceFailureResponse
from pricecrawler.schemas.price import CacheClearResponse, PriceQuoteResponse, SourceInfo
from pricecrawler.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "SourceFailureResponse",
    # Price
    "PriceQuoteResponse",
    "SourceInfo",
    "CacheClearResponse",
    # Health
    "HealthCheckResponse",
]
