"""Price quote Pydantic schemas for response serialization."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PriceQuoteResponse(BaseModel):
    """A single ranked price quote."""

    model_config = ConfigDict(from_attributes=True)

    store: str
    title: str = ""
    price: Decimal
    url: Optional[str] = None
    image_url: Optional[str] = None
    price_text: Optional[str] = None
    currency: Optional[str] = None


class SourceInfo(BaseModel):
    """A registered price source."""

    slug: str
    name: str
    adapter_type: str
    timeout: float


class CacheClearResponse(BaseModel):
    """Result of a cache invalidation request."""

    removed: int
