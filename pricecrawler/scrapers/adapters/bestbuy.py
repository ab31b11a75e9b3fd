"""Best Buy Products API adapter.

Documentation: https://bestbuyapis.github.io/api-documentation/#products-api
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAPIAdapter, FailureKind, PriceQuote
from pricecrawler.scrapers.utils.retry import http_retry


class BestBuyAdapter(BaseAPIAdapter):
    """Best Buy keyword search.

    The search term goes into the path as ``(search=a&search=b)``, one
    clause per word. Prefers ``salePrice`` and falls back to
    ``regularPrice``.
    """

    shop_slug = "bestbuy"
    shop_name = "Best Buy"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results, http_client=http_client)
        self.api_key = api_key if api_key is not None else settings.BESTBUY_API_KEY
        self.api_url = (api_url or settings.BESTBUY_API_URL).rstrip("/")

        if not self.api_key:
            self.logger.warning("bestbuy_credentials_missing", message="BESTBUY_API_KEY not set")

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        if not self.api_key:
            raise self._fail(FailureKind.AUTH_ERROR, "BESTBUY_API_KEY not configured")

        data = await self._call_api(query, max_results)
        if not isinstance(data, dict):
            raise self._fail(FailureKind.PARSE_ERROR, "unexpected response shape")

        return [self._normalize_product(p) for p in (data.get("products") or [])[:max_results]]

    def build_search_url(self, query: str) -> str:
        clauses = "&".join(f"search={quote(word, safe='')}" for word in query.split())
        return f"{self.api_url}({clauses})"

    @http_retry
    async def _call_api(self, query: str, max_results: int) -> Any:
        params = {
            "apiKey": self.api_key,
            "pageSize": str(max_results),
            "format": "json",
        }
        self.logger.debug("bestbuy_search_api_call", query=query)
        return await self._request_json("GET", self.build_search_url(query), params=params)

    def _normalize_product(self, product: Dict[str, Any]) -> PriceQuote:
        return self._quote(
            title=product.get("name"),
            raw_price=self._first_price(product.get("salePrice"), product.get("regularPrice")),
            url=product.get("url"),
            image_url=product.get("image"),
            currency="USD",
        )
