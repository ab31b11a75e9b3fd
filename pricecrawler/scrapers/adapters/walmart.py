"""Walmart Open API adapter.

Searches Walmart with a plain API-key GET request.
Documentation: https://walmart.io/docs/affiliate/search
"""

from typing import Any, Dict, List, Optional

import httpx

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAPIAdapter, FailureKind, PriceQuote
from pricecrawler.scrapers.utils.retry import http_retry


class WalmartAdapter(BaseAPIAdapter):
    """Walmart search adapter.

    Prefers ``salePrice`` and falls back to ``msrp``.
    Requires WALMART_API_KEY in environment variables.
    """

    shop_slug = "walmart"
    shop_name = "Walmart"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results, http_client=http_client)
        self.api_key = api_key if api_key is not None else settings.WALMART_API_KEY
        self.api_url = api_url or settings.WALMART_API_URL

        if not self.api_key:
            self.logger.warning("walmart_credentials_missing", message="WALMART_API_KEY not set")

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        if not self.api_key:
            raise self._fail(FailureKind.AUTH_ERROR, "WALMART_API_KEY not configured")

        data = await self._call_api(query, max_results)
        if not isinstance(data, dict):
            raise self._fail(FailureKind.PARSE_ERROR, "unexpected response shape")

        return [self._normalize_item(item) for item in (data.get("items") or [])[:max_results]]

    @http_retry
    async def _call_api(self, query: str, max_results: int) -> Any:
        params = {
            "apikey": self.api_key,
            "query": query,
            "format": "json",
            "numItems": str(max_results),
        }
        self.logger.debug("walmart_search_api_call", query=query)
        return await self._request_json("GET", self.api_url, params=params)

    def _normalize_item(self, item: Dict[str, Any]) -> PriceQuote:
        return self._quote(
            title=item.get("name"),
            raw_price=self._first_price(item.get("salePrice"), item.get("msrp")),
            url=item.get("productUrl"),
            image_url=item.get("thumbnailImage"),
            currency="USD",
        )
